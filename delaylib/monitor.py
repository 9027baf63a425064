"""Abort / progress hooks polled by the evaluation loop."""
from __future__ import annotations

from typing import Any, List, Optional, Protocol


class MonitorPort(Protocol):
    def should_abort(self) -> bool:
        ...

    def set_progress(self, fraction: float) -> None:
        ...

    def requested_preview(self) -> bool:
        ...

    def set_preview(self, preview: Any) -> None:
        ...


class NullMonitor:
    """Never aborts and ignores progress."""

    def should_abort(self) -> bool:
        return False

    def set_progress(self, fraction: float) -> None:
        return None

    def requested_preview(self) -> bool:
        return False

    def set_preview(self, preview: Any) -> None:
        return None


class AbortAfter(NullMonitor):
    """Requests an abort once ``polls`` abort checks have been answered.

    Progress fractions and previews are kept for inspection.
    """

    def __init__(self, polls: Optional[int] = None, want_preview: bool = False) -> None:
        self.polls = polls
        self.want_preview = bool(want_preview)
        self.checks = 0
        self.progress: List[float] = []
        self.previews: List[Any] = []

    def should_abort(self) -> bool:
        self.checks += 1
        return self.polls is not None and self.checks > self.polls

    def set_progress(self, fraction: float) -> None:
        self.progress.append(float(fraction))

    def requested_preview(self) -> bool:
        return self.want_preview

    def set_preview(self, preview: Any) -> None:
        self.previews.append(preview)


__all__ = ["MonitorPort", "NullMonitor", "AbortAfter"]
