"""Streaming scalar estimators used by the metric engine."""
from __future__ import annotations

import math
from collections import deque
from typing import Callable, Deque, Tuple

NOT_APPLICABLE = float("nan")


def is_not_applicable(value: float) -> bool:
    return isinstance(value, float) and math.isnan(value)


class RunningEstimator:
    """Cumulative mean of every applicable observation since the last reset."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.sum = 0.0
        self.count = 0.0

    def add(self, value: float, weight: float = 1.0) -> None:
        """Add one observation; NaN marks "not applicable" and is ignored."""
        value = float(value)
        if math.isnan(value):
            return
        self.sum += value * weight
        self.count += weight

    def estimation(self) -> float:
        if self.count == 0:
            return float("nan")
        return self.sum / self.count

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"RunningEstimator(sum={self.sum!r}, count={self.count!r})"


class WindowEstimator:
    """Mean over the last ``window_size`` updates.

    Not-applicable updates still take a slot in the window so that estimators
    fed in lock step forget the same events at the same time.
    """

    def __init__(self, window_size: int = 1000) -> None:
        if int(window_size) <= 0:
            raise ValueError(f"window_size must be a positive integer, got {window_size!r}")
        self.window_size = int(window_size)
        self.reset()

    def reset(self) -> None:
        self._window: Deque[Tuple[float, float]] = deque()
        self.sum = 0.0
        self.count = 0.0

    def add(self, value: float, weight: float = 1.0) -> None:
        value = float(value)
        if len(self._window) == self.window_size:
            old_value, old_weight = self._window.popleft()
            if not math.isnan(old_value):
                self.sum -= old_value * old_weight
                self.count -= old_weight
        self._window.append((value, weight))
        if not math.isnan(value):
            self.sum += value * weight
            self.count += weight

    def estimation(self) -> float:
        if self.count <= 0:
            return float("nan")
        return self.sum / self.count

    def __len__(self) -> int:
        return len(self._window)


EstimatorFactory = Callable[[], "RunningEstimator | WindowEstimator"]


def make_estimator_factory(kind: str = "basic", window_size: int = 1000) -> EstimatorFactory:
    """Return a zero-argument factory for the requested estimator kind."""

    name = (kind or "basic").lower()
    if name in {"basic", "cumulative"}:
        return RunningEstimator
    if name in {"window", "windowed", "sliding"}:
        size = int(window_size)
        if size <= 0:
            raise ValueError(f"window_size must be a positive integer, got {window_size!r}")
        return lambda: WindowEstimator(size)
    raise ValueError(f"Unsupported estimator kind: {kind}")


__all__ = [
    "NOT_APPLICABLE",
    "is_not_applicable",
    "RunningEstimator",
    "WindowEstimator",
    "EstimatorFactory",
    "make_estimator_factory",
]
