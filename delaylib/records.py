"""Record and stream containers consumed by the delayed evaluation loop."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Record:
    """A single stream instance.

    ``class_value`` is ``None`` when the label is withheld. ``timestamp`` and
    ``feedback_key`` are already parsed integers; the feedback key names the
    timestamp of an earlier record whose true label becomes known now.
    """

    features: np.ndarray
    class_value: Optional[int]
    num_classes: int
    weight: float = 1.0
    timestamp: int = 0
    feedback_key: Optional[int] = None

    @property
    def class_is_missing(self) -> bool:
        return self.class_value is None


@dataclass(frozen=True)
class StreamHeader:
    """Header metadata shared by every record of a stream."""

    num_classes: int
    attribute_names: List[str] = field(default_factory=list)
    class_labels: List[str] = field(default_factory=list)

    def field_index_of(self, name: str) -> int:
        try:
            return self.attribute_names.index(name)
        except ValueError:
            raise KeyError(f"Stream has no attribute named {name!r}") from None


class Stream(Protocol):
    header: StreamHeader

    def has_more(self) -> bool:
        ...

    def next_record(self) -> Record:
        ...

    def estimated_remaining(self) -> int:
        ...


class TableStream:
    """Sequential record iterator over pre-parsed arrays.

    Parameters
    ----------
    features:
        2-D feature matrix, one row per record.
    labels:
        Integer class codes; negative values mark a missing label.
    timestamps / feedback_keys:
        Optional per-row integers. Without timestamps a record's timestamp is
        its 1-based position in the stream. ``feedback_keys`` uses ``None`` for
        rows without an explicit feedback signal.
    """

    def __init__(
        self,
        features: np.ndarray | pd.DataFrame,
        labels: Sequence[int] | np.ndarray,
        header: StreamHeader,
        *,
        weights: Sequence[float] | np.ndarray | None = None,
        timestamps: Sequence[int] | None = None,
        feedback_keys: Sequence[Optional[int]] | None = None,
    ) -> None:
        X = np.asarray(features, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        y = np.asarray(labels, dtype=int).ravel()
        if X.shape[0] != y.shape[0]:
            raise ValueError("features and labels must have the same number of rows.")
        n_rows = y.shape[0]
        if weights is not None and len(weights) != n_rows:
            raise ValueError("weights length does not match the number of rows.")
        if timestamps is not None and len(timestamps) != n_rows:
            raise ValueError("timestamps length does not match the number of rows.")
        if feedback_keys is not None and len(feedback_keys) != n_rows:
            raise ValueError("feedback_keys length does not match the number of rows.")
        self.header = header
        self._X = X
        self._y = y
        self._weights = None if weights is None else np.asarray(weights, dtype=float)
        self._timestamps = None if timestamps is None else list(timestamps)
        self._feedback = None if feedback_keys is None else list(feedback_keys)
        self._position = 0

    def __len__(self) -> int:
        return int(self._y.shape[0])

    def has_more(self) -> bool:
        return self._position < len(self)

    def next_record(self) -> Record:
        if not self.has_more():
            raise RuntimeError("Stream exhausted: no more records to read.")
        pos = self._position
        self._position += 1
        label = int(self._y[pos])
        timestamp = int(self._timestamps[pos]) if self._timestamps is not None else pos + 1
        feedback = self._feedback[pos] if self._feedback is not None else None
        return Record(
            features=self._X[pos],
            class_value=None if label < 0 else label,
            num_classes=self.header.num_classes,
            weight=1.0 if self._weights is None else float(self._weights[pos]),
            timestamp=timestamp,
            feedback_key=None if feedback is None else int(feedback),
        )

    def estimated_remaining(self) -> int:
        return len(self) - self._position


__all__ = ["Record", "StreamHeader", "Stream", "TableStream"]
