# -*- coding: utf-8 -*-
"""Per-fold buffers of predicted records waiting for their delayed labels."""
from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional

import numpy as np

from .records import Record

POSITIVE = "positive"
NEGATIVE = "negative"


@dataclass(frozen=True)
class PendingEntry:
    """A predicted record waiting in one bucket until its label is released."""

    record: Record
    timestamp: int
    bucket: str
    predicted_class: int
    votes: np.ndarray = field(default_factory=lambda: np.zeros(0), repr=False)


class _Bucket:
    """FIFO queue with a timestamp index for out-of-order removal."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: "OrderedDict[int, PendingEntry]" = OrderedDict()
        self._by_timestamp: Dict[int, Deque[int]] = {}
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PendingEntry]:
        return iter(list(self._entries.values()))

    def push(self, entry: PendingEntry) -> None:
        seq = self._next_seq
        self._next_seq += 1
        self._entries[seq] = entry
        self._by_timestamp.setdefault(entry.timestamp, deque()).append(seq)

    def oldest(self) -> Optional[PendingEntry]:
        return next(iter(self._entries.values()), None)

    def pop_oldest(self) -> PendingEntry:
        seq, entry = self._entries.popitem(last=False)
        # the oldest entry overall is also the oldest with its timestamp
        self._drop_index(entry.timestamp, seq)
        return entry

    def pop_timestamp(self, timestamp: int) -> Optional[PendingEntry]:
        seqs = self._by_timestamp.get(timestamp)
        if not seqs:
            return None
        seq = seqs[0]
        self._drop_index(timestamp, seq)
        return self._entries.pop(seq)

    def _drop_index(self, timestamp: int, seq: int) -> None:
        seqs = self._by_timestamp[timestamp]
        if seqs[0] == seq:
            seqs.popleft()
        else:
            seqs.remove(seq)
        if not seqs:
            del self._by_timestamp[timestamp]


class DelayedLabelQueue:
    """Positive/negative pending buckets of one fold.

    Entries leave a bucket either when a later record's feedback key equals
    their timestamp (explicit match, any position) or when the oldest entry
    has waited at least the bucket's window (timeout, FIFO).
    """

    def __init__(self, positive_window: int = 0, negative_window: int = 0, positive_class: int = 1) -> None:
        if positive_window < 0 or negative_window < 0:
            raise ValueError("Feedback windows must be non-negative.")
        self.positive_window = int(positive_window)
        self.negative_window = int(negative_window)
        self.positive_class = int(positive_class)
        self.positive = _Bucket(POSITIVE)
        self.negative = _Bucket(NEGATIVE)

    def __len__(self) -> int:
        return len(self.positive) + len(self.negative)

    def bucket_for(self, predicted_class: int) -> _Bucket:
        return self.positive if int(predicted_class) == self.positive_class else self.negative

    def enqueue(self, record: Record, predicted_class: int, votes: np.ndarray | None = None) -> PendingEntry:
        bucket = self.bucket_for(predicted_class)
        entry = PendingEntry(
            record=record,
            timestamp=int(record.timestamp),
            bucket=bucket.name,
            predicted_class=int(predicted_class),
            votes=np.zeros(0) if votes is None else np.asarray(votes, dtype=float),
        )
        bucket.push(entry)
        return entry

    def release_matching(self, feedback_key: Optional[int]) -> List[PendingEntry]:
        """Remove the first entry per bucket whose timestamp equals ``feedback_key``."""

        if feedback_key is None:
            return []
        released: List[PendingEntry] = []
        for bucket in (self.positive, self.negative):
            entry = bucket.pop_timestamp(int(feedback_key))
            if entry is not None:
                released.append(entry)
        return released

    def release_expired(self, now: int) -> List[PendingEntry]:
        """Pop at most one timed-out entry per bucket, positive first."""

        released: List[PendingEntry] = []
        for bucket, window in ((self.positive, self.positive_window), (self.negative, self.negative_window)):
            oldest = bucket.oldest()
            if oldest is not None and int(now) - oldest.timestamp >= window:
                released.append(bucket.pop_oldest())
        return released

    def pending(self) -> List[PendingEntry]:
        return list(self.positive) + list(self.negative)


__all__ = ["POSITIVE", "NEGATIVE", "PendingEntry", "DelayedLabelQueue"]
