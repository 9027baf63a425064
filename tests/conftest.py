from __future__ import annotations

import copy
from typing import List, Optional, Sequence

import numpy as np
import pytest

from delaylib.records import Record, StreamHeader, TableStream


class ConstantLearner:
    """Always votes for one class; remembers what it was trained on."""

    def __init__(self, label: int = 0) -> None:
        self.label = label
        self.trained: List[Record] = []

    def predict(self, record: Record) -> np.ndarray:
        votes = np.zeros(record.num_classes, dtype=float)
        votes[self.label] = 1.0
        return votes

    def train(self, record: Record) -> None:
        self.trained.append(record)

    def measure_byte_size(self) -> int:
        return 1024

    def copy(self) -> "ConstantLearner":
        return copy.deepcopy(self)

    def set_random_seed(self, seed: Optional[int]) -> None:
        return None

    def reset_learning(self) -> None:
        self.trained = []


class FlipAfterTrainingLearner(ConstantLearner):
    """Votes class 1 until it has been trained once, class 0 afterwards."""

    def predict(self, record: Record) -> np.ndarray:
        votes = np.zeros(record.num_classes, dtype=float)
        votes[0 if self.trained else 1] = 1.0
        return votes


@pytest.fixture
def make_record():
    def _make(
        class_value: Optional[int] = 0,
        timestamp: int = 1,
        *,
        feedback_key: Optional[int] = None,
        weight: float = 1.0,
        num_classes: int = 2,
    ) -> Record:
        return Record(
            features=np.zeros(2),
            class_value=class_value,
            num_classes=num_classes,
            weight=weight,
            timestamp=timestamp,
            feedback_key=feedback_key,
        )

    return _make


@pytest.fixture
def make_stream():
    def _make(
        labels: Sequence[int],
        *,
        timestamps: Optional[Sequence[int]] = None,
        feedback_keys: Optional[Sequence[Optional[int]]] = None,
        weights: Optional[Sequence[float]] = None,
        num_classes: int = 2,
    ) -> TableStream:
        n = len(labels)
        rng = np.random.default_rng(0)
        header = StreamHeader(num_classes=num_classes, attribute_names=["x0", "x1"])
        return TableStream(
            rng.normal(size=(n, 2)),
            list(labels),
            header,
            weights=weights,
            timestamps=timestamps,
            feedback_keys=feedback_keys,
        )

    return _make
