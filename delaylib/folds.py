# -*- coding: utf-8 -*-
"""Fold membership and the predict -> buffer -> release -> score/train cycle."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .delay_queue import DelayedLabelQueue, PendingEntry
from .learners import Learner
from .metrics import MetricEngine, predicted_class
from .records import Record


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(_handler)
_logger.setLevel(logging.INFO)


CROSS_VALIDATION = "cross-validation"
BOOTSTRAP = "bootstrap"
SPLIT = "split"

_METHOD_ALIASES = {
    "cross-validation": CROSS_VALIDATION,
    "cross_validation": CROSS_VALIDATION,
    "crossvalidation": CROSS_VALIDATION,
    "cv": CROSS_VALIDATION,
    "0": CROSS_VALIDATION,
    "bootstrap": BOOTSTRAP,
    "bootstrap-validation": BOOTSTRAP,
    "bootstrap_validation": BOOTSTRAP,
    "1": BOOTSTRAP,
    "split": SPLIT,
    "split-validation": SPLIT,
    "split_validation": SPLIT,
    "2": SPLIT,
}


def resolve_methodology(name: str | int) -> str:
    key = str(name).strip().lower()
    if key not in _METHOD_ALIASES:
        raise ValueError(
            f"Unsupported validation methodology: {name!r} "
            f"(expected one of {CROSS_VALIDATION}, {BOOTSTRAP}, {SPLIT})"
        )
    return _METHOD_ALIASES[key]


@dataclass
class FoldState:
    """Everything one fold owns exclusively."""

    index: int
    learner: Learner
    evaluator: MetricEngine
    queue: DelayedLabelQueue
    processed: int = 0
    ram_hours: float = 0.0


@dataclass(frozen=True)
class Release:
    fold: int
    entry: PendingEntry
    cause: str
    trigger_timestamp: int


ReleaseHook = Callable[[FoldState, Release], None]


@dataclass
class FoldDispatcher:
    """Drives every fold through one incoming record.

    For each fold, in fold order: decide membership, predict, buffer the record
    when it belongs to the fold, then release at most one explicitly matched
    entry and at most one timed-out entry per bucket. Every released entry is
    scored with the prediction made when it was buffered and then used for
    training.
    """

    base_learner: Learner
    evaluator_factory: Callable[[], MetricEngine]
    num_folds: int = 10
    methodology: str = CROSS_VALIDATION
    positive_window: int = 0
    negative_window: int = 0
    positive_class: int = 1
    bootstrap_seed: Optional[int] = 1
    on_release: Optional[ReleaseHook] = None
    folds: List[FoldState] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        if int(self.num_folds) <= 0:
            raise ValueError("num_folds must be a positive integer.")
        self.num_folds = int(self.num_folds)
        self.methodology = resolve_methodology(self.methodology)
        self._rng = np.random.default_rng(self.bootstrap_seed)
        self.folds = [
            FoldState(
                index=i,
                learner=self.base_learner.copy(),
                evaluator=self.evaluator_factory(),
                queue=DelayedLabelQueue(self.positive_window, self.negative_window, self.positive_class),
            )
            for i in range(self.num_folds)
        ]
        _logger.info(
            "Prepared %d folds (%s), feedback windows positive=%d negative=%d.",
            self.num_folds,
            self.methodology,
            self.positive_window,
            self.negative_window,
        )

    # ------------------------------------------------------------------
    def membership(self, fold_index: int, record_index: int) -> int:
        """Return how many times the record counts for ``fold_index``."""

        if self.methodology == CROSS_VALIDATION:
            return 0 if record_index % self.num_folds == fold_index else 1
        if self.methodology == SPLIT:
            return 1 if record_index % self.num_folds == fold_index else 0
        return int(self._rng.poisson(1.0))

    def dispatch(self, record: Record, record_index: int) -> List[Release]:
        releases: List[Release] = []
        for fold in self.folds:
            k = self.membership(fold.index, record_index)
            votes = np.asarray(fold.learner.predict(record), dtype=float)
            predicted = predicted_class(votes)
            if k > 0 and record.weight > 0.0:
                fold.queue.enqueue(record, predicted, votes)
            for entry in fold.queue.release_matching(record.feedback_key):
                releases.append(self._release(fold, entry, "feedback", record))
            for entry in fold.queue.release_expired(record.timestamp):
                releases.append(self._release(fold, entry, "timeout", record))
        return releases

    def _release(self, fold: FoldState, entry: PendingEntry, cause: str, trigger: Record) -> Release:
        fold.evaluator.add_result(entry.record, entry.predicted_class)
        fold.learner.train(entry.record)
        fold.processed += 1
        release = Release(fold=fold.index, entry=entry, cause=cause, trigger_timestamp=trigger.timestamp)
        if self.on_release is not None:
            self.on_release(fold, release)
        return release

    # ------------------------------------------------------------------
    def pending_count(self) -> int:
        return sum(len(fold.queue) for fold in self.folds)

    def initialized_evaluators(self) -> List[MetricEngine]:
        return [fold.evaluator for fold in self.folds if fold.evaluator.is_initialized]


__all__ = [
    "CROSS_VALIDATION",
    "BOOTSTRAP",
    "SPLIT",
    "FoldState",
    "Release",
    "FoldDispatcher",
    "resolve_methodology",
]
