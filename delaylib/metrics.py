# -*- coding: utf-8 -*-
"""Incremental classification metrics (accuracy, Kappa family, P/R/F1, G-mean).

Every statistic is a pure function of a bank of streaming estimators, so
reading metrics never changes state. Zero denominators follow IEEE semantics:
the result is NaN or inf and is reported as-is.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import numpy as np

from .estimators import NOT_APPLICABLE, EstimatorFactory, RunningEstimator
from .records import Record


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(_handler)
_logger.setLevel(logging.INFO)


def _div(numerator: float, denominator: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(numerator) / np.float64(denominator))


def _kappa(p0: float, pc: float) -> float:
    return _div(p0 - pc, 1.0 - pc)


def _f1(precision: float, recall: float) -> float:
    return 2.0 * _div(precision * recall, precision + recall)


def _gmean(recalls: Sequence[float]) -> float:
    if not recalls:
        return float("nan")
    product = float(np.prod(np.asarray(recalls, dtype=float)))
    if product < 0:
        return float("nan")
    return product ** (1.0 / len(recalls))


def predicted_class(prediction: Sequence[float] | np.ndarray | int) -> int:
    """Return the argmax of a vote vector (lowest index on ties)."""

    if isinstance(prediction, (int, np.integer)):
        return int(prediction)
    votes = np.asarray(prediction, dtype=float).ravel()
    if votes.size == 0:
        return 0
    return int(np.argmax(np.nan_to_num(votes, nan=-np.inf)))


class Evaluator(Protocol):
    def add_result(self, record: Record, prediction: Sequence[float] | np.ndarray | int) -> None:
        ...

    def reset(self) -> None:
        ...

    def measurements(self) -> Dict[str, float]:
        ...


@dataclass
class ClassEstimators:
    """Estimators kept for one class index."""

    row_kappa: RunningEstimator
    column_kappa: RunningEstimator
    precision: RunningEstimator
    recall: RunningEstimator
    precision_no_change: RunningEstimator
    precision_majority: RunningEstimator
    recall_no_change: RunningEstimator
    recall_majority: RunningEstimator

    @classmethod
    def create(cls, factory: EstimatorFactory) -> "ClassEstimators":
        return cls(*(factory() for _ in range(8)))


class MetricEngine:
    """Incremental classification performance evaluator.

    The estimator kind (cumulative or sliding window) is injected through
    ``estimator_factory``. The per-class bank is sized once by
    :meth:`initialize`; a record declaring another class count afterwards is
    rejected.

    With ``noise`` > 0 each scored prediction is flipped with that
    probability before any statistic sees it (seeded by ``random_state``).
    """

    def __init__(
        self,
        estimator_factory: EstimatorFactory = RunningEstimator,
        *,
        precision_recall_output: bool = False,
        precision_per_class: bool = False,
        recall_per_class: bool = False,
        f1_per_class: bool = False,
        noise: float = 0.0,
        random_state: Optional[int] = None,
    ) -> None:
        noise = float(noise)
        if not 0.0 <= noise <= 1.0:
            raise ValueError(f"noise must be within [0, 1], got {noise!r}")
        self.estimator_factory = estimator_factory
        self.noise = noise
        self.random_state = random_state
        self.precision_recall_output = bool(precision_recall_output)
        self.precision_per_class = bool(precision_per_class)
        self.recall_per_class = bool(recall_per_class)
        self.f1_per_class = bool(f1_per_class)
        self.reset()

    # ------------------------------------------------------------------
    def reset(self) -> None:
        self.num_classes: Optional[int] = None
        self.classes: List[ClassEstimators] = []
        self.weight_correct = self.estimator_factory()
        self.weight_correct_no_change = self.estimator_factory()
        self.weight_majority = self.estimator_factory()
        self.last_seen_class = 0
        self.total_weight_observed = 0.0
        self._rng = np.random.default_rng(self.random_state)

    def initialize(self, num_classes: int) -> None:
        num_classes = int(num_classes)
        if num_classes <= 0:
            raise ValueError(f"num_classes must be positive, got {num_classes}")
        if self.num_classes is not None:
            if self.num_classes != num_classes:
                raise ValueError(
                    f"Class count changed from {self.num_classes} to {num_classes}; "
                    "reset the evaluator before scoring a stream with another header."
                )
            return
        self.num_classes = num_classes
        self.classes = [ClassEstimators.create(self.estimator_factory) for _ in range(num_classes)]

    @property
    def is_initialized(self) -> bool:
        return self.num_classes is not None

    # ------------------------------------------------------------------
    def add_result(self, record: Record, prediction: Sequence[float] | np.ndarray | int) -> None:
        """Score one prediction against the record's true class.

        Majority baselines read :meth:`majority_class` right after the class
        column has absorbed the record, so the record counts towards its own
        majority vote.
        """

        if record.class_is_missing:
            return
        true_class = int(record.class_value)
        predicted = self._apply_noise(predicted_class(prediction))
        weight = float(record.weight)
        no_change = self.last_seen_class

        if weight > 0.0:
            self.initialize(record.num_classes)
            self.total_weight_observed += weight
            correct = 1.0 if predicted == true_class else 0.0
            self.weight_correct.add(correct, weight)
            no_change_hit = 1.0 if no_change == true_class else 0.0
            for i, bank in enumerate(self.classes):
                bank.row_kappa.add(1.0 if predicted == i else 0.0, weight)
                bank.column_kappa.add(1.0 if true_class == i else 0.0, weight)
                majority_hit = 1.0 if self.majority_class() == true_class else 0.0
                # irrelevant events still advance the estimator as "not applicable"
                if predicted == i:
                    bank.precision.add(correct, weight)
                    bank.precision_no_change.add(no_change_hit, weight)
                    bank.precision_majority.add(majority_hit, weight)
                else:
                    bank.precision.add(NOT_APPLICABLE)
                    bank.precision_no_change.add(NOT_APPLICABLE)
                    bank.precision_majority.add(NOT_APPLICABLE)
                if true_class == i:
                    bank.recall.add(correct, weight)
                    bank.recall_no_change.add(no_change_hit, weight)
                    bank.recall_majority.add(majority_hit, weight)
                else:
                    bank.recall.add(NOT_APPLICABLE)
                    bank.recall_no_change.add(NOT_APPLICABLE)
                    bank.recall_majority.add(NOT_APPLICABLE)

        self.weight_correct_no_change.add(1.0 if no_change == true_class else 0.0, weight)
        self.weight_majority.add(1.0 if self.majority_class() == true_class else 0.0, weight)
        self.last_seen_class = true_class

    def _apply_noise(self, predicted: int) -> int:
        # 【噪声】以概率 noise 翻转预测（0 <-> 非 0）
        if self.noise > 0.0 and self._rng.random() <= self.noise:
            return 1 if predicted == 0 else 0
        return predicted

    def majority_class(self) -> int:
        majority = 0
        best = 0.0
        for i, bank in enumerate(self.classes):
            value = bank.column_kappa.estimation()
            if value > best:
                majority = i
                best = value
        return majority

    # --- scalar statistics --------------------------------------------
    def accuracy(self) -> float:
        return self.weight_correct.estimation()

    def kappa(self) -> float:
        pc = 0.0
        for bank in self.classes:
            pc += bank.row_kappa.estimation() * bank.column_kappa.estimation()
        return _kappa(self.accuracy(), pc)

    def kappa_temporal(self) -> float:
        return _kappa(self.accuracy(), self.weight_correct_no_change.estimation())

    def kappa_m(self) -> float:
        return _kappa(self.accuracy(), self.weight_majority.estimation())

    # --- per-class statistics -----------------------------------------
    def _average(self, values: Iterable[float]) -> float:
        values = list(values)
        return _div(sum(values), len(values))

    def precision(self, class_index: Optional[int] = None) -> float:
        if class_index is None:
            return self._average(bank.precision.estimation() for bank in self.classes)
        return self.classes[class_index].precision.estimation()

    def recall(self, class_index: Optional[int] = None) -> float:
        if class_index is None:
            return self._average(bank.recall.estimation() for bank in self.classes)
        return self.classes[class_index].recall.estimation()

    def f1(self, class_index: Optional[int] = None) -> float:
        return _f1(self.precision(class_index), self.recall(class_index))

    def gmean(self) -> float:
        return _gmean([bank.recall.estimation() for bank in self.classes])

    def precision_no_change(self, class_index: int) -> float:
        return self.classes[class_index].precision_no_change.estimation()

    def precision_majority(self, class_index: int) -> float:
        return self.classes[class_index].precision_majority.estimation()

    def recall_no_change(self, class_index: int) -> float:
        return self.classes[class_index].recall_no_change.estimation()

    def recall_majority(self, class_index: int) -> float:
        return self.classes[class_index].recall_majority.estimation()

    def f1_no_change(self, class_index: int) -> float:
        return _f1(self.precision_no_change(class_index), self.recall_no_change(class_index))

    def f1_majority(self, class_index: int) -> float:
        return _f1(self.precision_majority(class_index), self.recall_majority(class_index))

    def gmean_no_change(self) -> float:
        return _gmean([bank.recall_no_change.estimation() for bank in self.classes])

    def gmean_majority(self) -> float:
        return _gmean([bank.recall_majority.estimation() for bank in self.classes])

    # --- Kappa-style baselines ------------------------------------------
    def kappa_precision_temporal(self, class_index: int) -> float:
        return _kappa(self.precision(class_index), self.precision_no_change(class_index))

    def kappa_precision_m(self, class_index: int) -> float:
        return _kappa(self.precision(class_index), self.precision_majority(class_index))

    def kappa_recall_temporal(self, class_index: int) -> float:
        return _kappa(self.recall(class_index), self.recall_no_change(class_index))

    def kappa_recall_m(self, class_index: int) -> float:
        return _kappa(self.recall(class_index), self.recall_majority(class_index))

    def kappa_f1_temporal(self, class_index: int) -> float:
        return _kappa(self.f1(class_index), self.f1_no_change(class_index))

    def kappa_f1_m(self, class_index: int) -> float:
        return _kappa(self.f1(class_index), self.f1_majority(class_index))

    def kappa_gmean_temporal(self) -> float:
        return _kappa(self.gmean(), self.gmean_no_change())

    def kappa_gmean_m(self) -> float:
        return _kappa(self.gmean(), self.gmean_majority())

    # ------------------------------------------------------------------
    def measurements(self) -> Dict[str, float]:
        """Return the named metrics (percent scale) in reporting order."""

        n = len(self.classes)
        out: Dict[str, float] = OrderedDict()
        out["classified instances"] = float(self.total_weight_observed)
        out["classifications correct (percent)"] = 100.0 * self.accuracy()
        out["Kappa Statistic (percent)"] = 100.0 * self.kappa()
        out["Kappa Temporal Statistic (percent)"] = 100.0 * self.kappa_temporal()
        out["Kappa M Statistic (percent)"] = 100.0 * self.kappa_m()

        if self.precision_recall_output:
            out["F1 Score (percent)"] = 100.0 * self.f1()
        if self.f1_per_class:
            for i in range(n):
                out[f"F1 Score for class {i} (percent)"] = 100.0 * self.f1(i)
            for i in range(n):
                out[f"Kappa Temporal Statistic F1 Score for class {i} (percent)"] = 100.0 * self.kappa_f1_temporal(i)
            for i in range(n):
                out[f"Kappa M Statistic F1 Score for class {i} (percent)"] = 100.0 * self.kappa_f1_m(i)

        if self.precision_recall_output:
            out["Precision (percent)"] = 100.0 * self.precision()
        if self.precision_per_class:
            for i in range(n):
                out[f"Precision for class {i} (percent)"] = 100.0 * self.precision(i)
            for i in range(n):
                out[f"Kappa Precision Temporal Statistic {i} (percent)"] = 100.0 * self.kappa_precision_temporal(i)
            for i in range(n):
                out[f"Kappa Precision M Statistic {i} (percent)"] = 100.0 * self.kappa_precision_m(i)

        if self.precision_recall_output:
            out["Recall (percent)"] = 100.0 * self.recall()
        if self.recall_per_class:
            for i in range(n):
                out[f"Recall for class {i} (percent)"] = 100.0 * self.recall(i)
            out["Gmean for recall (percent)"] = 100.0 * self.gmean()
            for i in range(n):
                out[f"Kappa Recall Temporal Statistic {i} (percent)"] = 100.0 * self.kappa_recall_temporal(i)
            for i in range(n):
                out[f"Kappa Recall M Statistic {i} (percent)"] = 100.0 * self.kappa_recall_m(i)
            out["Kappa Gmean Temporal Statistic (percent)"] = 100.0 * self.kappa_gmean_temporal()
            out["Kappa Gmean M Statistic (percent)"] = 100.0 * self.kappa_gmean_m()
        return out


def average_measurements(rows: Sequence[Dict[str, float]]) -> Dict[str, float]:
    """Element-wise mean of several measurement dicts, keyed by the first row's names.

    NaN in any row propagates to the averaged value.
    """

    if not rows:
        return OrderedDict()
    averaged: Dict[str, float] = OrderedDict()
    for name in rows[0]:
        values = [row[name] for row in rows if name in row]
        averaged[name] = float(np.mean(np.asarray(values, dtype=float)))
    if len(rows) > 1 and any(set(row) != set(rows[0]) for row in rows[1:]):
        _logger.debug("Averaging measurements with differing metric names across folds.")
    return averaged


__all__ = [
    "ClassEstimators",
    "Evaluator",
    "MetricEngine",
    "average_measurements",
    "predicted_class",
]
