# -*- coding: utf-8 -*-
"""Learner adapters driven by the fold dispatcher (predict/train contract only)."""
from __future__ import annotations

import copy
import inspect
import logging
import pickle
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import numpy as np
from sklearn.linear_model import Perceptron, SGDClassifier
from sklearn.naive_bayes import BernoulliNB, GaussianNB

from .records import Record


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(_handler)
_logger.setLevel(logging.INFO)


class Learner(Protocol):
    def predict(self, record: Record) -> np.ndarray:
        ...

    def train(self, record: Record) -> None:
        ...

    def measure_byte_size(self) -> int:
        ...

    def copy(self) -> "Learner":
        ...

    def set_random_seed(self, seed: Optional[int]) -> None:
        ...

    def reset_learning(self) -> None:
        ...


def _trainable(record: Record) -> bool:
    return not record.class_is_missing and record.weight > 0.0


class MajorityClassLearner:
    """Votes with the weighted class counts seen so far."""

    def __init__(self) -> None:
        self.reset_learning()

    def reset_learning(self) -> None:
        self._counts: np.ndarray = np.zeros(0, dtype=float)

    def set_random_seed(self, seed: Optional[int]) -> None:  # deterministic
        return None

    def predict(self, record: Record) -> np.ndarray:
        votes = np.zeros(record.num_classes, dtype=float)
        n = min(len(votes), len(self._counts))
        votes[:n] = self._counts[:n]
        return votes

    def train(self, record: Record) -> None:
        if not _trainable(record):
            return
        label = int(record.class_value)
        if label >= len(self._counts):
            grown = np.zeros(max(label + 1, record.num_classes), dtype=float)
            grown[: len(self._counts)] = self._counts
            self._counts = grown
        self._counts[label] += record.weight

    def measure_byte_size(self) -> int:
        return int(self._counts.nbytes)

    def copy(self) -> "MajorityClassLearner":
        return copy.deepcopy(self)


class NoChangeLearner:
    """Predicts the last true class it was trained on."""

    def __init__(self) -> None:
        self.reset_learning()

    def reset_learning(self) -> None:
        self._last: Optional[int] = None

    def set_random_seed(self, seed: Optional[int]) -> None:
        return None

    def predict(self, record: Record) -> np.ndarray:
        votes = np.zeros(record.num_classes, dtype=float)
        if self._last is not None and self._last < len(votes):
            votes[self._last] = 1.0
        return votes

    def train(self, record: Record) -> None:
        if _trainable(record):
            self._last = int(record.class_value)

    def measure_byte_size(self) -> int:
        return 8

    def copy(self) -> "NoChangeLearner":
        return copy.deepcopy(self)


class IncrementalSklearnLearner:
    """Wraps a scikit-learn estimator that supports ``partial_fit``.

    The estimator is created lazily on the first training record so the class
    set can be taken from the record header. Until then every prediction is an
    all-zero vote vector (argmax -> class 0).
    """

    def __init__(self, estimator_factory: Callable[[], Any], random_state: Optional[int] = None) -> None:
        self.estimator_factory = estimator_factory
        self.random_state = random_state
        self.reset_learning()

    def reset_learning(self) -> None:
        self._estimator: Any = None
        self._n_trained = 0

    def set_random_seed(self, seed: Optional[int]) -> None:
        self.random_state = seed

    def _build_estimator(self) -> Any:
        estimator = self.estimator_factory()
        if not hasattr(estimator, "partial_fit"):
            raise TypeError(f"{type(estimator).__name__} does not support partial_fit().")
        if self.random_state is not None and "random_state" in estimator.get_params():
            estimator.set_params(random_state=self.random_state)
        return estimator

    def predict(self, record: Record) -> np.ndarray:
        votes = np.zeros(record.num_classes, dtype=float)
        if self._estimator is None:
            return votes
        X = np.asarray(record.features, dtype=float).reshape(1, -1)
        classes = np.asarray(self._estimator.classes_, dtype=int)
        if hasattr(self._estimator, "predict_proba"):
            proba = self._estimator.predict_proba(X)[0]
            votes[classes] = proba
        else:
            label = int(self._estimator.predict(X)[0])
            votes[label] = 1.0
        return votes

    def train(self, record: Record) -> None:
        if not _trainable(record):
            return
        X = np.asarray(record.features, dtype=float).reshape(1, -1)
        y = np.asarray([int(record.class_value)])
        kwargs: Dict[str, Any] = {}
        if self._estimator is None:
            self._estimator = self._build_estimator()
            kwargs["classes"] = np.arange(record.num_classes)
            _logger.debug(
                "Built %s for %d classes on first training record.",
                type(self._estimator).__name__,
                record.num_classes,
            )
        if "sample_weight" in inspect.signature(self._estimator.partial_fit).parameters:
            kwargs["sample_weight"] = np.asarray([record.weight], dtype=float)
        self._estimator.partial_fit(X, y, **kwargs)
        self._n_trained += 1

    def measure_byte_size(self) -> int:
        if self._estimator is None:
            return 0
        return len(pickle.dumps(self._estimator))

    def copy(self) -> "IncrementalSklearnLearner":
        return copy.deepcopy(self)


_SKLEARN_ESTIMATORS: Dict[str, Callable[..., Any]] = {
    "gaussian_nb": GaussianNB,
    "bernoulli_nb": BernoulliNB,
    "sgd": SGDClassifier,
    "perceptron": Perceptron,
}


def available_learners() -> list[str]:
    return sorted(["majority_class", "no_change", *_SKLEARN_ESTIMATORS])


def make_learner(name: str, params: Optional[Mapping[str, Any]] = None) -> Learner:
    """Instantiate a learner by registry name."""

    key = (name or "gaussian_nb").lower()
    params = dict(params or {})
    if key == "majority_class":
        return MajorityClassLearner()
    if key == "no_change":
        return NoChangeLearner()
    if key in _SKLEARN_ESTIMATORS:
        estimator_cls = _SKLEARN_ESTIMATORS[key]
        return IncrementalSklearnLearner(lambda: estimator_cls(**params))
    raise ValueError(f"Unknown learner '{name}'. Available: {available_learners()}")


__all__ = [
    "Learner",
    "MajorityClassLearner",
    "NoChangeLearner",
    "IncrementalSklearnLearner",
    "available_learners",
    "make_learner",
]
