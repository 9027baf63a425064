# -*- coding: utf-8 -*-
"""Configuration dataclasses for the delayed-feedback evaluation run."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from .data_io import load_stream
from .estimators import make_estimator_factory
from .folds import resolve_methodology
from .learners import Learner, make_learner
from .metrics import MetricEngine
from .records import TableStream

_C = TypeVar("_C")


def _from_mapping(cls: Type[_C], data: Mapping[str, Any]) -> _C:
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name in data and data[f.name] is not None:
            kwargs[f.name] = data[f.name]
    return cls(**kwargs)


def _ensure(cls: Type[_C], cfg: Optional[Mapping[str, Any] | _C]) -> _C:
    if cfg is None:
        return cls()
    if isinstance(cfg, cls):
        return cfg
    if isinstance(cfg, Mapping):
        return _from_mapping(cls, cfg)
    raise TypeError(f"Unrecognised {cls.__name__} value: {type(cfg)!r}")


@dataclass
class DataConfig:
    """Where the stream comes from and which columns carry the metadata."""

    path: Optional[str] = None
    label_col: Optional[str | int] = None
    timestamp_col: Optional[str | int] = None
    feedback_col: Optional[str | int] = None
    weight_col: Optional[str | int] = None
    class_labels: Optional[List[Any]] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DataConfig":
        return _from_mapping(cls, data)

    @staticmethod
    def ensure(cfg: Optional[Mapping[str, Any] | "DataConfig"]) -> "DataConfig":
        return _ensure(DataConfig, cfg)

    def build_stream(self) -> TableStream:
        if not self.path:
            raise KeyError("DATA.path is required to build a stream.")
        stream, _ = load_stream(
            self.path,
            label_col=self.label_col,
            timestamp_col=self.timestamp_col,
            feedback_col=self.feedback_col,
            weight_col=self.weight_col,
            class_labels=self.class_labels,
        )
        return stream


@dataclass
class TaskConfig:
    """Fold layout, feedback windows, limits and sampling cadence."""

    num_folds: int = 10
    validation: str = "cross-validation"
    delay: Optional[int] = None
    positive_window: Optional[int] = None
    negative_window: Optional[int] = None
    positive_class: int = 1
    instance_limit: int = 100_000_000
    time_limit: int = -1
    sample_frequency: int = 100_000
    random_seed: Optional[int] = 1
    bootstrap_seed: Optional[int] = 1

    def __post_init__(self) -> None:
        self.num_folds = int(self.num_folds)
        if self.num_folds <= 0:
            raise ValueError("TASK.num_folds must be a positive integer.")
        self.validation = resolve_methodology(self.validation)
        self.sample_frequency = int(self.sample_frequency)
        if self.sample_frequency <= 0:
            raise ValueError("TASK.sample_frequency must be a positive integer.")
        self.instance_limit = int(self.instance_limit)
        self.time_limit = int(self.time_limit)
        for name in ("delay", "positive_window", "negative_window"):
            value = getattr(self, name)
            if value is not None and int(value) < 0:
                raise ValueError(f"TASK.{name} must be non-negative, got {value!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskConfig":
        return _from_mapping(cls, data)

    @staticmethod
    def ensure(cfg: Optional[Mapping[str, Any] | "TaskConfig"]) -> "TaskConfig":
        return _ensure(TaskConfig, cfg)

    def resolved_windows(self) -> tuple[int, int]:
        """Feedback windows; an unset window falls back to ``delay`` and then 0."""

        fallback = int(self.delay) if self.delay is not None else 0
        pos = int(self.positive_window) if self.positive_window is not None else fallback
        neg = int(self.negative_window) if self.negative_window is not None else fallback
        return pos, neg


@dataclass
class EvaluatorConfig:
    """Evaluator selector and reporting flags."""

    kind: str = "basic"
    window_size: int = 1000
    precision_recall_output: bool = False
    precision_per_class: bool = False
    recall_per_class: bool = False
    f1_per_class: bool = False
    noise: float = 0.0
    noise_seed: Optional[int] = None

    def __post_init__(self) -> None:
        self.noise = float(self.noise)
        if not 0.0 <= self.noise <= 1.0:
            raise ValueError(f"EVALUATOR.noise must be within [0, 1], got {self.noise!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EvaluatorConfig":
        return _from_mapping(cls, data)

    @staticmethod
    def ensure(cfg: Optional[Mapping[str, Any] | "EvaluatorConfig"]) -> "EvaluatorConfig":
        return _ensure(EvaluatorConfig, cfg)

    def build(self) -> MetricEngine:
        return MetricEngine(
            make_estimator_factory(self.kind, self.window_size),
            precision_recall_output=self.precision_recall_output,
            precision_per_class=self.precision_per_class,
            recall_per_class=self.recall_per_class,
            f1_per_class=self.f1_per_class,
            noise=self.noise,
            random_state=self.noise_seed,
        )


@dataclass
class LearnerConfig:
    """Learner selector plus constructor parameters."""

    name: str = "gaussian_nb"
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LearnerConfig":
        return _from_mapping(cls, data)

    @staticmethod
    def ensure(cfg: Optional[Mapping[str, Any] | "LearnerConfig"]) -> "LearnerConfig":
        return _ensure(LearnerConfig, cfg)

    def build(self, random_seed: Optional[int] = None) -> Learner:
        learner = make_learner(self.name, self.params)
        learner.set_random_seed(random_seed)
        learner.reset_learning()
        return learner


@dataclass
class OutputConfig:
    """Optional dump files and figure output."""

    dump_file: Optional[str] = None
    dump_fold_file: Optional[str] = None
    figure_dir: Optional[str] = None
    figure_metrics: List[str] = field(
        default_factory=lambda: [
            "classifications correct (percent)",
            "Kappa Statistic (percent)",
            "Kappa Temporal Statistic (percent)",
            "Kappa M Statistic (percent)",
        ]
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OutputConfig":
        return _from_mapping(cls, data)

    @staticmethod
    def ensure(cfg: Optional[Mapping[str, Any] | "OutputConfig"]) -> "OutputConfig":
        return _ensure(OutputConfig, cfg)


@dataclass
class ExperimentConfig:
    """All sections of one run."""

    data: DataConfig = field(default_factory=DataConfig)
    task: TaskConfig = field(default_factory=TaskConfig)
    evaluator: EvaluatorConfig = field(default_factory=EvaluatorConfig)
    learner: LearnerConfig = field(default_factory=LearnerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "ExperimentConfig":
        """Build from the grouped form (``DATA``/``TASK``/``EVALUATOR``/``LEARNER``/``OUTPUT``)."""

        return cls(
            data=DataConfig.ensure(cfg.get("DATA")),
            task=TaskConfig.ensure(cfg.get("TASK")),
            evaluator=EvaluatorConfig.ensure(cfg.get("EVALUATOR")),
            learner=LearnerConfig.ensure(cfg.get("LEARNER")),
            output=OutputConfig.ensure(cfg.get("OUTPUT")),
        )


__all__ = [
    "DataConfig",
    "TaskConfig",
    "EvaluatorConfig",
    "LearnerConfig",
    "OutputConfig",
    "ExperimentConfig",
]
