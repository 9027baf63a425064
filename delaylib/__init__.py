"""
delaylib: prequential evaluation of online classifiers under delayed feedback.
"""
from .estimators import RunningEstimator, WindowEstimator, make_estimator_factory
from .records import Record, StreamHeader, TableStream
from .metrics import MetricEngine, average_measurements, predicted_class
from .delay_queue import DelayedLabelQueue, PendingEntry
from .folds import FoldDispatcher, FoldState, Release, resolve_methodology
from .curve import CurveEntry, CurveWriter, LearningCurve, read_curve_csv
from .monitor import AbortAfter, NullMonitor
from .encoders import ClassLabelEncoder
from .data_io import load_stream, frame_to_stream, read_table
from .learners import (
    IncrementalSklearnLearner,
    MajorityClassLearner,
    NoChangeLearner,
    available_learners,
    make_learner,
)
from .streaming import (
    DataConfig,
    TaskConfig,
    EvaluatorConfig,
    LearnerConfig,
    OutputConfig,
    ExperimentConfig,
)
from .config_loader import load_yaml_cfg, extract_experiment_config, show_cfg
from .viz import plot_curve_metrics
from .delayed_flow import DelayedEvaluationResult, run_delayed_evaluation

__all__ = [
    "RunningEstimator",
    "WindowEstimator",
    "make_estimator_factory",
    "Record",
    "StreamHeader",
    "TableStream",
    "MetricEngine",
    "average_measurements",
    "predicted_class",
    "DelayedLabelQueue",
    "PendingEntry",
    "FoldDispatcher",
    "FoldState",
    "Release",
    "resolve_methodology",
    "CurveEntry",
    "CurveWriter",
    "LearningCurve",
    "read_curve_csv",
    "AbortAfter",
    "NullMonitor",
    "ClassLabelEncoder",
    "load_stream",
    "frame_to_stream",
    "read_table",
    "IncrementalSklearnLearner",
    "MajorityClassLearner",
    "NoChangeLearner",
    "available_learners",
    "make_learner",
    "DataConfig",
    "TaskConfig",
    "EvaluatorConfig",
    "LearnerConfig",
    "OutputConfig",
    "ExperimentConfig",
    "load_yaml_cfg",
    "extract_experiment_config",
    "show_cfg",
    "plot_curve_metrics",
    "DelayedEvaluationResult",
    "run_delayed_evaluation",
]
