"""延迟反馈下的多折前序评估主流程。"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import logging
import time

from .config_loader import extract_experiment_config, load_yaml_cfg, show_cfg
from .curve import CurveWriter, LearningCurve, open_writer
from .folds import FoldDispatcher, FoldState, Release
from .learners import Learner
from .metrics import average_measurements
from .monitor import MonitorPort, NullMonitor
from .records import Stream
from .streaming import ExperimentConfig
from .viz import plot_curve_metrics


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(handler)
_logger.setLevel(logging.INFO)


INSTANCES_BETWEEN_MONITOR_UPDATES = 10

GLOBAL_ORDERING = "learning evaluation instances"
FOLD_ORDERING = "learning evaluation instances on certain fold"
TIME_MEASUREMENT = "evaluation time (cpu seconds)"
RAM_MEASUREMENT = "model cost (RAM-Hours)"

_BYTES_PER_GB = 1024.0 * 1024.0 * 1024.0


@dataclass
class DelayedEvaluationResult:
    """全局曲线与逐折曲线。"""

    curve: LearningCurve
    fold_curve: LearningCurve


def ram_hours_increment(byte_size: int, seconds: float) -> float:
    """GB x hours consumed by a model of ``byte_size`` over ``seconds``."""

    return (float(byte_size) / _BYTES_PER_GB) * (float(seconds) / 3600.0)


def _resolve_config(cfg: str | Path | Mapping[str, Any] | ExperimentConfig) -> ExperimentConfig:
    if isinstance(cfg, ExperimentConfig):
        return cfg
    if isinstance(cfg, (str, Path)):
        raw = load_yaml_cfg(str(cfg))
        show_cfg(raw)
        return extract_experiment_config(raw)
    if isinstance(cfg, Mapping):
        return extract_experiment_config(dict(cfg))
    raise TypeError(f"Unsupported configuration object: {type(cfg)!r}")


class _FoldReporter:
    """Appends a fold-level snapshot every ``sample_frequency`` releases of a fold."""

    def __init__(
        self,
        curve: LearningCurve,
        sample_frequency: int,
        start_time: float,
        writer: Optional[CurveWriter],
    ) -> None:
        self.curve = curve
        self.sample_frequency = int(sample_frequency)
        self.start_time = start_time
        self.writer = writer
        self._last_time: Dict[int, float] = {}

    def __call__(self, fold: FoldState, release: Release) -> None:
        now = time.process_time()
        # 每折模型成本按该折上次快照以来的 CPU 时间累计
        increment = now - self._last_time.get(fold.index, self.start_time)
        fold.ram_hours += ram_hours_increment(fold.learner.measure_byte_size(), increment)
        self._last_time[fold.index] = now
        if fold.processed % self.sample_frequency != 0:
            return
        if not fold.evaluator.is_initialized:
            # 尚无可评分的释放（如缺失标签），指标集合未定，跳过
            return
        row: Dict[str, float] = OrderedDict()
        row["current timestamp"] = float(release.entry.timestamp)
        row["fold"] = float(fold.index)
        row[FOLD_ORDERING] = float(fold.processed)
        row[TIME_MEASUREMENT] = now - self.start_time
        row[RAM_MEASUREMENT] = fold.ram_hours
        row.update(fold.evaluator.measurements())
        entry = self.curve.insert_entry(row)
        _logger.debug("Fold %d snapshot after %d releases.", fold.index, fold.processed)
        if self.writer is not None:
            self.writer.write_entry(entry)


def _report_progress(monitor: MonitorPort, stream: Stream, records_read: int, instance_limit: int, curve: LearningCurve) -> None:
    remaining = stream.estimated_remaining()
    if instance_limit > 0:
        max_remaining = instance_limit - records_read
        if remaining < 0 or max_remaining < remaining:
            remaining = max_remaining
    fraction = -1.0 if remaining < 0 else records_read / float(records_read + remaining)
    monitor.set_progress(fraction)
    if monitor.requested_preview():
        monitor.set_preview(curve.copy())


def run_delayed_evaluation(
    cfg: str | Path | Mapping[str, Any] | ExperimentConfig,
    *,
    stream: Optional[Stream] = None,
    learner: Optional[Learner] = None,
    monitor: Optional[MonitorPort] = None,
) -> Optional[DelayedEvaluationResult]:
    """执行延迟反馈评估，返回全局/逐折学习曲线；监视器请求中止时返回 ``None``。

    ``stream`` 与 ``learner`` 未给出时按配置中的 DATA / LEARNER 分组构建。
    """

    config = _resolve_config(cfg)
    task = config.task
    monitor = monitor or NullMonitor()
    if stream is None:
        stream = config.data.build_stream()
    if learner is None:
        learner = config.learner.build(task.random_seed)

    positive_window, negative_window = task.resolved_windows()
    curve = LearningCurve(GLOBAL_ORDERING)
    fold_curve = LearningCurve(FOLD_ORDERING)

    writer: Optional[CurveWriter] = None
    fold_writer: Optional[CurveWriter] = None
    start_time = time.process_time()
    last_snapshot_time = start_time
    try:
        writer = open_writer(config.output.dump_file)
        fold_writer = open_writer(config.output.dump_fold_file)
        reporter = _FoldReporter(fold_curve, task.sample_frequency, start_time, fold_writer)
        dispatcher = FoldDispatcher(
            base_learner=learner,
            evaluator_factory=config.evaluator.build,
            num_folds=task.num_folds,
            methodology=task.validation,
            positive_window=positive_window,
            negative_window=negative_window,
            positive_class=task.positive_class,
            bootstrap_seed=task.bootstrap_seed,
            on_release=reporter,
        )
        _logger.info(
            "【评估开始】folds=%d，验证方式=%s，采样频率=%d，实例上限=%d，时间上限=%d",
            task.num_folds,
            task.validation,
            task.sample_frequency,
            task.instance_limit,
            task.time_limit,
        )

        records_read = 0
        seconds_elapsed = 0.0
        ram_hours = 0.0
        while (
            stream.has_more()
            and (task.instance_limit < 0 or records_read < task.instance_limit)
            and (task.time_limit < 0 or seconds_elapsed < task.time_limit)
        ):
            record = stream.next_record()
            releases = dispatcher.dispatch(record, records_read)
            records_read += 1

            scored = dispatcher.initialized_evaluators()
            if releases and scored and (records_read % task.sample_frequency == 0 or not stream.has_more()):
                now = time.process_time()
                for fold in dispatcher.folds:
                    ram_hours += ram_hours_increment(fold.learner.measure_byte_size(), now - last_snapshot_time)
                last_snapshot_time = now
                row: Dict[str, float] = OrderedDict()
                row[GLOBAL_ORDERING] = float(records_read)
                row[TIME_MEASUREMENT] = now - start_time
                row[RAM_MEASUREMENT] = ram_hours
                row.update(average_measurements([e.measurements() for e in scored]))
                entry = curve.insert_entry(row)
                _logger.debug("Global snapshot at %d records.", records_read)
                if writer is not None:
                    writer.write_entry(entry)

            if records_read % INSTANCES_BETWEEN_MONITOR_UPDATES == 0:
                if monitor.should_abort():
                    _logger.info("【评估中止】监视器请求中止，已读取 %d 条记录。", records_read)
                    return None
                _report_progress(monitor, stream, records_read, task.instance_limit, curve)
                seconds_elapsed = time.process_time() - start_time

        if stream.has_more():
            _logger.warning("【提前结束】达到实例或时间上限，已读取 %d 条记录。", records_read)
        _logger.info(
            "【评估完成】记录数=%d，全局快照=%d，逐折快照=%d，待释放=%d",
            records_read,
            len(curve),
            len(fold_curve),
            dispatcher.pending_count(),
        )
    finally:
        for w in (writer, fold_writer):
            if w is not None:
                w.close()

    if config.output.figure_dir:
        plot_curve_metrics(curve, config.output.figure_dir, config.output.figure_metrics, fold_curve=fold_curve)
    return DelayedEvaluationResult(curve=curve, fold_curve=fold_curve)


__all__ = [
    "INSTANCES_BETWEEN_MONITOR_UPDATES",
    "DelayedEvaluationResult",
    "ram_hours_increment",
    "run_delayed_evaluation",
]
