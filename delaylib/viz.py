"""学习曲线绘图（matplotlib，保存 PNG）。"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from .curve import LearningCurve


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(handler)
_logger.setLevel(logging.INFO)


def _slug(name: str) -> str:
    return re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()


def plot_curve_metrics(
    curve: LearningCurve,
    output_dir: str | Path,
    metrics: Sequence[str],
    *,
    fold_curve: Optional[LearningCurve] = None,
) -> List[Path]:
    """Draw one figure per metric and return the written paths.

    The global curve is drawn against its ordering measurement; when a fold
    curve is given, each fold is drawn as its own line in a second figure.
    Metrics absent from a curve are skipped.
    """

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    global_names = set(curve.header_names())
    for metric in metrics:
        if metric not in global_names:
            continue
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.plot(curve.measurement_values(curve.ordering_name), curve.measurement_values(metric), marker="o", linewidth=2)
        ax.set_xlabel(curve.ordering_name)
        ax.set_ylabel(metric)
        ax.set_title(f"Global curve: {metric}")
        ax.grid(alpha=0.3, linestyle="--")
        fig.tight_layout()
        fig_path = output_dir / f"global_{_slug(metric)}.png"
        fig.savefig(fig_path, dpi=150)
        plt.close(fig)
        written.append(fig_path)

    if fold_curve is not None and len(fold_curve) > 0:
        fold_names = set(fold_curve.header_names())
        folds = fold_curve.measurement_values("fold")
        x_all = fold_curve.measurement_values(fold_curve.ordering_name)
        for metric in metrics:
            if metric not in fold_names:
                continue
            y_all = fold_curve.measurement_values(metric)
            fig, ax = plt.subplots(figsize=(6, 4))
            for fold in np.unique(folds[~np.isnan(folds)]):
                mask = folds == fold
                ax.plot(x_all[mask], y_all[mask], marker=".", linewidth=1.5, label=f"fold {int(fold)}")
            ax.set_xlabel(fold_curve.ordering_name)
            ax.set_ylabel(metric)
            ax.set_title(f"Per-fold curves: {metric}")
            ax.grid(alpha=0.3, linestyle="--")
            ax.legend(fontsize="small")
            fig.tight_layout()
            fig_path = output_dir / f"folds_{_slug(metric)}.png"
            fig.savefig(fig_path, dpi=150)
            plt.close(fig)
            written.append(fig_path)

    _logger.info("【图表输出】共 %d 张图保存至 %s", len(written), output_dir)
    return written


__all__ = ["plot_curve_metrics"]
