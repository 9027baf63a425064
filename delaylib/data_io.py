from __future__ import annotations
# -*- coding: utf-8 -*-
"""
数据读取与流构建
- 支持 CSV / ARFF 自动识别（CSV 自动嗅探分隔符）
- 类别列编码为连续整数，缺失标签记为 -1（不参与评估）
- 时间戳列与反馈列按索引或列名抽取，并从特征中删除
- 时间戳/反馈值无法解析时立即报错（配置错误，不静默跳过）
"""
import csv
import logging
import math
import os
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.io import arff

from .encoders import ClassLabelEncoder
from .records import StreamHeader, TableStream


_logger = logging.getLogger(__name__)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    _logger.addHandler(_handler)
_logger.setLevel(logging.INFO)

_FEEDBACK_MISSING = {"", "?", "nan", "none", "null"}


# ---------------------------------------------------------------------------
# 表格读取
# ---------------------------------------------------------------------------


def read_table(path: str) -> pd.DataFrame:
    """Read a CSV or ARFF file into a DataFrame."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Stream file does not exist: {path}")
    ext = os.path.splitext(path)[-1].lower()
    if ext == ".arff":
        data, _meta = arff.loadarff(path)
        df = pd.DataFrame(data)
        # ARFF 中 nominal 以 bytes 存储，这里统一转为 str
        for c in df.columns:
            if df[c].dtype == object and len(df[c]) > 0 and isinstance(df[c].iloc[0], (bytes, bytearray)):
                df[c] = df[c].apply(lambda b: b.decode("utf-8") if isinstance(b, (bytes, bytearray)) else b)
        return df

    # 先用 csv.Sniffer 猜分隔符，失败则退回逗号
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        sample = f.read(4096)
    try:
        sep = csv.Sniffer().sniff(sample, delimiters=[",", ";", "\t", "|"]).delimiter
    except csv.Error:
        sep = ","
    return pd.read_csv(path, sep=sep)


def resolve_column(df: pd.DataFrame, column: Optional[str | int], what: str) -> Optional[str]:
    """Return the column name addressed by ``column`` (0-based index or name).

    ``None`` and ``-1`` mean "not configured".
    """

    if column is None:
        return None
    if isinstance(column, (int, np.integer)) or (isinstance(column, str) and column.lstrip("-").isdigit()):
        idx = int(column)
        if idx == -1:
            return None
        if idx < 0 or idx >= df.shape[1]:
            raise KeyError(f"{what} index {idx} is out of range for a table with {df.shape[1]} columns")
        return str(df.columns[idx])
    if column not in df.columns:
        raise KeyError(f"{what} column {column!r} does not exist; available: {list(df.columns)}")
    return str(column)


def _parse_integer(value: object) -> Optional[int]:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        if math.isfinite(value) and float(value).is_integer():
            return int(value)
        return None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return None


def parse_timestamp(value: object, column: str, row: int) -> int:
    parsed = _parse_integer(value)
    if parsed is None:
        raise ValueError(f"Unparseable timestamp {value!r} in column {column!r} at row {row}")
    return parsed


def parse_feedback(value: object, column: str, row: int) -> Optional[int]:
    """Return the feedback key, or ``None`` when the cell carries no feedback."""

    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, str) and value.strip().lower() in _FEEDBACK_MISSING:
        return None
    parsed = _parse_integer(value)
    if parsed is None:
        raise ValueError(f"Unparseable feedback value {value!r} in column {column!r} at row {row}")
    return parsed


# ---------------------------------------------------------------------------
# 流构建
# ---------------------------------------------------------------------------


def frame_to_stream(
    df: pd.DataFrame,
    *,
    label_col: Optional[str | int] = None,
    timestamp_col: Optional[str | int] = None,
    feedback_col: Optional[str | int] = None,
    weight_col: Optional[str | int] = None,
    class_labels: Optional[Sequence[object]] = None,
) -> TableStream:
    """Build a :class:`TableStream` from a DataFrame.

    The label column defaults to 'class/label/target/y' or the last column.
    Timestamp, feedback and weight columns are removed from the features.
    """

    if df is None or df.empty:
        raise ValueError("Cannot build a stream from an empty table.")

    label_name = resolve_column(df, label_col, "label")
    if label_name is None:
        label_name = next((c for c in ["class", "label", "target", "y"] if c in df.columns), str(df.columns[-1]))
    ts_name = resolve_column(df, timestamp_col, "timestamp")
    fb_name = resolve_column(df, feedback_col, "feedback")
    w_name = resolve_column(df, weight_col, "weight")

    timestamps = None
    if ts_name is not None:
        timestamps = [parse_timestamp(v, ts_name, i) for i, v in enumerate(df[ts_name].tolist())]
    feedback = None
    if fb_name is not None:
        feedback = [parse_feedback(v, fb_name, i) for i, v in enumerate(df[fb_name].tolist())]
    weights = None
    if w_name is not None:
        weights = pd.to_numeric(df[w_name], errors="coerce").fillna(0.0).clip(lower=0.0).to_numpy(dtype=float)

    encoder = ClassLabelEncoder(class_labels) if class_labels is not None else ClassLabelEncoder().fit(df[label_name])
    labels = encoder.transform(df[label_name])
    if encoder.num_classes == 0:
        raise ValueError(f"Label column {label_name!r} has no observed classes.")

    drop = [c for c in {label_name, ts_name, fb_name, w_name} if c is not None]
    X = df.drop(columns=drop).copy()
    for c in X.columns:
        if X[c].dtype == object:
            X[c] = X[c].astype("category").cat.codes
    X = X.apply(pd.to_numeric, errors="coerce").replace([np.inf, -np.inf], np.nan)
    n_missing = int(X.isna().any(axis=1).sum())
    if n_missing:
        # 保留行序以免破坏时间戳与反馈的对应关系，缺失特征置 0
        _logger.warning("【特征缺失】%d 行含缺失/无穷特征值，已填充为 0。", n_missing)
        X = X.fillna(0.0)

    header = StreamHeader(
        num_classes=encoder.num_classes,
        attribute_names=[str(c) for c in X.columns],
        class_labels=encoder.classes_,
    )
    _logger.info(
        "【数据加载完毕】样本数=%d，特征数=%d，类别数=%d，时间戳列=%s，反馈列=%s",
        len(X),
        X.shape[1],
        header.num_classes,
        ts_name,
        fb_name,
    )
    return TableStream(
        X.to_numpy(dtype=float),
        labels,
        header,
        weights=weights,
        timestamps=timestamps,
        feedback_keys=feedback,
    )


def load_stream(
    path: str,
    *,
    label_col: Optional[str | int] = None,
    timestamp_col: Optional[str | int] = None,
    feedback_col: Optional[str | int] = None,
    weight_col: Optional[str | int] = None,
    class_labels: Optional[Sequence[object]] = None,
) -> Tuple[TableStream, pd.DataFrame]:
    """Read ``path`` and return the stream together with the raw table."""

    df = read_table(path)
    stream = frame_to_stream(
        df,
        label_col=label_col,
        timestamp_col=timestamp_col,
        feedback_col=feedback_col,
        weight_col=weight_col,
        class_labels=class_labels,
    )
    return stream, df


__all__ = [
    "read_table",
    "resolve_column",
    "parse_timestamp",
    "parse_feedback",
    "frame_to_stream",
    "load_stream",
]
