# -*- coding: utf-8 -*-
from __future__ import annotations
import os, yaml
from typing import Any, Dict

from .streaming import ExperimentConfig

# 支持分组与扁平配置；扁平键名示例：
#   DATA_PATH: data/stream.csv
#   POSITIVE_WINDOW: 7
REQUIRED_GROUPS = {"DATA"}
OPTIONAL_GROUPS = {"TASK", "EVALUATOR", "LEARNER", "OUTPUT"}
GROUPS = REQUIRED_GROUPS | OPTIONAL_GROUPS


def _normalize_flat_to_grouped(raw: dict) -> dict:
    """将扁平键名（例如 POSITIVE_WINDOW）映射为内部分组结构。"""
    D: Dict[str, Dict[str, Any]] = {}

    D["DATA"] = {
        "path": raw.get("DATA_PATH"),
        "label_col": raw.get("LABEL_COL"),
        "timestamp_col": raw.get("TIMESTAMP_COL", raw.get("DATE_INDEX")),
        "feedback_col": raw.get("FEEDBACK_COL", raw.get("FEEDBACK_INDEX")),
        "weight_col": raw.get("WEIGHT_COL"),
        "class_labels": raw.get("CLASS_LABELS"),
    }

    D["TASK"] = {
        "num_folds": raw.get("NUM_FOLDS"),
        "validation": raw.get("VALIDATION"),
        "delay": raw.get("DELAY"),
        "positive_window": raw.get("POSITIVE_WINDOW"),
        "negative_window": raw.get("NEGATIVE_WINDOW"),
        "positive_class": raw.get("POSITIVE_CLASS"),
        "instance_limit": raw.get("INSTANCE_LIMIT"),
        "time_limit": raw.get("TIME_LIMIT"),
        "sample_frequency": raw.get("SAMPLE_FREQUENCY"),
        "random_seed": raw.get("SEED"),
        "bootstrap_seed": raw.get("BOOTSTRAP_SEED"),
    }

    D["EVALUATOR"] = {
        "kind": raw.get("EVAL_kind"),
        "window_size": raw.get("EVAL_window_size"),
        "precision_recall_output": raw.get("EVAL_precision_recall_output"),
        "precision_per_class": raw.get("EVAL_precision_per_class"),
        "recall_per_class": raw.get("EVAL_recall_per_class"),
        "f1_per_class": raw.get("EVAL_f1_per_class"),
        "noise": raw.get("EVAL_noise"),
        "noise_seed": raw.get("EVAL_noise_seed"),
    }

    D["LEARNER"] = {
        "name": raw.get("LEARNER"),
        "params": raw.get("LEARNER_params"),
    }

    D["OUTPUT"] = {
        "dump_file": raw.get("DUMP_FILE"),
        "dump_fold_file": raw.get("DUMP_FOLD_FILE"),
        "figure_dir": raw.get("FIGURE_DIR"),
        "figure_metrics": raw.get("FIGURE_METRICS"),
    }
    return D


def _require(G: dict, name: str, keys: list[str]):
    missing = [k for k in keys if G.get(k) is None]
    if missing:
        raise KeyError(f"{name} 缺少必需键: {missing}")


def load_yaml_cfg(path: str) -> dict:
    if not os.path.exists(path):
        raise FileNotFoundError(f"配置文件不存在: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict) or not raw:
        raise ValueError(f"YAML 为空或结构不是字典: {path}")

    # 任一分组以字典形式给出即视为分组配置（扁平键 LEARNER 的值是字符串）
    if any(isinstance(raw.get(g), dict) for g in GROUPS):
        cfg = raw
    else:
        cfg = _normalize_flat_to_grouped(raw)

    missing = [g for g in REQUIRED_GROUPS if g not in cfg]
    if missing:
        raise KeyError(f"YAML 缺少分组: {missing}，必须包含 {sorted(REQUIRED_GROUPS)}")
    for grp in OPTIONAL_GROUPS:
        if cfg.get(grp) is None:
            cfg[grp] = {}
        elif not isinstance(cfg[grp], dict):
            raise ValueError(f"{grp} 分组必须是字典，实际为 {type(cfg[grp]).__name__}")

    _require(cfg["DATA"], "DATA", ["path"])
    return cfg


def extract_experiment_config(cfg: dict) -> ExperimentConfig:
    """把分组字典实例化为 :class:`ExperimentConfig`（未给出的键取默认值）。"""

    def _compact(section: Any) -> dict:
        if not section:
            return {}
        return {k: v for k, v in section.items() if v is not None}

    return ExperimentConfig.from_mapping({grp: _compact(cfg.get(grp)) for grp in GROUPS})


def show_cfg(cfg: dict) -> None:
    print("【配置快照】")
    for grp in ["DATA", "TASK", "EVALUATOR", "LEARNER", "OUTPUT"]:
        if grp in cfg:
            print(f"- {grp}: {cfg[grp]}")
