import pytest
import yaml

from delaylib.config_loader import extract_experiment_config, load_yaml_cfg, show_cfg
from delaylib.folds import SPLIT
from delaylib.streaming import EvaluatorConfig, ExperimentConfig, TaskConfig


def _dump(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


def test_grouped_and_flat_forms_agree(tmp_path):
    grouped = _dump(
        tmp_path,
        "grouped.yaml",
        {
            "DATA": {"path": "data.csv", "timestamp_col": "ts"},
            "TASK": {"num_folds": 3, "validation": "split", "positive_window": 4, "delay": 2},
            "EVALUATOR": {"kind": "window", "window_size": 50},
            "LEARNER": {"name": "majority_class"},
            "OUTPUT": {"dump_file": "out.csv"},
        },
    )
    flat = _dump(
        tmp_path,
        "flat.yaml",
        {
            "DATA_PATH": "data.csv",
            "TIMESTAMP_COL": "ts",
            "NUM_FOLDS": 3,
            "VALIDATION": "split-validation",
            "POSITIVE_WINDOW": 4,
            "DELAY": 2,
            "EVAL_kind": "window",
            "EVAL_window_size": 50,
            "LEARNER": "majority_class",
            "DUMP_FILE": "out.csv",
        },
    )
    a = extract_experiment_config(load_yaml_cfg(str(grouped)))
    b = extract_experiment_config(load_yaml_cfg(str(flat)))
    assert a == b
    assert a.task.validation == SPLIT
    assert a.task.resolved_windows() == (4, 2)
    assert a.data.timestamp_col == "ts"


def test_defaults_fill_missing_sections(tmp_path):
    cfg = load_yaml_cfg(str(_dump(tmp_path, "min.yaml", {"DATA": {"path": "x.csv"}})))
    config = extract_experiment_config(cfg)
    assert isinstance(config, ExperimentConfig)
    assert config.task.num_folds == 10
    assert config.task.resolved_windows() == (0, 0)
    assert config.learner.name == "gaussian_nb"
    assert config.output.dump_file is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml_cfg(str(tmp_path / "absent.yaml"))


def test_empty_yaml(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml_cfg(str(path))


def test_missing_data_path(tmp_path):
    with pytest.raises(KeyError):
        load_yaml_cfg(str(_dump(tmp_path, "nodata.yaml", {"TASK": {"num_folds": 2}})))
    with pytest.raises(KeyError):
        load_yaml_cfg(str(_dump(tmp_path, "nopath.yaml", {"DATA": {"label_col": "y"}})))


def test_bad_methodology_rejected(tmp_path):
    cfg = load_yaml_cfg(str(_dump(tmp_path, "bad.yaml", {"DATA": {"path": "x"}, "TASK": {"validation": "holdout"}})))
    with pytest.raises(ValueError):
        extract_experiment_config(cfg)


@pytest.mark.parametrize("kwargs", [{"num_folds": 0}, {"sample_frequency": 0}, {"negative_window": -1}])
def test_task_config_validation(kwargs):
    with pytest.raises(ValueError):
        TaskConfig(**kwargs)


def test_show_cfg_prints_groups(tmp_path, capsys):
    show_cfg(load_yaml_cfg(str(_dump(tmp_path, "c.yaml", {"DATA": {"path": "x.csv"}}))))
    out = capsys.readouterr().out
    assert "【配置快照】" in out
    assert "- DATA:" in out


def test_flat_noise_keys_reach_the_evaluator(tmp_path):
    flat = _dump(tmp_path, "noise.yaml", {"DATA_PATH": "x.csv", "EVAL_noise": 0.25, "EVAL_noise_seed": 9})
    config = extract_experiment_config(load_yaml_cfg(str(flat)))
    assert config.evaluator.noise == pytest.approx(0.25)
    engine = config.evaluator.build()
    assert engine.noise == pytest.approx(0.25)
    assert engine.random_state == 9


def test_noise_outside_unit_interval_rejected():
    with pytest.raises(ValueError):
        EvaluatorConfig(noise=-0.1)
