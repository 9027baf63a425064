import math

import numpy as np
import pytest

from delaylib.estimators import make_estimator_factory
from delaylib.metrics import MetricEngine, average_measurements, predicted_class


SEQUENCE = [(0, 0), (1, 1), (1, 0), (0, 0)]  # (true, predicted)


@pytest.fixture
def scored(make_record):
    engine = MetricEngine(precision_recall_output=True, precision_per_class=True, recall_per_class=True, f1_per_class=True)
    for i, (true, pred) in enumerate(SEQUENCE):
        engine.add_result(make_record(true, timestamp=i + 1), pred)
    return engine


def test_fresh_engine_reports_nan():
    engine = MetricEngine()
    assert engine.total_weight_observed == 0
    assert not engine.is_initialized
    assert math.isnan(engine.accuracy())
    assert math.isnan(engine.kappa())
    assert math.isnan(engine.kappa_temporal())
    assert math.isnan(engine.kappa_m())
    m = engine.measurements()
    assert m["classified instances"] == 0
    assert math.isnan(m["classifications correct (percent)"])


def test_reset_clears_state(scored):
    scored.reset()
    assert scored.total_weight_observed == 0
    assert math.isnan(scored.accuracy())


def test_accuracy_and_kappa_family(scored):
    assert scored.total_weight_observed == pytest.approx(4.0)
    assert scored.accuracy() == pytest.approx(0.75)
    # pc = 0.75 * 0.5 + 0.25 * 0.5
    assert scored.kappa() == pytest.approx(0.5)
    # no-change predictions 0, 0, 1, 1 -> two hits
    assert scored.kappa_temporal() == pytest.approx(0.5)
    # majority after each column update: 0, 0, 1, 0 -> three hits
    assert scored.weight_majority.estimation() == pytest.approx(0.75)
    assert scored.kappa_m() == pytest.approx(0.0)


def test_per_class_precision_recall(scored):
    assert scored.precision(0) == pytest.approx(2.0 / 3.0)
    assert scored.precision(1) == pytest.approx(1.0)
    assert scored.recall(0) == pytest.approx(1.0)
    assert scored.recall(1) == pytest.approx(0.5)
    assert scored.precision() == pytest.approx((2.0 / 3.0 + 1.0) / 2)
    assert scored.f1(1) == pytest.approx(2 * 0.5 / 1.5)
    assert scored.gmean() == pytest.approx(math.sqrt(0.5))


def test_precision_advances_only_for_predicted_class(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(1), 0)
    assert engine.classes[0].precision.count == 1
    assert engine.classes[1].precision.count == 0
    assert engine.classes[1].recall.count == 1
    assert engine.classes[0].recall.count == 0


def test_accuracy_stays_in_unit_interval_with_weights(make_record):
    engine = MetricEngine()
    rng = np.random.default_rng(3)
    for t in range(50):
        true = int(rng.integers(0, 2))
        pred = int(rng.integers(0, 2))
        engine.add_result(make_record(true, t, weight=float(rng.uniform(0.0, 5.0))), pred)
        assert 0.0 <= engine.accuracy() <= 1.0
        kappa = engine.kappa()
        assert math.isnan(kappa) or kappa <= 1.0 + 1e-12


def test_perfect_predictions_give_kappa_one(make_record):
    engine = MetricEngine()
    for t, true in enumerate([0, 1, 0, 1]):
        engine.add_result(make_record(true, t), true)
    assert engine.kappa() == pytest.approx(1.0)


def test_missing_class_is_not_scored(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(None), 0)
    assert engine.total_weight_observed == 0
    assert not engine.is_initialized


def test_class_count_change_is_rejected(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(0, num_classes=2), 0)
    with pytest.raises(ValueError):
        engine.add_result(make_record(0, num_classes=3), 0)


def test_vote_vector_prediction(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(1), np.array([0.2, 0.8]))
    assert engine.accuracy() == pytest.approx(1.0)


def test_measurement_names_follow_flags(scored, make_record):
    names = list(scored.measurements())
    assert names[:5] == [
        "classified instances",
        "classifications correct (percent)",
        "Kappa Statistic (percent)",
        "Kappa Temporal Statistic (percent)",
        "Kappa M Statistic (percent)",
    ]
    assert "F1 Score (percent)" in names
    assert "Precision for class 1 (percent)" in names
    assert "Gmean for recall (percent)" in names
    assert names.index("F1 Score (percent)") < names.index("Precision (percent)") < names.index("Recall (percent)")

    plain = MetricEngine()
    plain.add_result(make_record(0), 0)
    assert len(plain.measurements()) == 5


def test_windowed_engine_follows_recent_results(make_record):
    engine = MetricEngine(make_estimator_factory("window", window_size=2))
    for t, (true, pred) in enumerate([(0, 1), (0, 1), (0, 0), (0, 0)]):
        engine.add_result(make_record(true, t), pred)
    assert engine.accuracy() == pytest.approx(1.0)


def test_predicted_class_ties_and_nan():
    assert predicted_class([0.5, 0.5]) == 0
    assert predicted_class([float("nan"), 0.1]) == 1
    assert predicted_class([]) == 0
    assert predicted_class(3) == 3


def test_average_measurements_propagates_nan():
    rows = [{"a": 1.0, "b": 2.0}, {"a": 3.0, "b": float("nan")}]
    avg = average_measurements(rows)
    assert avg["a"] == pytest.approx(2.0)
    assert math.isnan(avg["b"])
    assert average_measurements([]) == {}


def test_no_change_baselines_per_class(scored):
    # no-change predictions 0, 0, 1, 1
    assert scored.precision_no_change(0) == pytest.approx(2.0 / 3.0)
    assert scored.precision_no_change(1) == pytest.approx(0.0)
    assert scored.recall_no_change(0) == pytest.approx(0.5)
    assert scored.recall_no_change(1) == pytest.approx(0.5)
    assert scored.f1_no_change(0) == pytest.approx(4.0 / 7.0)
    assert scored.f1_no_change(1) == pytest.approx(0.0)
    assert scored.gmean_no_change() == pytest.approx(0.5)


def test_majority_baselines_per_class(scored):
    assert scored.precision_majority(0) == pytest.approx(2.0 / 3.0)
    assert scored.precision_majority(1) == pytest.approx(0.0)
    assert scored.recall_majority(0) == pytest.approx(0.5)
    assert scored.recall_majority(1) == pytest.approx(0.5)
    assert scored.f1_majority(0) == pytest.approx(4.0 / 7.0)
    assert scored.gmean_majority() == pytest.approx(0.5)


def test_kappa_baseline_variants(scored):
    assert scored.kappa_precision_temporal(0) == pytest.approx(0.0)
    assert scored.kappa_precision_temporal(1) == pytest.approx(1.0)
    assert scored.kappa_precision_m(0) == pytest.approx(0.0)
    assert scored.kappa_precision_m(1) == pytest.approx(1.0)
    assert scored.kappa_recall_temporal(0) == pytest.approx(1.0)
    assert scored.kappa_recall_temporal(1) == pytest.approx(0.0)
    assert scored.kappa_recall_m(0) == pytest.approx(1.0)
    assert scored.kappa_recall_m(1) == pytest.approx(0.0)
    # f1(0) = 0.8 against 4/7, f1(1) = 2/3 against 0
    assert scored.kappa_f1_temporal(0) == pytest.approx(8.0 / 15.0)
    assert scored.kappa_f1_temporal(1) == pytest.approx(2.0 / 3.0)
    assert scored.kappa_f1_m(0) == pytest.approx(8.0 / 15.0)
    assert scored.kappa_f1_m(1) == pytest.approx(2.0 / 3.0)
    assert scored.kappa_gmean_temporal() == pytest.approx(2.0 * math.sqrt(0.5) - 1.0)
    assert scored.kappa_gmean_m() == pytest.approx(2.0 * math.sqrt(0.5) - 1.0)
    m = scored.measurements()
    assert m["Kappa Recall Temporal Statistic 0 (percent)"] == pytest.approx(100.0)
    assert m["Kappa M Statistic F1 Score for class 0 (percent)"] == pytest.approx(800.0 / 15.0)


def test_record_counts_towards_its_own_majority(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(1), 1)
    assert engine.weight_majority.estimation() == pytest.approx(1.0)
    assert engine.precision_majority(1) == pytest.approx(1.0)
    assert engine.recall_majority(1) == pytest.approx(1.0)
    # last seen class starts at 0
    assert engine.precision_no_change(1) == pytest.approx(0.0)
    assert math.isnan(engine.kappa_m())


def test_per_class_majority_reads_columns_updated_so_far(make_record):
    engine = MetricEngine()
    engine.add_result(make_record(1), 1)
    engine.add_result(make_record(0), 0)
    # while class 0 is scored, column 1 still holds 1.0 and leads
    assert engine.recall_majority(0) == pytest.approx(0.0)
    assert engine.precision_majority(0) == pytest.approx(0.0)
    # after both columns are updated they tie at 0.5 and class 0 wins
    assert engine.majority_class() == 0
    assert engine.weight_majority.estimation() == pytest.approx(1.0)


def test_majority_ties_go_to_lowest_index(make_record):
    engine = MetricEngine()
    assert engine.majority_class() == 0
    engine.add_result(make_record(2, num_classes=3), 0)
    engine.add_result(make_record(1, num_classes=3), 0)
    assert engine.majority_class() == 1
    engine.add_result(make_record(2, num_classes=3), 0)
    assert engine.majority_class() == 2


def test_noise_flips_predictions(make_record):
    engine = MetricEngine(noise=1.0, random_state=0)
    for t, true in enumerate([0, 1, 0, 1]):
        engine.add_result(make_record(true, t), true)
    assert engine.accuracy() == pytest.approx(0.0)
    assert engine.classes[1].row_kappa.estimation() == pytest.approx(0.5)


def test_noise_is_reproducible_with_seed(make_record):
    rng = np.random.default_rng(5)
    sequence = [(int(rng.integers(0, 2)), int(rng.integers(0, 2))) for _ in range(40)]
    engines = [MetricEngine(noise=0.3, random_state=11) for _ in range(2)]
    for engine in engines:
        for t, (true, pred) in enumerate(sequence):
            engine.add_result(make_record(true, t), pred)
    assert engines[0].accuracy() == engines[1].accuracy()
    clean = MetricEngine(noise=0.0)
    for t, (true, pred) in enumerate(sequence):
        clean.add_result(make_record(true, t), pred)
    expected = sum(1 for true, pred in sequence if true == pred) / len(sequence)
    assert clean.accuracy() == pytest.approx(expected)


def test_noise_outside_unit_interval_is_rejected():
    with pytest.raises(ValueError):
        MetricEngine(noise=1.5)
