import numpy as np
import pytest

from delaylib.learners import (
    IncrementalSklearnLearner,
    MajorityClassLearner,
    NoChangeLearner,
    available_learners,
    make_learner,
)
from delaylib.records import Record


def _record(label, x=(0.0, 0.0), weight=1.0, num_classes=2):
    return Record(features=np.asarray(x, dtype=float), class_value=label, num_classes=num_classes, weight=weight)


def test_majority_class_votes_with_weighted_counts():
    learner = MajorityClassLearner()
    learner.train(_record(1, weight=2.0))
    learner.train(_record(0))
    learner.train(_record(None))
    votes = learner.predict(_record(0))
    assert list(votes) == [1.0, 2.0]


def test_no_change_predicts_last_class():
    learner = NoChangeLearner()
    assert list(learner.predict(_record(0))) == [0.0, 0.0]
    learner.train(_record(1))
    assert int(np.argmax(learner.predict(_record(0)))) == 1


def test_copy_is_independent():
    learner = MajorityClassLearner()
    clone = learner.copy()
    clone.train(_record(1))
    assert list(learner.predict(_record(0))) == [0.0, 0.0]


def test_sklearn_learner_votes_before_and_after_training():
    learner = make_learner("gaussian_nb")
    assert isinstance(learner, IncrementalSklearnLearner)
    assert list(learner.predict(_record(0))) == [0.0, 0.0]
    assert learner.measure_byte_size() == 0
    for x, y in [((0.0, 0.0), 0), ((5.0, 5.0), 1), ((0.2, 0.1), 0), ((5.1, 4.9), 1)]:
        learner.train(_record(y, x))
    votes = learner.predict(_record(0, (5.0, 5.2)))
    assert votes.shape == (2,)
    assert int(np.argmax(votes)) == 1
    assert learner.measure_byte_size() > 0


def test_sklearn_learner_without_predict_proba():
    learner = make_learner("perceptron", {"max_iter": 5})
    learner.set_random_seed(3)
    learner.train(_record(1, (1.0, 1.0)))
    votes = learner.predict(_record(0, (1.0, 1.0)))
    assert votes.sum() == pytest.approx(1.0)


def test_reset_learning_forgets_model():
    learner = make_learner("sgd")
    learner.train(_record(0, (1.0, 0.0)))
    learner.reset_learning()
    assert learner.measure_byte_size() == 0


def test_registry():
    names = available_learners()
    assert {"majority_class", "no_change", "gaussian_nb", "sgd"} <= set(names)
    with pytest.raises(ValueError):
        make_learner("hoeffding_tree")
