import pytest

from homotrack import (ConfigurationError, NewtonConfig, Predictor,
                       SteppingConfig, TrackerConfig)


def test_defaults():
    s = SteppingConfig()
    assert s.initial_step_size == 0.1
    assert s.step_size_fail_factor == 0.5
    assert s.step_size_success_factor == 2.0
    assert s.success_streak_for_increase == 5
    n = NewtonConfig()
    assert (n.min_num_iterations, n.max_num_iterations) == (1, 2)
    t = TrackerConfig()
    assert t.predictor is Predictor.RK4
    assert t.tracking_tolerance == 1e-5


@pytest.mark.parametrize("kwargs", [
    dict(initial_step_size=0.0),
    dict(min_step_size=-1.0),
    dict(max_step_size=1e-20),
    dict(initial_step_size=0.5),
    dict(initial_step_size=0.05, max_step_size=0.02),
    dict(max_num_steps=0),
    dict(min_num_steps=0),
    dict(step_size_fail_factor=1.0),
    dict(step_size_fail_factor=0.0),
    dict(step_size_success_factor=1.0),
    dict(success_streak_for_increase=0),
])
def test_bad_stepping(kwargs):
    with pytest.raises(ConfigurationError):
        SteppingConfig(**kwargs)


def test_bad_newton():
    with pytest.raises(ConfigurationError):
        NewtonConfig(min_num_iterations=0)
    with pytest.raises(ConfigurationError):
        NewtonConfig(min_num_iterations=3, max_num_iterations=2)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        TrackerConfig(tracking_tolerance=0.0)


def test_predictor_by_name():
    assert TrackerConfig(predictor="euler").predictor is Predictor.EULER
    assert TrackerConfig(predictor="RKF45").predictor is Predictor.RKF45
    with pytest.raises(ConfigurationError):
        TrackerConfig(predictor="leapfrog")


def test_with_changes_revalidates():
    s = SteppingConfig().with_changes(max_step_size=0.5)
    assert s.max_step_size == 0.5
    assert s.initial_step_size == 0.1
    with pytest.raises(ConfigurationError):
        s.with_changes(step_size_fail_factor=2.0)
