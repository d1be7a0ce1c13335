# config.py ----------------------------------------------------------------
"""
Read-only tracker settings.

Defaults follow the usual double-precision tracking setup: start with a
step of 0.1, halve on failure, double after five straight successes.
"""
import dataclasses
from dataclasses import dataclass

from .errors import ConfigurationError
from .predict import Predictor


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigurationError(msg)


class _Config:
    def with_changes(self, **changes):
        """Return a copy with some fields replaced (re-validated)."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class SteppingConfig(_Config):
    initial_step_size:           float = 0.1
    max_step_size:               float = 0.1
    min_step_size:               float = 1e-14
    max_num_steps:               int   = 100_000
    min_num_steps:               int   = 1
    step_size_fail_factor:       float = 0.5
    step_size_success_factor:    float = 2.0
    success_streak_for_increase: int   = 5

    def __post_init__(self):
        _require(self.initial_step_size > 0,
                 f"initial_step_size must be positive, got {self.initial_step_size}")
        _require(self.min_step_size > 0,
                 f"min_step_size must be positive, got {self.min_step_size}")
        _require(self.max_step_size >= self.min_step_size,
                 "max_step_size must be >= min_step_size "
                 f"({self.max_step_size} < {self.min_step_size})")
        _require(self.initial_step_size <= self.max_step_size,
                 "initial_step_size must be <= max_step_size "
                 f"({self.initial_step_size} > {self.max_step_size})")
        _require(self.max_num_steps >= 1,
                 f"max_num_steps must be >= 1, got {self.max_num_steps}")
        _require(self.min_num_steps >= 1,
                 f"min_num_steps must be >= 1, got {self.min_num_steps}")
        _require(0.0 < self.step_size_fail_factor < 1.0,
                 f"step_size_fail_factor must lie in (0, 1), got {self.step_size_fail_factor}")
        _require(self.step_size_success_factor > 1.0,
                 f"step_size_success_factor must exceed 1, got {self.step_size_success_factor}")
        _require(self.success_streak_for_increase >= 1,
                 "success_streak_for_increase must be >= 1, "
                 f"got {self.success_streak_for_increase}")


@dataclass(frozen=True)
class NewtonConfig(_Config):
    min_num_iterations: int = 1
    max_num_iterations: int = 2

    def __post_init__(self):
        _require(self.min_num_iterations >= 1,
                 f"min_num_iterations must be >= 1, got {self.min_num_iterations}")
        _require(self.max_num_iterations >= self.min_num_iterations,
                 "max_num_iterations must be >= min_num_iterations "
                 f"({self.max_num_iterations} < {self.min_num_iterations})")


@dataclass(frozen=True)
class TrackerConfig(_Config):
    tracking_tolerance:        float     = 1e-5
    path_truncation_threshold: float     = 1e5
    conditioning_frequency:    int       = 1
    predictor:                 Predictor = Predictor.RK4
    reinitialize_step_size:    bool      = True
    infinite_path_truncation:  bool      = True   # off: no norm check, Newton unbounded too

    def __post_init__(self):
        _require(self.tracking_tolerance > 0,
                 f"tracking_tolerance must be positive, got {self.tracking_tolerance}")
        _require(self.path_truncation_threshold > 0,
                 "path_truncation_threshold must be positive, "
                 f"got {self.path_truncation_threshold}")
        _require(self.conditioning_frequency >= 1,
                 f"conditioning_frequency must be >= 1, got {self.conditioning_frequency}")
        # accept "rk4", "euler", ... for convenience
        if not isinstance(self.predictor, Predictor):
            try:
                object.__setattr__(self, "predictor",
                                   Predictor[str(self.predictor).upper()])
            except KeyError:
                raise ConfigurationError(
                    f"unknown predictor {self.predictor!r}; choose from "
                    f"{[p.name for p in Predictor]}") from None
