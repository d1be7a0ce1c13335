# tracker.py
"""
Fixed-precision path tracking.

`PathTracker` is the interface every tracker variant offers; the
fixed-precision implementation drives predictor, corrector and step-size
control over one `TrackerState` per path. Numerical trouble comes back as
`SuccessCode` values, never as exceptions.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import torch

from .config import NewtonConfig, SteppingConfig, TrackerConfig
from .correct import NewtonResult, correct
from .errors import DimensionMismatchError, PrecisionMismatchError
from .events import (CorrectorMatrixSolveFailure, EventBus, FailedStep,
                     FirstStepPredictorMatrixSolveFailure, InfinitePathTruncation,
                     Initializing, NewStep, Subscriber, SuccessfulCorrect,
                     SuccessfulPredict, SuccessfulStep, TrackingEnded)
from .linsolve import LinearSolve, default_solver
from .numeric import DOUBLE, SINGLE, NumericTypePair
from .predict import predict
from .state import TrackerState
from .status import SuccessCode
from .step_control import StepSizeController
from .system import System

logger = logging.getLogger(__name__)

StopCondition = Callable[[TrackerState], bool]


@dataclass
class PathResult:
    code:                 SuccessCode
    solution:             torch.Tensor
    end_time:             complex
    num_successful_steps: int
    num_failed_steps:     int


# --------------------------------------------------------------------------- #
class PathTracker(ABC):
    """Operations shared by all tracker variants."""

    @abstractmethod
    def initialize(self, start_time, end_time, start_point) -> SuccessCode: ...

    @abstractmethod
    def pre_iteration_check(self) -> SuccessCode: ...

    @abstractmethod
    def iteration(self) -> SuccessCode: ...

    @abstractmethod
    def check_going_to_infinity(self) -> SuccessCode: ...

    @abstractmethod
    def extract_solution(self) -> torch.Tensor: ...

    @abstractmethod
    def track_path(self, start_time, end_time, start_point) -> SuccessCode: ...


class FixedPrecisionTracker(PathTracker):
    """Adaptive-step predictor-corrector tracker at one fixed precision."""

    # ---- construction -----------------------------------------------------
    def __init__(self, system: System, *,
                 numeric:  NumericTypePair = DOUBLE,
                 tracking: Optional[TrackerConfig]  = None,
                 stepping: Optional[SteppingConfig] = None,
                 newton:   Optional[NewtonConfig]   = None,
                 solve:    Optional[LinearSolve]    = None,
                 events:   Optional[EventBus]       = None,
                 seed:     Optional[int]            = None):
        if not isinstance(numeric, NumericTypePair):
            raise PrecisionMismatchError(
                f"numeric must be a NumericTypePair, got {type(numeric).__name__}")

        self.system     = system
        self.numeric    = numeric
        self.tracking   = tracking or TrackerConfig()
        self.stepping   = stepping or SteppingConfig()
        self.newton     = newton or NewtonConfig()
        self.solve      = solve or default_solver()
        self.events     = events or EventBus()
        self.controller = StepSizeController(self.stepping)

        self.stop_conditions: List[StopCondition] = []
        self._generator = torch.Generator()
        if seed is not None:
            self._generator.manual_seed(seed)

        self.state: Optional[TrackerState] = None
        self._step_size = self.stepping.initial_step_size

    # ---- observers / external stop ----------------------------------------
    def add_observer(self, observer: Subscriber, *kinds) -> Subscriber:
        return self.events.subscribe(observer, *kinds)

    def remove_observer(self, observer: Subscriber) -> None:
        self.events.unsubscribe(observer)

    def add_stop_condition(self, cond: StopCondition) -> None:
        """`cond(state)` returning True stops the path with ExternallyTerminated."""
        self.stop_conditions.append(cond)

    def set_step_size(self, h: float) -> None:
        """Step size used by the next `initialize` when reinitialization is off."""
        if h <= 0:
            raise ValueError(f"step size must be positive, got {h}")
        if h > self.stepping.max_step_size:
            raise ValueError(f"step size {h} exceeds max_step_size "
                             f"{self.stepping.max_step_size}")
        self._step_size = float(h)
        if self.state is not None:
            self.state.current_step_size = float(h)

    def _emit(self, kind, **extra) -> None:
        s = self.state
        self.events.publish(kind(time=complex(s.current_time),
                                 step_size=s.current_step_size,
                                 num_successful_steps=s.num_successful_steps,
                                 num_failed_steps=s.num_failed_steps,
                                 **extra))

    # ---- initialization ---------------------------------------------------
    def initialize(self, start_time, end_time, start_point) -> SuccessCode:
        """
        Set up a fresh `TrackerState`: copy start time and point, size the
        first step, zero the counters. Never fails; validating the input is
        up to the caller.
        """
        t0 = self.numeric.to_complex(start_time)
        t1 = self.numeric.to_complex(end_time)
        x0 = self.numeric.to_complex(start_point).clone()

        h = self._step_size
        if self.tracking.reinitialize_step_size:
            h = self.controller.initial_step_size(t0, t1)

        self.state = TrackerState(current_time=t0, end_time=t1,
                                  current_step_size=h, current_space=x0,
                                  next_step_size=h)
        self.reset_counters()

        self._emit(Initializing, end_time=complex(t1), start_point=x0.clone())
        return SuccessCode.Success

    def reset_counters(self) -> None:
        s = self.state
        s.num_successful_steps = 0
        s.num_failed_steps = 0
        s.num_successful_steps_since_increase = 0
        # start at the frequency so the first step always estimates conditioning
        s.num_steps_since_conditioning_check = self.tracking.conditioning_frequency

    # ---- gate -------------------------------------------------------------
    def pre_iteration_check(self) -> SuccessCode:
        s = self.state
        if s.num_successful_steps >= self.stepping.max_num_steps:
            return SuccessCode.MaxNumStepsTaken
        if s.current_step_size < self.stepping.min_step_size:
            return SuccessCode.MinStepSizeReached
        return SuccessCode.Success

    def _externally_stopped(self) -> bool:
        return any(cond(self.state) for cond in self.stop_conditions)

    # ---- one predict/correct cycle ----------------------------------------
    def _compute_delta_t(self) -> torch.Tensor:
        s = self.state
        remaining = s.end_time - s.current_time
        dist = torch.abs(remaining).item()
        s.lands_on_end_time = dist <= s.current_step_size
        if s.lands_on_end_time:
            return remaining
        return s.current_step_size * remaining / dist

    def iteration(self) -> SuccessCode:
        """
        Predict, then correct, at `current_time + delta_t`.

        Predictor and corrector failures shrink the step and hand the code
        back for a retry. GoingToInfinity is returned as is, with no step
        size change. On success `current_space` holds the corrected point;
        time is advanced by `increment_counters_success`.
        """
        s = self.state
        s.delta_t = self._compute_delta_t()
        self._emit(NewStep, delta_t=complex(s.delta_t))

        estimate = s.num_steps_since_conditioning_check >= self.tracking.conditioning_frequency
        pred = predict(self.tracking.predictor, self.system,
                       s.current_space, s.current_time, s.delta_t,
                       solve=self.solve, estimate_condition=estimate,
                       generator=self._generator)
        if estimate:
            s.num_steps_since_conditioning_check = 1
        else:
            s.num_steps_since_conditioning_check += 1

        if pred.code is not SuccessCode.Success:
            self._emit(FirstStepPredictorMatrixSolveFailure, code=pred.code)
            self.controller.on_failure(s)
            self.update_step_size()
            return pred.code

        if pred.conditioning is not None:
            s.conditioning = pred.conditioning
        s.predicted_space = pred.point
        self._emit(SuccessfulPredict, predicted_point=pred.point.clone())

        tentative_time = s.current_time + s.delta_t
        threshold = (self.tracking.path_truncation_threshold
                     if self.tracking.infinite_path_truncation else float("inf"))
        newt = correct(self.system, s.predicted_space, tentative_time,
                       tolerance=self.tracking.tracking_tolerance,
                       min_num_iterations=self.newton.min_num_iterations,
                       max_num_iterations=self.newton.max_num_iterations,
                       solve=self.solve,
                       path_truncation_threshold=threshold)
        s.tentative_space = newt.point
        s.norm_delta_x = newt.norm_delta_x
        s.num_newton_iterations = newt.iterations

        if newt.code is SuccessCode.GoingToInfinity:
            return newt.code                   # nothing a smaller step can do
        if newt.code is not SuccessCode.Success:
            self._emit(CorrectorMatrixSolveFailure, code=newt.code)
            self.controller.on_failure(s)
            self.update_step_size()
            return newt.code

        self._emit(SuccessfulCorrect, corrected_point=newt.point.clone(),
                   iterations=newt.iterations)
        s.current_space = s.tentative_space
        return SuccessCode.Success

    def update_step_size(self) -> SuccessCode:
        """Commit `next_step_size`."""
        self.controller.update(self.state)
        return SuccessCode.Success

    # ---- counters ---------------------------------------------------------
    def increment_counters_success(self) -> None:
        s = self.state
        s.num_successful_steps += 1
        s.num_successful_steps_since_increase += 1
        # t + (t_end - t) need not round to t_end; snap to it instead
        if s.lands_on_end_time:
            s.current_time = s.end_time.clone()
        else:
            s.current_time = s.current_time + s.delta_t

        grew = self.controller.on_success(s)
        self.update_step_size()
        logger.debug("step %d accepted, t=%s, h=%.3e%s", s.num_successful_steps,
                     complex(s.current_time), s.current_step_size,
                     " (increased)" if grew else "")
        self._emit(SuccessfulStep, point=s.current_space.clone(),
                   step_size_increased=grew)

    def increment_counters_fail(self, code: SuccessCode = SuccessCode.FailedToConverge) -> None:
        s = self.state
        s.num_failed_steps += 1
        s.num_successful_steps_since_increase = 0
        logger.debug("step rejected at t=%s (%s), h -> %.3e",
                     complex(s.current_time), code.value, s.current_step_size)
        self._emit(FailedStep, code=code)

    # ---- divergence -------------------------------------------------------
    def current_norm(self) -> float:
        return torch.linalg.vector_norm(self.state.current_space).item()

    def check_going_to_infinity(self) -> SuccessCode:
        if self.current_norm() > self.tracking.path_truncation_threshold:
            return SuccessCode.GoingToInfinity
        return SuccessCode.Success

    def on_infinite_truncation(self) -> None:
        self._emit(InfinitePathTruncation, norm=self.current_norm())

    # ---- refinement -------------------------------------------------------
    def refine(self, start_point, time, tolerance: Optional[float] = None) -> NewtonResult:
        """
        Newton at fixed `time` from `start_point`, to `tolerance` (the tracking
        tolerance if omitted). Leaves the tracker state untouched.
        """
        tol = self.tracking.tracking_tolerance if tolerance is None else tolerance
        return correct(self.system,
                       self.numeric.to_complex(start_point),
                       self.numeric.to_complex(time),
                       tolerance=tol,
                       min_num_iterations=self.newton.min_num_iterations,
                       max_num_iterations=self.newton.max_num_iterations,
                       solve=self.solve)

    def _initial_refinement(self) -> SuccessCode:
        s = self.state
        newt = self.refine(s.current_space, s.current_time)
        if newt.code is SuccessCode.MatrixSolveFailure:
            return SuccessCode.SingularStartPoint
        if newt.converged:
            s.current_space = newt.point
        else:
            logger.debug("start point refinement did not converge (%s); "
                         "tracking from the given point", newt.code.value)
        return SuccessCode.Success

    # ---- finalization -----------------------------------------------------
    def extract_solution(self) -> torch.Tensor:
        """Copy of the current space point. Check the terminal code first."""
        n = self.system.num_variables
        return self.state.current_space[:n].clone()

    def post_track_cleanup(self, code: SuccessCode) -> SuccessCode:
        self._emit(TrackingEnded, code=code)
        if code.ok:
            logger.info("path tracked to t=%s in %d steps (%d failed)",
                        complex(self.state.current_time),
                        self.state.num_total_steps, self.state.num_failed_steps)
        else:
            logger.info("path stopped at t=%s: %s",
                        complex(self.state.current_time), code.value)
        return code

    # ---- main loop --------------------------------------------------------
    def track_path(self, start_time, end_time, start_point) -> SuccessCode:
        """
        Track from (start_time, start_point) to end_time; read the answer
        with `extract_solution`.
        """
        start_point = self.numeric.to_complex(start_point)
        if start_point.shape != (self.system.num_variables,):
            raise DimensionMismatchError(
                f"start point has shape {tuple(start_point.shape)}, system has "
                f"{self.system.num_variables} variables")

        self.initialize(start_time, end_time, start_point)

        code = self._initial_refinement()
        if code is not SuccessCode.Success:
            return self.post_track_cleanup(code)

        s = self.state
        while not torch.equal(s.current_time, s.end_time):
            code = self.pre_iteration_check()
            if code is not SuccessCode.Success:
                return self.post_track_cleanup(code)
            if self._externally_stopped():
                return self.post_track_cleanup(SuccessCode.ExternallyTerminated)

            step_code = self.iteration()

            if step_code is SuccessCode.GoingToInfinity or (
                    self.tracking.infinite_path_truncation
                    and self.check_going_to_infinity() is SuccessCode.GoingToInfinity):
                self.on_infinite_truncation()
                return self.post_track_cleanup(SuccessCode.GoingToInfinity)

            if step_code.ok:
                self.increment_counters_success()
            else:
                self.increment_counters_fail(step_code)

        return self.post_track_cleanup(SuccessCode.Success)

    def track(self, start_time, end_time, start_point) -> PathResult:
        """`track_path` plus `extract_solution` in one call."""
        code = self.track_path(start_time, end_time, start_point)
        s = self.state
        return PathResult(code=code,
                          solution=self.extract_solution(),
                          end_time=complex(s.current_time),
                          num_successful_steps=s.num_successful_steps,
                          num_failed_steps=s.num_failed_steps)


def double_precision_tracker(system: System, **kwargs) -> FixedPrecisionTracker:
    return FixedPrecisionTracker(system, numeric=DOUBLE, **kwargs)


def single_precision_tracker(system: System, **kwargs) -> FixedPrecisionTracker:
    return FixedPrecisionTracker(system, numeric=SINGLE, **kwargs)
