# step_control.py
"""
Step-size policy: shrink at once on any failure, grow only after a streak.
"""
from .config import SteppingConfig
from .state import TrackerState


class StepSizeController:

    def __init__(self, stepping: SteppingConfig):
        self.stepping = stepping

    # ---- proposals --------------------------------------------------------
    def on_failure(self, state: TrackerState) -> None:
        state.next_step_size = self.stepping.step_size_fail_factor * state.current_step_size

    def on_success(self, state: TrackerState) -> bool:
        """Propose a larger step if the streak is long enough; True if it did."""
        cfg = self.stepping
        if state.num_successful_steps_since_increase < cfg.success_streak_for_increase:
            state.next_step_size = state.current_step_size
            return False
        state.next_step_size = min(cfg.step_size_success_factor * state.current_step_size,
                                   cfg.max_step_size)
        state.num_successful_steps_since_increase = 0
        return state.next_step_size > state.current_step_size

    def initial_step_size(self, start_time, end_time) -> float:
        """Bound the first step so `min_num_steps` steps are possible."""
        span = abs(complex(start_time) - complex(end_time))
        if span == 0.0:                    # nothing to track; keep the step positive
            return self.stepping.initial_step_size
        return min(self.stepping.initial_step_size, span / self.stepping.min_num_steps)

    # ---- commit -----------------------------------------------------------
    @staticmethod
    def update(state: TrackerState) -> None:
        state.current_step_size = state.next_step_size
