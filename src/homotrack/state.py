# state.py -----------------------------------------------------------------
from dataclasses import dataclass, field
from typing import Optional

import torch


@dataclass
class ConditioningEstimate:
    norm_jacobian:             float = 0.0
    norm_jacobian_inverse:     float = 0.0
    condition_number_estimate: float = 0.0


@dataclass
class TrackerState:
    """
    Everything that changes while one path is tracked.

    Created by `initialize`, mutated only by the owning tracker, thrown away
    (or re-initialized) once a terminal code comes back.
    """
    # user-visible state
    current_time:      torch.Tensor                # complex scalar
    end_time:          torch.Tensor
    current_step_size: float
    current_space:     torch.Tensor                # (n,) complex

    # step control
    next_step_size:    float        = 0.0
    delta_t:           Optional[torch.Tensor] = None
    lands_on_end_time: bool         = False    # delta_t was clamped to reach end_time

    # scratch vectors filled by the predictor / corrector
    predicted_space:   Optional[torch.Tensor] = None
    tentative_space:   Optional[torch.Tensor] = None

    # counters
    num_successful_steps:                int = 0
    num_failed_steps:                    int = 0
    num_successful_steps_since_increase: int = 0
    num_steps_since_conditioning_check:  int = 0

    # diagnostics carried between steps
    conditioning:  ConditioningEstimate = field(default_factory=ConditioningEstimate)
    norm_delta_x:  float = 0.0
    num_newton_iterations: int = 0

    @property
    def num_total_steps(self) -> int:
        return self.num_successful_steps + self.num_failed_steps
