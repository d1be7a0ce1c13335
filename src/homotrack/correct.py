# correct.py
"""
Newton corrector at fixed time, and `refine` built on top of it.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import torch

from .config import NewtonConfig
from .linsolve import LinearSolve, default_solver
from .status import SuccessCode
from .system import System

logger = logging.getLogger(__name__)


@dataclass
class NewtonResult:
    code:         SuccessCode
    point:        torch.Tensor   # last iterate, overwritten even on failure
    iterations:   int   = 0
    norm_delta_x: float = float("inf")

    @property
    def converged(self) -> bool:
        return self.code is SuccessCode.Success


# --------------------------------------------------------------------------- #
def correct(system:    System,
            x0:        torch.Tensor,
            t:         torch.Tensor,
            *,
            tolerance:                 float,
            min_num_iterations:        int,
            max_num_iterations:        int,
            solve:                     LinearSolve,
            path_truncation_threshold: float = float("inf"),
            ) -> NewtonResult:
    """
    Newton's method on x -> H(x, t) from the predicted point `x0`.

    Convergence is measured on ||dx||, not on the residual. At least
    `min_num_iterations` updates are applied even if the first one is
    already below `tolerance`.
    """
    x = x0.clone()
    norm_dx = float("inf")

    for it in range(1, max_num_iterations + 1):
        H = system.residual(x, t)
        J = system.jacobian(x, t)
        dx, ok = solve(J, -H)
        if not ok:
            return NewtonResult(SuccessCode.MatrixSolveFailure, x, it, norm_dx)

        x = x + dx
        norm_dx = torch.linalg.vector_norm(dx).item()

        # runaway iterate; a smaller step will not bring it back
        if torch.linalg.vector_norm(x).item() > path_truncation_threshold:
            logger.debug("Newton iterate left the ball of radius %g at t=%s",
                         path_truncation_threshold, complex(t))
            return NewtonResult(SuccessCode.GoingToInfinity, x, it, norm_dx)

        if it >= min_num_iterations and norm_dx < tolerance:
            return NewtonResult(SuccessCode.Success, x, it, norm_dx)

    return NewtonResult(SuccessCode.FailedToConverge, x, max_num_iterations, norm_dx)


def refine(system:      System,
           start_point: torch.Tensor,
           time:        torch.Tensor,
           tolerance:   float,
           newton:      Optional[NewtonConfig] = None,
           *,
           solve:       Optional[LinearSolve] = None,
           ) -> NewtonResult:
    """
    Polish `start_point` at a fixed `time` without touching any tracker.

    Meant for endgames and final cleanup, where the point should satisfy the
    system more tightly (or more loosely) than the tracking tolerance.
    """
    newton = newton or NewtonConfig()
    return correct(system, start_point, time,
                   tolerance=tolerance,
                   min_num_iterations=newton.min_num_iterations,
                   max_num_iterations=newton.max_num_iterations,
                   solve=solve or default_solver())
