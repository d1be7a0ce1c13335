# predict.py
"""
Explicit predictors for the Davidenko equation

    dx/dt = -J_x(x, t)^{-1} dH/dt(x, t),

whose solution through a start point is exactly the homotopy path. One
predictor step is one explicit Runge-Kutta step of this ODE, each stage
costing one linear solve.
"""
import logging, math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import torch

from .linsolve import LinearSolve
from .state import ConditioningEstimate
from .status import SuccessCode
from .system import System

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class ButcherTableau:
    c:     Tuple[float, ...]
    a:     Tuple[Tuple[float, ...], ...]     # strictly lower-triangular rows
    b:     Tuple[float, ...]
    b_hat: Optional[Tuple[float, ...]] = None  # embedded lower order weights
    order: int = 1

    @property
    def stages(self) -> int:
        return len(self.c)


EULER_TABLEAU = ButcherTableau(c=(0.0,), a=((),), b=(1.0,), order=1)

HEUN_TABLEAU = ButcherTableau(
    c=(0.0, 1.0),
    a=((), (1.0,)),
    b=(0.5, 0.5),
    b_hat=(1.0, 0.0),                 # Euler
    order=2)

RK4_TABLEAU = ButcherTableau(
    c=(0.0, 0.5, 0.5, 1.0),
    a=((), (0.5,), (0.0, 0.5), (0.0, 0.0, 1.0)),
    b=(1 / 6, 1 / 3, 1 / 3, 1 / 6),
    order=4)

# Fehlberg 4(5), propagating the fifth-order solution
RKF45_TABLEAU = ButcherTableau(
    c=(0.0, 1 / 4, 3 / 8, 12 / 13, 1.0, 1 / 2),
    a=((),
       (1 / 4,),
       (3 / 32, 9 / 32),
       (1932 / 2197, -7200 / 2197, 7296 / 2197),
       (439 / 216, -8.0, 3680 / 513, -845 / 4104),
       (-8 / 27, 2.0, -3544 / 2565, 1859 / 4104, -11 / 40)),
    b=(16 / 135, 0.0, 6656 / 12825, 28561 / 56430, -9 / 50, 2 / 55),
    b_hat=(25 / 216, 0.0, 1408 / 2565, 2197 / 4104, -1 / 5, 0.0),
    order=5)


class Predictor(Enum):
    EULER = "euler"
    HEUN  = "heun"
    RK4   = "rk4"
    RKF45 = "rkf45"

    @property
    def tableau(self) -> ButcherTableau:
        return _TABLES[self]


_TABLES = {
    Predictor.EULER: EULER_TABLEAU,
    Predictor.HEUN:  HEUN_TABLEAU,
    Predictor.RK4:   RK4_TABLEAU,
    Predictor.RKF45: RKF45_TABLEAU,
}


@dataclass
class PredictResult:
    code:           SuccessCode
    point:          torch.Tensor
    conditioning:   Optional[ConditioningEstimate] = None  # None if not recomputed
    error_estimate: Optional[float] = None                 # embedded pairs only
    solves:         int = 0


# --------------------------------------------------------------------------- #
def estimate_conditioning(J: torch.Tensor, solve: LinearSolve,
                          generator: Optional[torch.Generator] = None
                          ) -> Tuple[ConditioningEstimate, bool]:
    """
    ||J||_inf times an estimate of ||J^{-1}|| from one solve against a random
    right-hand side. One extra solve per estimate.
    """
    r = torch.randn(J.shape[0], dtype=J.dtype, generator=generator)
    y, ok = solve(J, r)
    if not ok:
        return ConditioningEstimate(), False

    norm_J     = torch.linalg.matrix_norm(J, ord=math.inf).item()
    norm_J_inv = (torch.linalg.vector_norm(y) / torch.linalg.vector_norm(r)).item()
    return ConditioningEstimate(norm_jacobian=norm_J,
                                norm_jacobian_inverse=norm_J_inv,
                                condition_number_estimate=norm_J * norm_J_inv), True


def davidenko_velocity(system: System, x: torch.Tensor, t: torch.Tensor,
                       solve: LinearSolve
                       ) -> Tuple[torch.Tensor, torch.Tensor, bool]:
    """Return (dx/dt, J, ok) at (x, t)."""
    J  = system.jacobian(x, t)
    Ht = system.time_derivative(x, t)
    v, ok = solve(J, -Ht)
    return v, J, ok


def predict(method: Predictor,
            system: System,
            x:      torch.Tensor,
            t:      torch.Tensor,
            dt:     torch.Tensor,
            *,
            solve:                 LinearSolve,
            estimate_condition:    bool = False,
            generator:             Optional[torch.Generator] = None,
            ) -> PredictResult:
    """
    One explicit RK step of size `dt` (complex allowed) from (x, t).

    A failed solve in the first stage gives
    MatrixSolveFailureFirstPartOfPrediction, in any later stage
    MatrixSolveFailure. The returned point is meaningless on failure.
    """
    tab = method.tableau
    k   = []
    conditioning = None

    for i in range(tab.stages):
        x_i = x
        for j, a_ij in enumerate(tab.a[i]):
            if a_ij != 0.0:
                x_i = x_i + (a_ij * dt) * k[j]
        t_i = t + tab.c[i] * dt

        v, J, ok = davidenko_velocity(system, x_i, t_i, solve)
        if not ok:
            code = (SuccessCode.MatrixSolveFailureFirstPartOfPrediction if i == 0
                    else SuccessCode.MatrixSolveFailure)
            logger.debug("predictor stage %d failed at t=%s", i, complex(t_i))
            return PredictResult(code, x, solves=i + 1)

        # conditioning comes from the Jacobian at the current point only
        if i == 0 and estimate_condition:
            conditioning, ok = estimate_conditioning(J, solve, generator)
            if not ok:
                return PredictResult(SuccessCode.MatrixSolveFailureFirstPartOfPrediction,
                                     x, solves=1)
        k.append(v)

    x_new = x
    for b_i, k_i in zip(tab.b, k):
        if b_i != 0.0:
            x_new = x_new + (b_i * dt) * k_i

    err = None
    if tab.b_hat is not None:
        diff = torch.zeros_like(x)
        for b_i, bh_i, k_i in zip(tab.b, tab.b_hat, k):
            if b_i != bh_i:
                diff = diff + ((b_i - bh_i) * dt) * k_i
        err = torch.linalg.vector_norm(diff).item()

    return PredictResult(SuccessCode.Success, x_new,
                         conditioning=conditioning, error_estimate=err,
                         solves=tab.stages + (conditioning is not None))
