# linsolve.py
"""
Linear solves J x = b used inside the predictor and corrector.

Every solver is a callable ``solve(A, b) -> (x, ok)``. A failed solve is
reported through ``ok=False``; nothing in here raises on singular input.
"""
import logging
from typing import Protocol, Tuple

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla
import torch

logger = logging.getLogger(__name__)


class LinearSolve(Protocol):
    def __call__(self, A: torch.Tensor,
                 b: torch.Tensor) -> Tuple[torch.Tensor, bool]: ...


# --------------------------------------------------------------------------- #
# ---- helpers -------------------------------------------------------------- #
def _torch_csr(t: torch.Tensor) -> sp.csr_matrix:
    """Torch → SciPy CSR."""
    return sp.csr_matrix(t.detach().cpu().numpy())


def _finite(x: torch.Tensor) -> bool:
    return bool(torch.isfinite(x).all())
# --------------------------------------------------------------------------- #


class DenseLUSolve:
    """Dense LU with partial pivoting, ``torch.linalg.solve_ex``."""

    def __call__(self, A, b):
        x, info = torch.linalg.solve_ex(A, b.unsqueeze(-1), check_errors=False)
        x = x.squeeze(-1)
        if int(info) != 0:
            logger.debug("LU solve hit an exactly zero pivot (info=%d)", int(info))
            return x, False
        if not _finite(x):
            logger.debug("LU solve produced non-finite entries")
            return x, False
        return x, True


class GMRESSolve:
    """
    Restarted GMRES (SciPy) with an incomplete-LU preconditioner.

    Meant for larger, sparse Jacobians; the dense solver is the default.
    """

    def __init__(self, *, tol: float = 1e-12, maxiter: int = 500,
                 restart: int = 30, precondition: bool = True):
        self.tol          = tol
        self.maxiter      = maxiter
        self.restart      = restart
        self.precondition = precondition

    def _preconditioner(self, A_csr: sp.csr_matrix):
        try:
            ilu = spla.spilu(A_csr.tocsc())
        except RuntimeError as exc:                    # exactly singular factor
            logger.debug("ILU factorisation failed: %s", exc)
            return None, False
        return spla.LinearOperator(A_csr.shape, ilu.solve, dtype=A_csr.dtype), True

    def __call__(self, A, b):
        A_csr = _torch_csr(A)
        b_np  = b.detach().cpu().numpy()
        if A_csr.nnz == 0:
            return torch.full_like(b, float("nan")), False

        M = None
        if self.precondition:
            M, ok = self._preconditioner(A_csr)
            if not ok:
                return torch.full_like(b, float("nan")), False

        x_np, info = spla.gmres(A_csr, b_np, rtol=self.tol, atol=0.0,
                                restart=self.restart, maxiter=self.maxiter, M=M)
        x = torch.as_tensor(np.asarray(x_np), dtype=b.dtype, device=b.device)
        if info != 0:
            logger.debug("GMRES did not converge (info=%d)", info)
            return x, False
        if not _finite(x):
            return x, False
        return x, True


def default_solver() -> LinearSolve:
    return DenseLUSolve()
