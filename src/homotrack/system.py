# system.py
"""
Homotopies the tracker consumes as black boxes.

A system H(x, t) exposes its residual, its Jacobian with respect to the
space variables x, and its partial derivative with respect to t. All
three take and return torch tensors in the caller's complex dtype.
"""
import cmath, itertools, math
from abc import ABC, abstractmethod
from typing import Callable, Iterator, Sequence

import torch


def _int_pow(z: torch.Tensor, k: int) -> torch.Tensor:
    # repeated multiplication; complex pow goes through log and breaks at 0
    out = torch.ones_like(z)
    for _ in range(k):
        out = out * z
    return out


class System(ABC):

    @property
    @abstractmethod
    def num_variables(self) -> int: ...

    @abstractmethod
    def residual(self, x: torch.Tensor, t: torch.Tensor) -> torch.Tensor:
        """H(x, t), shape (n,)."""

    @abstractmethod
    def jacobian(self, x: torch.Tensor, t: torch.Tensor) -> torch.Tensor:
        """dH/dx at (x, t), shape (n, n)."""

    @abstractmethod
    def time_derivative(self, x: torch.Tensor, t: torch.Tensor) -> torch.Tensor:
        """dH/dt at (x, t), shape (n,)."""


class FunctionSystem(System):
    """Wrap three user callables ``f(x, t)`` into a `System`."""

    def __init__(self, num_variables: int,
                 residual:        Callable,
                 jacobian:        Callable,
                 time_derivative: Callable):
        self._n   = int(num_variables)
        self._res = residual
        self._jac = jacobian
        self._dt  = time_derivative

    @property
    def num_variables(self) -> int:
        return self._n

    def residual(self, x, t):
        return torch.as_tensor(self._res(x, t), dtype=x.dtype)

    def jacobian(self, x, t):
        return torch.as_tensor(self._jac(x, t), dtype=x.dtype)

    def time_derivative(self, x, t):
        return torch.as_tensor(self._dt(x, t), dtype=x.dtype)


class TargetSystem(ABC):
    """A square, time-free system F(x) = 0 (target or start of a homotopy)."""

    num_variables: int

    @abstractmethod
    def evaluate(self, x: torch.Tensor) -> torch.Tensor: ...

    @abstractmethod
    def jacobian(self, x: torch.Tensor) -> torch.Tensor: ...


class CallableTargetSystem(TargetSystem):

    def __init__(self, num_variables: int, f: Callable, jac: Callable):
        self.num_variables = int(num_variables)
        self._f   = f
        self._jac = jac

    def evaluate(self, x):
        return torch.as_tensor(self._f(x), dtype=x.dtype)

    def jacobian(self, x):
        return torch.as_tensor(self._jac(x), dtype=x.dtype)


class TotalDegreeStartSystem(TargetSystem):
    """
    G_i(x) = x_i^{d_i} - 1.

    Its prod(d_i) nonsingular roots are all combinations of roots of unity,
    which makes it the usual start system for a polynomial target whose
    i-th equation has degree d_i.
    """

    def __init__(self, degrees: Sequence[int]):
        if any(int(d) < 1 for d in degrees):
            raise ValueError(f"degrees must be positive, got {list(degrees)}")
        self.degrees       = [int(d) for d in degrees]
        self.num_variables = len(self.degrees)

    def evaluate(self, x):
        return torch.stack([_int_pow(x[i], d) for i, d in enumerate(self.degrees)]) - 1

    def jacobian(self, x):
        diag = torch.stack([d * _int_pow(x[i], d - 1)
                            for i, d in enumerate(self.degrees)])
        return torch.diag(diag)

    @property
    def num_start_points(self) -> int:
        return math.prod(self.degrees)

    def start_points(self, dtype=torch.complex128) -> Iterator[torch.Tensor]:
        roots = [[cmath.exp(2j * math.pi * k / d) for k in range(d)]
                 for d in self.degrees]
        for combo in itertools.product(*roots):
            yield torch.tensor(combo, dtype=dtype)


class StraightLineHomotopy(System):
    """
    H(x, t) = (1 - t) F(x) + t * gamma * G(x),   tracked from t = 1 to t = 0.

    `gamma` is the random complex constant of the gamma trick; a generic
    choice keeps paths away from singularities for t in (0, 1].
    """

    def __init__(self, target: TargetSystem, start: TargetSystem,
                 gamma: complex | None = None, *, seed: int | None = None):
        if target.num_variables != start.num_variables:
            raise ValueError(
                "target and start systems differ in size "
                f"({target.num_variables} vs {start.num_variables})")
        if gamma is None:
            gen   = torch.Generator().manual_seed(seed) if seed is not None else None
            theta = 2.0 * math.pi * torch.rand((), generator=gen, dtype=torch.float64).item()
            gamma = cmath.exp(1j * theta)
        self.target = target
        self.start  = start
        self.gamma  = complex(gamma)

    @property
    def num_variables(self) -> int:
        return self.target.num_variables

    def residual(self, x, t):
        return (1 - t) * self.target.evaluate(x) + t * self.gamma * self.start.evaluate(x)

    def jacobian(self, x, t):
        return (1 - t) * self.target.jacobian(x) + t * self.gamma * self.start.jacobian(x)

    def time_derivative(self, x, t):
        return self.gamma * self.start.evaluate(x) - self.target.evaluate(x)
