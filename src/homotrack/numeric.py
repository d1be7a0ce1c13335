# numeric.py
"""
Real/complex dtype pairs the tracker is generic over.

A pair is validated once, when a tracker is built; nothing downstream
re-checks it.
"""
from dataclasses import dataclass

import torch

from .errors import PrecisionMismatchError


@dataclass(frozen=True)
class NumericTypePair:
    real:    torch.dtype         # step sizes, norms, tolerances
    complex: torch.dtype         # times, space points, residuals

    def __post_init__(self):
        if not self.complex.is_complex:
            raise PrecisionMismatchError(
                f"{self.complex} is not a complex dtype")
        if self.real.is_complex or not self.real.is_floating_point:
            raise PrecisionMismatchError(
                f"{self.real} is not a real floating dtype")
        # the real part of the complex type must *be* the real type
        underlying = torch.empty((), dtype=self.complex).real.dtype
        if underlying != self.real:
            raise PrecisionMismatchError(
                "underlying complex type and the type for comparisons must "
                f"match: {self.complex} has real part {underlying}, "
                f"not {self.real}")

    @property
    def eps(self) -> float:
        return torch.finfo(self.real).eps

    def to_complex(self, x) -> torch.Tensor:
        """Coerce scalars, lists or tensors to a complex tensor of this pair."""
        if isinstance(x, torch.Tensor):
            return x.to(self.complex)
        # straight to the target dtype; a detour through float32 loses digits
        return torch.as_tensor(x, dtype=self.complex)

    def to_real(self, x) -> torch.Tensor:
        if isinstance(x, torch.Tensor):
            return x.to(self.real)
        return torch.as_tensor(x, dtype=self.real)


DOUBLE = NumericTypePair(real=torch.float64, complex=torch.complex128)
SINGLE = NumericTypePair(real=torch.float32, complex=torch.complex64)
