import pytest
import torch

from homotrack import DOUBLE, SINGLE, NumericTypePair, PrecisionMismatchError
from homotrack.tracker import FixedPrecisionTracker

from conftest import linear_path_system


def test_presets_are_commensurate():
    assert DOUBLE.real is torch.float64 and DOUBLE.complex is torch.complex128
    assert SINGLE.real is torch.float32 and SINGLE.complex is torch.complex64
    assert DOUBLE.eps < SINGLE.eps


@pytest.mark.parametrize("real, cplx", [
    (torch.float32, torch.complex128),
    (torch.float64, torch.complex64),
    (torch.float64, torch.float64),
    (torch.complex128, torch.complex128),
    (torch.int64, torch.complex128),
])
def test_mismatched_pairs_rejected(real, cplx):
    with pytest.raises(PrecisionMismatchError):
        NumericTypePair(real=real, complex=cplx)


def test_to_complex_keeps_double_digits():
    t = DOUBLE.to_complex(0.1)
    assert t.dtype == torch.complex128
    assert t.real.item() == 0.1
    assert DOUBLE.to_complex([1.0, 2.0]).shape == (2,)
    assert DOUBLE.to_real(torch.tensor(1.5, dtype=torch.float32)).dtype == torch.float64


def test_tracker_refuses_non_pair():
    with pytest.raises(PrecisionMismatchError):
        FixedPrecisionTracker(linear_path_system(), numeric=(torch.float64, torch.complex128))
