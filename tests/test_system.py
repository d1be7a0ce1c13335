import cmath

import pytest
import torch

from homotrack import (CallableTargetSystem, StraightLineHomotopy,
                       TotalDegreeStartSystem)


def quadratic_target():
    # x^2 - 2
    return CallableTargetSystem(1, lambda x: x * x - 2, lambda x: (2 * x).reshape(1, 1))


def test_total_degree_start_points_are_roots():
    G = TotalDegreeStartSystem([2, 3])
    pts = list(G.start_points())
    assert G.num_start_points == 6
    assert len(pts) == 6
    for p in pts:
        assert torch.linalg.vector_norm(G.evaluate(p)).item() < 1e-12
        assert abs(torch.linalg.det(G.jacobian(p)).item()) > 0.5
    # all distinct
    flat = {tuple(round(complex(z).real, 8) + 1j * round(complex(z).imag, 8) for z in p)
            for p in pts}
    assert len(flat) == 6


def test_total_degree_jacobian_for_linear_factor():
    G = TotalDegreeStartSystem([1, 2])
    x = torch.tensor([0.0, 0.0], dtype=torch.complex128)
    J = G.jacobian(x)
    assert J[0, 0].item() == 1
    assert J[1, 1].item() == 0


def test_total_degree_rejects_nonpositive_degree():
    with pytest.raises(ValueError):
        TotalDegreeStartSystem([2, 0])


def test_homotopy_endpoints():
    F, G = quadratic_target(), TotalDegreeStartSystem([2])
    H = StraightLineHomotopy(F, G, gamma=cmath.exp(0.7j))
    x = torch.tensor([1.3 + 0.2j], dtype=torch.complex128)
    one = torch.tensor(1.0, dtype=torch.complex128)
    zero = torch.tensor(0.0, dtype=torch.complex128)
    assert torch.allclose(H.residual(x, one), H.gamma * G.evaluate(x))
    assert torch.allclose(H.residual(x, zero), F.evaluate(x))


def test_homotopy_time_derivative_matches_difference_quotient():
    F, G = quadratic_target(), TotalDegreeStartSystem([2])
    H = StraightLineHomotopy(F, G, gamma=cmath.exp(1.1j))
    x = torch.tensor([0.4 - 0.9j], dtype=torch.complex128)
    t = torch.tensor(0.3, dtype=torch.complex128)
    eps = 1e-7
    fd = (H.residual(x, t + eps) - H.residual(x, t - eps)) / (2 * eps)
    assert torch.allclose(H.time_derivative(x, t), fd, atol=1e-8)


def test_homotopy_seeded_gamma_is_unit_and_reproducible():
    F, G = quadratic_target(), TotalDegreeStartSystem([2])
    a = StraightLineHomotopy(F, G, seed=11)
    b = StraightLineHomotopy(F, G, seed=11)
    assert a.gamma == b.gamma
    assert abs(abs(a.gamma) - 1.0) < 1e-12


def test_homotopy_size_mismatch():
    with pytest.raises(ValueError):
        StraightLineHomotopy(quadratic_target(), TotalDegreeStartSystem([2, 2]))
