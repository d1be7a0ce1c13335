import torch

from homotrack import DenseLUSolve, NewtonConfig, SuccessCode, correct, refine

C = torch.complex128


def _t(v):
    return torch.tensor(v, dtype=C)


def _newton(system, x0, t, **kw):
    opts = dict(tolerance=1e-10, min_num_iterations=1, max_num_iterations=8,
                solve=DenseLUSolve())
    opts.update(kw)
    return correct(system, _t(x0), _t(t), **opts)


def test_converges_quadratically(sqrt_system):
    res = _newton(sqrt_system, [2.1], 1.0)
    assert res.converged
    assert abs(res.point[0].item() - 2.0) < 1e-12
    assert res.iterations <= 6
    assert res.norm_delta_x < 1e-10


def test_does_not_mutate_input(sqrt_system):
    x0 = _t([2.1])
    correct(sqrt_system, x0, _t(1.0), tolerance=1e-10, min_num_iterations=1,
            max_num_iterations=5, solve=DenseLUSolve())
    assert x0[0].item() == 2.1


def test_min_iterations_enforced(linear_system):
    # exact start point: the first update is already zero
    res = _newton(linear_system, [0.5, 0.0], 0.5, min_num_iterations=3)
    assert res.converged
    assert res.iterations == 3


def test_failed_to_converge(sqrt_system):
    res = _newton(sqrt_system, [10.0], 1.0, max_num_iterations=2)
    assert res.code is SuccessCode.FailedToConverge
    assert res.iterations == 2


def test_singular_jacobian(sqrt_system):
    # J = 2x vanishes at x = 0
    res = _newton(sqrt_system, [0.0], 1.0)
    assert res.code is SuccessCode.MatrixSolveFailure


def test_going_to_infinity(reciprocal):
    # near t = 0 the root 1/t sits far outside the threshold
    res = _newton(reciprocal, [1.0], 1e-4, path_truncation_threshold=100.0)
    assert res.code is SuccessCode.GoingToInfinity


def test_refine_is_idempotent(circle_system, long_newton):
    t = _t(0.0)
    first = refine(circle_system, _t([1.5, 1.4]), t, 1e-12, long_newton)
    assert first.converged
    second = refine(circle_system, first.point, t, 1e-12, long_newton)
    assert second.converged
    assert torch.linalg.vector_norm(second.point - first.point).item() < 1e-12


def test_refine_looser_tolerance_stops_earlier(circle_system, long_newton):
    t = _t(0.0)
    loose = refine(circle_system, _t([1.5, 1.4]), t, 1e-2, long_newton)
    tight = refine(circle_system, _t([1.5, 1.4]), t, 1e-13, long_newton)
    assert loose.converged and tight.converged
    assert loose.iterations < tight.iterations
