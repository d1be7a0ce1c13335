"""
Shared systems and helpers for the homotrack tests.
"""
import math

import pytest
import torch

from homotrack import (DenseLUSolve, FunctionSystem, NewtonConfig,
                       SteppingConfig, TrackerConfig)


def linear_path_system() -> FunctionSystem:
    """H(x, t) = [x0 - t, x1]; the path through [1, 0] at t=1 is x(t) = [t, 0]."""
    def residual(x, t):
        return torch.stack([x[0] - t, x[1]])

    def jacobian(x, t):
        return torch.eye(2, dtype=x.dtype)

    def time_derivative(x, t):
        return torch.stack([-torch.ones_like(x[0]), torch.zeros_like(x[1])])

    return FunctionSystem(2, residual, jacobian, time_derivative)


def sqrt_path_system() -> FunctionSystem:
    """H(x, t) = x^2 - (1 + 3t); through x=2 at t=1 the path is sqrt(1 + 3t)."""
    def residual(x, t):
        return x * x - (1 + 3 * t)

    def jacobian(x, t):
        return (2 * x).reshape(1, 1)

    def time_derivative(x, t):
        return torch.full_like(x, -3.0)

    return FunctionSystem(1, residual, jacobian, time_derivative)


def circle_line_system() -> FunctionSystem:
    """
    H(x, t) = [x0^2 + x1^2 - 4 - t, x0 - x1 - t].

    Through [2, 1] at t=1; ends at [sqrt 2, sqrt 2] at t=0.
    """
    def residual(x, t):
        return torch.stack([x[0] * x[0] + x[1] * x[1] - 4 - t,
                            x[0] - x[1] - t])

    def jacobian(x, t):
        one = torch.ones_like(x[0])
        return torch.stack([torch.stack([2 * x[0], 2 * x[1]]),
                            torch.stack([one, -one])])

    def time_derivative(x, t):
        return -torch.ones_like(x)

    return FunctionSystem(2, residual, jacobian, time_derivative)


def reciprocal_system() -> FunctionSystem:
    """H(x, t) = t x - 1; x(t) = 1/t escapes to infinity as t -> 0."""
    def residual(x, t):
        return t * x - 1

    def jacobian(x, t):
        return (t * torch.ones_like(x)).reshape(1, 1)

    def time_derivative(x, t):
        return x.clone()

    return FunctionSystem(1, residual, jacobian, time_derivative)


class FlakySolve(DenseLUSolve):
    """Dense LU that reports failure for the next `fail_next` calls."""

    def __init__(self):
        self.fail_next = 0
        self.calls = 0

    def __call__(self, A, b):
        self.calls += 1
        if self.fail_next > 0:
            self.fail_next -= 1
            return torch.full_like(b, float("nan")), False
        return super().__call__(A, b)


@pytest.fixture
def linear_system():
    return linear_path_system()


@pytest.fixture
def sqrt_system():
    return sqrt_path_system()


@pytest.fixture
def circle_system():
    return circle_line_system()


@pytest.fixture
def reciprocal():
    return reciprocal_system()


@pytest.fixture
def flaky_solve():
    return FlakySolve()


@pytest.fixture
def tight_tracking():
    return TrackerConfig(tracking_tolerance=1e-9)


@pytest.fixture
def long_newton():
    return NewtonConfig(min_num_iterations=1, max_num_iterations=10)


@pytest.fixture
def sqrt2():
    return math.sqrt(2.0)
