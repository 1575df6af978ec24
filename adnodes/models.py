"""Small models built on differentiation: least squares and a quadratic form."""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from typing import Any

import numpy as np

__all__ = [
    "RegressionResult",
    "QuadraticResult",
    "linear_regression",
    "quadratic_expression",
]


@dataclass(frozen=True)
class RegressionResult:
    """Outcome of :func:`linear_regression`."""

    loss: float
    theta: np.ndarray
    gradient: np.ndarray
    iterations: int


@dataclass(frozen=True)
class QuadraticResult:
    """Value and gradient of a quadratic form."""

    value: float
    gradient: np.ndarray


def _loss_and_gradient(
    X: np.ndarray, y: np.ndarray, theta: np.ndarray
) -> tuple[float, np.ndarray]:
    with np.errstate(all="ignore"):
        residual = y - X @ theta
        return float(residual @ residual), -2.0 * (X.T @ residual)


def linear_regression(
    X: Any,
    y: Any,
    theta_hat: Any,
    initial_lr: float = 1e-4,
    max_iter: int = 100,
    tol: float = 1e-7,
) -> RegressionResult:
    """Minimise the squared residuals ``||y - X theta||^2`` by gradient descent.

    Steps follow the Barzilai-Borwein rule after a first step of size
    ``initial_lr``. Iteration stops after ``max_iter`` steps or once the
    relative change in loss falls below ``tol``. The returned loss and
    gradient belong to the returned ``theta``.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    theta = np.array(theta_hat, dtype=float)
    if X.ndim != 2:
        raise ValueError("X must be a matrix")
    if y.ndim != 1 or theta.ndim != 1:
        raise ValueError("y and theta_hat must be vectors")
    if X.shape != (y.shape[0], theta.shape[0]):
        raise ValueError(
            f"X is {X.shape[0]}x{X.shape[1]} but y has {y.shape[0]} "
            f"and theta_hat {theta.shape[0]} elements"
        )
    max_iter = operator.index(max_iter)
    if max_iter < 0:
        raise ValueError("max_iter must not be negative")

    theta_curr = theta
    prev_loss = math.inf
    loss, grad_curr = _loss_and_gradient(X, y, theta_curr)

    def step(lr: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        with np.errstate(all="ignore"):
            return theta_curr, grad_curr, theta_curr - lr * grad_curr

    theta_prev, grad_prev, theta_curr = step(initial_lr)

    iterations = 0
    while iterations < max_iter and abs(loss - prev_loss) >= tol * abs(prev_loss):
        prev_loss = loss
        loss, grad_curr = _loss_and_gradient(X, y, theta_curr)

        with np.errstate(all="ignore"):
            dtheta = theta_curr - theta_prev
            ddf = grad_curr - grad_prev
            ddf_l2 = float(ddf @ ddf)
            gamma = 0.0 if ddf_l2 < 1e-14 else abs(float(dtheta @ ddf)) / ddf_l2

        theta_prev, grad_prev, theta_curr = step(gamma)
        iterations += 1

    return RegressionResult(loss, theta_prev, grad_prev, iterations)


def quadratic_expression(x: Any, sigma: Any) -> QuadraticResult:
    """Value and gradient in ``x`` of ``x' * sigma * x`` for a 2-vector and 2x2 matrix."""
    x = np.asarray(x, dtype=float)
    sigma = np.asarray(sigma, dtype=float)
    if x.shape != (2,):
        raise ValueError(f"x must have 2 elements, got shape {x.shape}")
    if sigma.shape != (2, 2):
        raise ValueError(f"sigma must be 2x2, got shape {sigma.shape}")
    value = float(x @ sigma @ x)
    gradient = sigma @ x + sigma.T @ x
    return QuadraticResult(value, gradient)