"""Wishart log-density, dropping constant terms, as an expression node."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from adnodes.expr import Constant, Expr, Shape, as_expr

__all__ = ["WishartAdjLogPDFNode", "wishart_adj_log_pdf"]

_MATRIX_SHAPES = (Shape.MATRIX, Shape.SELFADJOINT_MATRIX)


def _matrix(expr: Expr) -> np.ndarray:
    return np.asarray(expr.value, dtype=float).reshape(expr.rows, expr.cols)


def _cholesky_lower(a: np.ndarray) -> np.ndarray | None:
    """Cholesky factor of the matrix read from the lower triangle of ``a``."""
    sym = np.tril(a) + np.tril(a, -1).T
    try:
        lower = np.linalg.cholesky(sym)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(lower)):
        return None
    return lower


def _factor(a: np.ndarray) -> tuple[float, np.ndarray] | None:
    """Log determinant of the Cholesky factor and the inverse, or None."""
    lower = _cholesky_lower(a)
    if lower is None:
        return None
    with np.errstate(all="ignore"):
        log_det = float(np.log(np.prod(np.diag(lower))))
    linv = np.linalg.inv(lower)
    return log_det, linv.T @ linv


class WishartAdjLogPDFNode(Expr):
    """Wishart log-pdf of matrix ``x`` with scale matrix ``v`` and ``n`` degrees of freedom.

    Terms that do not depend on ``x`` or ``v`` are omitted. ``n`` must be a
    scalar constant. Only the lower triangles of ``x`` and ``v`` are used for
    the factorisations. The value is negative infinity unless both matrices
    are positive definite and ``n + 1 > p``.
    """

    def __init__(self, x: Expr, v: Expr, n: Expr) -> None:
        for name, expr in (("x", x), ("v", v), ("n", n)):
            if not isinstance(expr, Expr):
                raise TypeError(f"{name} must be an expression, got {type(expr).__name__}")
        for name, expr in (("x", x), ("v", v)):
            if expr.shape not in _MATRIX_SHAPES:
                raise ValueError(f"{name} must be a matrix, not a {expr.shape.value}")
            if expr.rows != expr.cols:
                raise ValueError(f"{name} must be square, got {expr.rows}x{expr.cols}")
        if x.rows != v.rows:
            raise ValueError(f"x is {x.rows}x{x.cols} but v is {v.rows}x{v.cols}")
        if n.shape is not Shape.SCALAR:
            raise ValueError(f"n must be a scalar, not a {n.shape.value}")
        if not isinstance(n, Constant):
            raise TypeError("n must be a constant")
        super().__init__(Shape.SCALAR, 1, 1)
        self.x = x
        self.v = v
        self.n = n
        self._log_x_det = 0.0
        self._log_v_det = 0.0
        self._x_pos_def = False
        self._v_pos_def = False
        self._x_inv = np.zeros((x.rows, x.cols))
        self._v_inv = np.zeros((v.rows, v.cols))
        self._xv_inv = np.zeros((x.rows, v.rows))
        if isinstance(v, Constant):
            self._update_v_cache()
        if isinstance(x, Constant):
            self._update_x_cache()

    def _update_v_cache(self) -> None:
        factored = _factor(_matrix(self.v))
        self._v_pos_def = factored is not None
        if factored is not None:
            self._log_v_det, self._v_inv = factored

    def _update_x_cache(self) -> None:
        if not self._v_pos_def:
            return
        x = _matrix(self.x)
        factored = _factor(x)
        self._x_pos_def = factored is not None
        if factored is not None:
            self._log_x_det, self._x_inv = factored
            self._xv_inv = x @ self._v_inv

    def _valid(self) -> bool:
        return (
            self._x_pos_def
            and self._v_pos_def
            and float(self.n.value) + 1 > self.v.rows
        )

    def feval(self) -> float:
        self.x.feval()
        self.v.feval()
        n = float(self.n.feval())

        if not isinstance(self.v, Constant):
            self._update_v_cache()
        if not isinstance(self.x, Constant):
            self._update_x_cache()

        if not self._valid():
            self._value = -math.inf
            return self._value

        p = float(self.v.rows)
        diagonal_sum = float(np.sum(np.diag(self._xv_inv)))
        with np.errstate(all="ignore"):
            self._value = float(
                (n - p - 1.0) * self._log_x_det
                - 0.5 * diagonal_sum
                - n * self._log_v_det
            )
        return self._value

    def beval(self, seed: Any) -> None:
        seed = float(np.asarray(seed, dtype=float).reshape(()))
        if seed == 0 or not self._valid():
            return
        n = float(self.n.value)
        p = float(self.v.rows)
        with np.errstate(all="ignore"):
            x_adj = (0.5 * seed) * ((n - p - 1.0) * self._x_inv - self._v_inv)
            v_adj = (0.5 * seed) * (self._v_inv @ self._xv_inv - n * self._v_inv)
        self.v.beval(v_adj)
        self.x.beval(x_adj)


def wishart_adj_log_pdf(x: Any, v: Any, n: Any) -> WishartAdjLogPDFNode:
    """Wishart log-pdf without constants; plain numbers and arrays become constants.

    At least one argument must already be an expression.
    """
    if not any(isinstance(arg, Expr) for arg in (x, v, n)):
        raise TypeError("wishart_adj_log_pdf needs at least one expression argument")
    return WishartAdjLogPDFNode(as_expr(x), as_expr(v), as_expr(n))