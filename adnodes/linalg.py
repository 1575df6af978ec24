"""Matrix nodes: transpose, determinant and log absolute determinant."""

from __future__ import annotations

import enum
import math
from typing import Any

import numpy as np

from adnodes.expr import Constant, Expr, Shape, constant

__all__ = [
    "Decomposition",
    "TransposeNode",
    "DetNode",
    "LogDetNode",
    "transpose",
    "det",
    "log_det",
]


class Decomposition(enum.Enum):
    """How a determinant node factors its matrix.

    ``FULL_PIV_LU`` works for any square matrix. ``LDLT`` is meant for
    positive or negative semi-definite matrices and ``LLT`` for positive
    definite ones; both read only the lower triangle.
    """

    FULL_PIV_LU = "full_piv_lu"
    LDLT = "ldlt"
    LLT = "llt"


def _as_matrix(expr: Expr, data: Any) -> np.ndarray:
    """View an expression's (non-scalar) value as a rows x cols matrix."""
    return np.asarray(data, dtype=float).reshape(expr.rows, expr.cols)


def _to_layout(expr: Expr, data: np.ndarray) -> np.ndarray:
    """Shape a matrix seed the way ``expr`` holds its value."""
    arr = np.asarray(data, dtype=float)
    if expr.shape is Shape.VECTOR:
        return np.array(arr.reshape(expr.rows), dtype=float)
    return np.array(arr.reshape(expr.rows, expr.cols), dtype=float)


def _lower_symmetric(a: np.ndarray) -> np.ndarray:
    return np.tril(a) + np.tril(a, -1).T


def _check_operand(name: str, x: Any) -> Expr:
    if not isinstance(x, Expr):
        raise TypeError(f"{name} needs an expression, got {type(x).__name__}")
    if x.shape is Shape.SCALAR:
        raise ValueError(f"{name} needs a vector or matrix expression, not a scalar")
    return x


def _check_square(name: str, x: Expr) -> None:
    if x.rows != x.cols:
        raise ValueError(f"{name} needs a square matrix, got {x.rows}x{x.cols}")


class _FullPivLU:
    def __init__(self) -> None:
        self._matrix = np.zeros((0, 0))
        self._invertible = False

    def compute(self, a: np.ndarray) -> None:
        self._matrix = np.array(a, dtype=float)
        n = a.shape[0]
        if not np.all(np.isfinite(self._matrix)):
            self._invertible = False
        else:
            self._invertible = int(np.linalg.matrix_rank(self._matrix)) == n

    def determinant(self) -> float:
        with np.errstate(all="ignore"):
            return float(np.linalg.det(self._matrix))

    def valid(self) -> bool:
        return self._invertible

    def inverse_transpose(self) -> np.ndarray:
        return np.linalg.inv(self._matrix).T


class _LDLT:
    def __init__(self) -> None:
        self._matrix = np.zeros((0, 0))
        self._diag = np.zeros(0)
        self._ok = False

    def compute(self, a: np.ndarray) -> None:
        work = _lower_symmetric(np.asarray(a, dtype=float))
        self._matrix = work.copy()
        n = work.shape[0]
        diag = np.zeros(n)
        ok = True
        with np.errstate(all="ignore"):
            for k in range(n):
                p = k + int(np.argmax(np.abs(np.diag(work)[k:])))
                if p != k:
                    work[[k, p], :] = work[[p, k], :]
                    work[:, [k, p]] = work[:, [p, k]]
                pivot = work[k, k]
                column = work[k + 1 :, k]
                if pivot == 0:
                    if np.any(column != 0):
                        ok = False
                    continue
                diag[k] = pivot
                factor = column / pivot
                work[k + 1 :, k + 1 :] -= np.outer(factor, column)
        self._diag = diag
        self._ok = ok and bool(np.all(np.isfinite(diag)))

    def product(self) -> float:
        with np.errstate(all="ignore"):
            return float(np.prod(self._diag))

    def success(self) -> bool:
        return self._ok

    def inverse(self) -> np.ndarray:
        return np.linalg.inv(self._matrix)


class _LLT:
    def __init__(self) -> None:
        self._lower = np.zeros((0, 0))
        self._ok = False

    def compute(self, a: np.ndarray) -> None:
        sym = _lower_symmetric(np.asarray(a, dtype=float))
        try:
            self._lower = np.linalg.cholesky(sym)
            self._ok = bool(np.all(np.isfinite(self._lower)))
        except np.linalg.LinAlgError:
            self._lower = np.full_like(sym, math.nan)
            self._ok = False

    def lower_determinant(self) -> float:
        with np.errstate(all="ignore"):
            return float(np.prod(np.diag(self._lower)))

    def success(self) -> bool:
        return self._ok

    def inverse(self) -> np.ndarray:
        linv = np.linalg.inv(self._lower)
        return linv.T @ linv


class _DetPolicy:
    """Determinant value, validity and the transposed-inverse map."""

    def __init__(self, method: Decomposition, log: bool) -> None:
        self.method = method
        self.log = log
        self._valid = False
        if method is Decomposition.FULL_PIV_LU:
            self._decomp: Any = _FullPivLU()
        elif method is Decomposition.LDLT:
            self._decomp = _LDLT()
        else:
            self._decomp = _LLT()

    def fmap(self, a: np.ndarray) -> float:
        d = self._decomp
        d.compute(a)
        with np.errstate(all="ignore"):
            if self.method is Decomposition.FULL_PIV_LU:
                value = d.determinant()
                if self.log:
                    value = float(np.log(abs(value)))
                self._valid = d.valid()
            elif self.method is Decomposition.LDLT:
                value = d.product()
                if self.log:
                    value = float(np.log(abs(value)))
                    self._valid = math.isfinite(value) and d.success()
                else:
                    self._valid = value != 0 and d.success()
            else:
                lower = d.lower_determinant()
                if self.log:
                    value = 2.0 * float(np.log(abs(lower)))
                else:
                    value = lower * lower
                self._valid = d.success()
        return value

    def valid(self) -> bool:
        return self._valid

    def bmap(self) -> np.ndarray:
        if self.method is Decomposition.FULL_PIV_LU:
            return self._decomp.inverse_transpose()
        return self._decomp.inverse()


class TransposeNode(Expr):
    """Transpose of a vector or matrix expression; always a matrix."""

    def __init__(self, expr: Expr) -> None:
        _check_operand("transpose", expr)
        super().__init__(Shape.MATRIX, expr.cols, expr.rows)
        self.expr = expr

    def feval(self) -> np.ndarray:
        res = _as_matrix(self.expr, self.expr.feval())
        self._value = np.array(res.T, dtype=float)
        return self._value

    def beval(self, seed: Any) -> None:
        adj = np.array(
            np.broadcast_to(np.asarray(seed, dtype=float), (self.rows, self.cols)),
            dtype=float,
        )
        self._adjoint = adj
        self.expr.beval(_to_layout(self.expr, adj.T))


class _DeterminantBase(Expr):
    _name = "det"
    _log = False

    def __init__(self, expr: Expr, method: Decomposition = Decomposition.FULL_PIV_LU) -> None:
        _check_operand(self._name, expr)
        _check_square(self._name, expr)
        super().__init__(Shape.SCALAR, 1, 1)
        self.expr = expr
        self.method = Decomposition(method)
        self._policy = _DetPolicy(self.method, self._log)

    def feval(self) -> float:
        self._value = self._policy.fmap(_as_matrix(self.expr, self.expr.feval()))
        return self._value

    def _scale(self, seed: float) -> float:
        return seed

    def beval(self, seed: Any) -> None:
        seed = float(np.asarray(seed, dtype=float).reshape(()))
        if seed == 0 or not self._policy.valid():
            return
        inv_t = self._policy.bmap()
        with np.errstate(all="ignore"):
            self.expr.beval(_to_layout(self.expr, self._scale(seed) * inv_t))


class DetNode(_DeterminantBase):
    """Determinant of a square matrix expression."""

    _name = "det"
    _log = False

    def feval(self) -> float:
        return super().feval()

    def beval(self, seed: Any) -> None:
        super().beval(seed)

    def _scale(self, seed: float) -> float:
        return seed * self._value


class LogDetNode(_DeterminantBase):
    """Logarithm of the absolute determinant of a square matrix expression."""

    _name = "log_det"
    _log = True

    def feval(self) -> float:
        return super().feval()

    def beval(self, seed: Any) -> None:
        super().beval(seed)


def transpose(x: Expr) -> Expr:
    """Transpose of ``x``; a constant is transposed at once."""
    _check_operand("transpose", x)
    if isinstance(x, Constant):
        return constant(np.array(_as_matrix(x, x.value).T))
    return TransposeNode(x)


def det(x: Expr, method: Decomposition = Decomposition.FULL_PIV_LU) -> Expr:
    """Determinant of ``x``; a constant is folded regardless of ``method``."""
    _check_operand("det", x)
    _check_square("det", x)
    method = Decomposition(method)
    if isinstance(x, Constant):
        return constant(float(np.linalg.det(_as_matrix(x, x.value))))
    return DetNode(x, method)


def log_det(x: Expr, method: Decomposition = Decomposition.FULL_PIV_LU) -> Expr:
    """Log absolute determinant of ``x``; a constant is folded regardless of ``method``."""
    _check_operand("log_det", x)
    _check_square("log_det", x)
    method = Decomposition(method)
    if isinstance(x, Constant):
        with np.errstate(all="ignore"):
            value = float(np.log(abs(np.linalg.det(_as_matrix(x, x.value)))))
        return constant(value)
    return LogDetNode(x, method)