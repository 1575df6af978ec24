"""Uniform log-density as an expression node."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from adnodes.expr import Expr, Shape, as_expr

__all__ = ["UniformAdjLogPDFNode", "uniform_adj_log_pdf"]

_S = Shape.SCALAR
_V = Shape.VECTOR

_LAYOUTS = {
    (_S, _S, _S),
    (_V, _S, _S),
    (_V, _S, _V),
    (_V, _V, _S),
    (_V, _V, _V),
}


def _describe(layout: tuple[Shape, Shape, Shape]) -> str:
    return ", ".join(shape.value for shape in layout)


def _array(expr: Expr) -> np.ndarray:
    return np.asarray(expr.value, dtype=float)


class UniformAdjLogPDFNode(Expr):
    """Uniform log-pdf of ``x`` on the open interval ``(low, high)``.

    Allowed shapes are a scalar ``x`` with scalar bounds, or a vector ``x``
    with each bound a scalar or a vector of the same length. The value is
    negative infinity when some element of ``x`` lies outside its interval.
    """

    def __init__(self, x: Expr, low: Expr, high: Expr) -> None:
        for name, expr in (("x", x), ("low", low), ("high", high)):
            if not isinstance(expr, Expr):
                raise TypeError(f"{name} must be an expression, got {type(expr).__name__}")
        layout = (x.shape, low.shape, high.shape)
        if layout not in _LAYOUTS:
            raise ValueError(f"unsupported shapes for x, low, high: {_describe(layout)}")
        if x.shape is _V and x.rows == 0:
            raise ValueError("x must not be an empty vector")
        for name, expr in (("low", low), ("high", high)):
            if expr.shape is _V and expr.rows != x.rows:
                raise ValueError(f"{name} has {expr.rows} elements but x has {x.rows}")
        super().__init__(Shape.SCALAR, 1, 1)
        self.x = x
        self.low = low
        self.high = high
        self._log_diff = 0.0
        self._in_range = False

    def _update(self) -> None:
        x = _array(self.x)
        low = _array(self.low)
        high = _array(self.high)
        with np.errstate(all="ignore"):
            if self.x.shape is _S or (self.low.shape is _S and self.high.shape is _S):
                self._log_diff = float(np.log(float(high) - float(low)))
            else:
                self._log_diff = float(np.sum(np.log(high - low)))
        self._in_range = bool(np.all(low < x) and np.all(x < high))

    def feval(self) -> float:
        self.x.feval()
        self.low.feval()
        self.high.feval()
        self._update()

        if not self._in_range:
            self._value = -math.inf
            return self._value

        if self.x.shape is _V and self.low.shape is _S and self.high.shape is _S:
            self._value = -float(self.x.rows) * self._log_diff
        else:
            self._value = -self._log_diff
        return self._value

    def beval(self, seed: Any) -> None:
        seed = float(np.asarray(seed, dtype=float).reshape(()))
        if seed == 0 or not self._in_range:
            return

        low = _array(self.low)
        high = _array(self.high)
        with np.errstate(all="ignore"):
            if self.low.shape is _S and self.high.shape is _S:
                count = 1.0 if self.x.shape is _S else float(self.x.rows)
                adj = seed * count / (float(high) - float(low))
                self.high.beval(-adj)
                self.low.beval(adj)
                return

            inv = 1.0 / (high - low)
            if self.low.shape is _S:
                high_seed: Any = (-seed) * inv
                low_seed: Any = float(seed * np.sum(inv))
            elif self.high.shape is _S:
                high_seed = float((-seed) * np.sum(inv))
                low_seed = seed * inv
            else:
                high_seed = (-seed) * inv
                low_seed = seed * inv
        self.high.beval(high_seed)
        self.low.beval(low_seed)


def uniform_adj_log_pdf(x: Any, low: Any, high: Any) -> UniformAdjLogPDFNode:
    """Uniform log-pdf; plain numbers and arrays become constants.

    At least one argument must already be an expression.
    """
    if not any(isinstance(arg, Expr) for arg in (x, low, high)):
        raise TypeError("uniform_adj_log_pdf needs at least one expression argument")
    return UniformAdjLogPDFNode(as_expr(x), as_expr(low), as_expr(high))