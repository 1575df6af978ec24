"""Cauchy log-density, dropping constant terms, as an expression node."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from adnodes.expr import Expr, Shape, as_expr

__all__ = ["CauchyAdjLogPDFNode", "cauchy_adj_log_pdf"]

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


class CauchyAdjLogPDFNode(Expr):
    """Cauchy log-pdf of ``x`` with location ``loc`` and scale ``scale``.

    The constant ``-log(pi)`` per element is omitted. Allowed shapes are a
    scalar ``x`` with scalar ``loc`` and ``scale``, or a vector ``x`` with
    each of ``loc`` and ``scale`` a scalar or a vector of the same length.
    When a scale is not positive the value is negative infinity.
    """

    def __init__(self, x: Expr, loc: Expr, scale: Expr) -> None:
        for name, expr in (("x", x), ("loc", loc), ("scale", scale)):
            if not isinstance(expr, Expr):
                raise TypeError(f"{name} must be an expression, got {type(expr).__name__}")
        layout = (x.shape, loc.shape, scale.shape)
        if layout not in _LAYOUTS:
            raise ValueError(f"unsupported shapes for x, loc, scale: {_describe(layout)}")
        for name, expr in (("loc", loc), ("scale", scale)):
            if expr.shape is _V and expr.rows != x.rows:
                raise ValueError(
                    f"{name} has {expr.rows} elements but x has {x.rows}"
                )
        super().__init__(Shape.SCALAR, 1, 1)
        self.x = x
        self.loc = loc
        self.scale = scale
        self._inner = 0.0

    @property
    def _scalar(self) -> bool:
        return self.x.shape is _S

    def _within_range(self) -> bool:
        return bool(np.all(np.asarray(self.scale.value, dtype=float) > 0))

    def feval(self) -> float:
        x = self.x.feval()
        loc = self.loc.feval()
        scale = self.scale.feval()

        if not self._within_range():
            self._value = -math.inf
            return self._value

        with np.errstate(all="ignore"):
            if self._scalar:
                diff = float(x) - float(loc)
                gamma = float(scale)
                self._inner = gamma + (diff * diff) / gamma
                self._value = float(-np.log(self._inner))
            else:
                diff = np.asarray(x, dtype=float) - np.asarray(loc, dtype=float)
                gamma = np.asarray(scale, dtype=float)
                self._value = float(-np.sum(np.log(gamma + diff * diff / gamma)))
        return self._value

    def beval(self, seed: Any) -> None:
        seed = float(np.asarray(seed, dtype=float).reshape(()))
        if seed == 0 or not self._within_range():
            return

        with np.errstate(all="ignore"):
            if self._scalar:
                diff = float(self.x.value) - float(self.loc.value)
                gamma = float(self.scale.value)
                loc_adj = 2.0 * diff / (gamma * self._inner)
                x_adj = -loc_adj
                gamma_adj = 1.0 / gamma * (loc_adj * diff - 1.0)
                self.scale.beval(seed * gamma_adj)
                self.loc.beval(seed * loc_adj)
                self.x.beval(seed * x_adj)
                return

            x = np.asarray(self.x.value, dtype=float)
            loc = np.asarray(self.loc.value, dtype=float)
            gamma = np.asarray(self.scale.value, dtype=float)
            diff = x - loc
            dx = (-2.0 * seed) * diff / (gamma * gamma + diff * diff)

            if self.loc.shape is _S:
                dloc: Any = float(-seed * np.sum(dx))
            else:
                dloc = -seed * dx

            if self.scale.shape is _S:
                g = float(gamma)
                dgamma: Any = float((-seed / g) * (np.sum(dx * diff) + x.size))
            else:
                dgamma = (-seed) * (dx * diff + 1.0) / gamma

        self.scale.beval(dgamma)
        self.loc.beval(dloc)
        self.x.beval(dx)


def cauchy_adj_log_pdf(x: Any, loc: Any, scale: Any) -> CauchyAdjLogPDFNode:
    """Cauchy log-pdf without constants; plain numbers and arrays become constants.

    At least one argument must already be an expression.
    """
    if not any(isinstance(arg, Expr) for arg in (x, loc, scale)):
        raise TypeError("cauchy_adj_log_pdf needs at least one expression argument")
    return CauchyAdjLogPDFNode(as_expr(x), as_expr(loc), as_expr(scale))