"""Elementwise univariate functions as reverse-mode expression nodes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from adnodes.expr import Constant, Expr, Shape, constant

__all__ = [
    "UnaryNode",
    "neg",
    "sin",
    "cos",
    "tan",
    "asin",
    "acos",
    "atan",
    "exp",
    "log",
    "sqrt",
    "erf",
    "sigmoid",
    "sinh",
    "cosh",
    "tanh",
]

_TWO_OVER_SQRT_PI = 1.1283791670955126


@dataclass(frozen=True)
class _Unary:
    """A univariate function: ``fmap(x)`` and ``bmap(seed, x, f) = seed * f'(x)``."""

    name: str
    fmap: Callable[[np.ndarray], Any]
    bmap: Callable[[np.ndarray, np.ndarray, np.ndarray], Any]


_vector_erf = np.vectorize(math.erf, otypes=[float])


def _sin_f(x):
    return np.sin(x)


def _asin_b(s, x, f):
    return s / np.sqrt(1.0 - x * x)


def _sigmoid_b(s, x, f):
    e = np.exp(-x)
    return s * e / ((e + 1.0) * (e + 1.0))


def _tan_b(s, x, f):
    c = np.cos(x)
    return s / (c * c)


_NEG = _Unary("neg", lambda x: -x, lambda s, x, f: -s)
_SIN = _Unary("sin", _sin_f, lambda s, x, f: s * np.cos(x))
_COS = _Unary("cos", np.cos, lambda s, x, f: -s * _sin_f(x))
_TAN = _Unary("tan", np.tan, _tan_b)
_ASIN = _Unary("asin", np.arcsin, _asin_b)
_ACOS = _Unary("acos", np.arccos, lambda s, x, f: -_asin_b(s, x, f))
_ATAN = _Unary("atan", np.arctan, lambda s, x, f: s / (1.0 + x * x))
_EXP = _Unary("exp", np.exp, lambda s, x, f: s * f)
_LOG = _Unary("log", np.log, lambda s, x, f: s / x)
_SQRT = _Unary("sqrt", np.sqrt, lambda s, x, f: 0.5 * s / f)
_ERF = _Unary(
    "erf",
    _vector_erf,
    lambda s, x, f: _TWO_OVER_SQRT_PI * s * np.exp(-x * x),
)
_SIGMOID = _Unary("sigmoid", lambda x: 1.0 / (1.0 + np.exp(-x)), _sigmoid_b)
_SINH = _Unary("sinh", np.sinh, lambda s, x, f: s * np.cosh(x))
_COSH = _Unary("cosh", np.cosh, lambda s, x, f: s * np.sinh(x))
_TANH = _Unary("tanh", np.tanh, lambda s, x, f: s * (1.0 - f * f))


def _call(func: Callable[..., Any], *args: Any) -> Any:
    with np.errstate(all="ignore"):
        return func(*args)


def _fit(node: Expr, data: Any) -> Any:
    """Shape ``data`` like ``node``'s value: a float or a fresh array."""
    arr = np.asarray(data, dtype=float)
    if node.shape is Shape.SCALAR:
        return float(arr.reshape(()))
    dims = (node.rows,) if node.shape is Shape.VECTOR else (node.rows, node.cols)
    return np.array(np.broadcast_to(arr, dims), dtype=float)


class UnaryNode(Expr):
    """Applies a univariate function elementwise to an expression."""

    def __init__(self, func: _Unary, expr: Expr) -> None:
        if not isinstance(expr, Expr):
            raise TypeError(f"expected an expression, got {type(expr).__name__}")
        super().__init__(expr.shape, expr.rows, expr.cols)
        self.func = func
        self.expr = expr

    def feval(self) -> Any:
        arg = np.asarray(self.expr.feval(), dtype=float)
        self._value = _fit(self, _call(self.func.fmap, arg))
        return self._value

    def beval(self, seed: Any) -> None:
        self._adjoint = _fit(self, seed)
        new_seed = _call(
            self.func.bmap,
            np.asarray(self._adjoint, dtype=float),
            np.asarray(self.expr.value, dtype=float),
            np.asarray(self._value, dtype=float),
        )
        self.expr.beval(_fit(self, new_seed))


def _unary(func: _Unary, x: Any) -> Expr:
    if not isinstance(x, Expr):
        raise TypeError(f"{func.name} needs an expression, got {type(x).__name__}")
    if isinstance(x, Constant):
        result = _call(func.fmap, np.asarray(x.value, dtype=float))
        return constant(result, x.shape)
    return UnaryNode(func, x)


def neg(x: Expr) -> Expr:
    """Negation."""
    return _unary(_NEG, x)


def sin(x: Expr) -> Expr:
    """Sine, elementwise."""
    return _unary(_SIN, x)


def cos(x: Expr) -> Expr:
    """Cosine, elementwise."""
    return _unary(_COS, x)


def tan(x: Expr) -> Expr:
    """Tangent, elementwise."""
    return _unary(_TAN, x)


def asin(x: Expr) -> Expr:
    """Arcsine, elementwise."""
    return _unary(_ASIN, x)


def acos(x: Expr) -> Expr:
    """Arccosine, elementwise."""
    return _unary(_ACOS, x)


def atan(x: Expr) -> Expr:
    """Arctangent, elementwise."""
    return _unary(_ATAN, x)


def exp(x: Expr) -> Expr:
    """Exponential, elementwise."""
    return _unary(_EXP, x)


def log(x: Expr) -> Expr:
    """Natural logarithm, elementwise."""
    return _unary(_LOG, x)


def sqrt(x: Expr) -> Expr:
    """Square root, elementwise."""
    return _unary(_SQRT, x)


def erf(x: Expr) -> Expr:
    """Error function, elementwise."""
    return _unary(_ERF, x)


def sigmoid(x: Expr) -> Expr:
    """Logistic sigmoid ``1 / (1 + exp(-x))``, elementwise."""
    return _unary(_SIGMOID, x)


def sinh(x: Expr) -> Expr:
    """Hyperbolic sine, elementwise."""
    return _unary(_SINH, x)


def cosh(x: Expr) -> Expr:
    """Hyperbolic cosine, elementwise."""
    return _unary(_COSH, x)


def tanh(x: Expr) -> Expr:
    """Hyperbolic tangent, elementwise."""
    return _unary(_TANH, x)