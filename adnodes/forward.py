"""Forward-mode automatic differentiation with dual numbers.

A :class:`ForwardVar` carries a value and an adjoint, the directional
derivative of the value in the direction of the adjoints of the inputs.
Values and adjoints may themselves be :class:`ForwardVar` instances, which
gives higher-order derivatives.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable

import numpy as np

__all__ = [
    "ForwardVar",
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
]

_TWO_OVER_SQRT_PI = 1.1283791670955126


@dataclass
class ForwardVar:
    """A dual number: a value together with its directional derivative."""

    value: Any = 0.0
    adjoint: Any = 0.0

    def __add__(self, other: Any) -> ForwardVar:
        rhs = _coerce(other)
        if rhs is None:
            return NotImplemented
        return ForwardVar(self.value + rhs.value, self.adjoint + rhs.adjoint)

    def __radd__(self, other: Any) -> ForwardVar:
        lhs = _coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs + self

    def __sub__(self, other: Any) -> ForwardVar:
        rhs = _coerce(other)
        if rhs is None:
            return NotImplemented
        return ForwardVar(self.value - rhs.value, self.adjoint - rhs.adjoint)

    def __rsub__(self, other: Any) -> ForwardVar:
        lhs = _coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs - self

    def __mul__(self, other: Any) -> ForwardVar:
        rhs = _coerce(other)
        if rhs is None:
            return NotImplemented
        return ForwardVar(
            self.value * rhs.value,
            self.value * rhs.adjoint + self.adjoint * rhs.value,
        )

    def __rmul__(self, other: Any) -> ForwardVar:
        lhs = _coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs * self

    def __truediv__(self, other: Any) -> ForwardVar:
        rhs = _coerce(other)
        if rhs is None:
            return NotImplemented
        return ForwardVar(
            _div(self.value, rhs.value),
            _div(
                self.adjoint * rhs.value - self.value * rhs.adjoint,
                rhs.value * rhs.value,
            ),
        )

    def __rtruediv__(self, other: Any) -> ForwardVar:
        lhs = _coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs / self

    def __neg__(self) -> ForwardVar:
        return ForwardVar(-self.value, -self.adjoint)

    def __iadd__(self, other: Any) -> ForwardVar:
        result = self + other
        if result is NotImplemented:
            return NotImplemented
        self.value = result.value
        self.adjoint = result.adjoint
        return self


def _coerce(x: Any) -> ForwardVar | None:
    if isinstance(x, ForwardVar):
        return x
    if isinstance(x, (Real, np.number)) and not isinstance(x, bool):
        return ForwardVar(float(x), 0.0)
    return None


def _is_dual(x: Any) -> bool:
    return isinstance(x, ForwardVar)


def _div(a: Any, b: Any) -> Any:
    """Divide, giving inf or nan for plain numbers instead of raising."""
    if _is_dual(a) or _is_dual(b):
        return a / b
    with np.errstate(all="ignore"):
        return float(np.divide(float(a), float(b)))


def _apply(func: Callable[[float], Any], x: Any) -> float:
    with np.errstate(all="ignore"):
        return float(func(float(x)))


def sin(x: Any) -> Any:
    """Sine of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.sin, x)
    return ForwardVar(sin(x.value), cos(x.value) * x.adjoint)


def cos(x: Any) -> Any:
    """Cosine of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.cos, x)
    return ForwardVar(cos(x.value), -sin(x.value) * x.adjoint)


def tan(x: Any) -> Any:
    """Tangent of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.tan, x)
    sec = _div(1.0, cos(x.value))
    return ForwardVar(tan(x.value), sec * sec * x.adjoint)


def asin(x: Any) -> Any:
    """Arcsine of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.arcsin, x)
    v = x.value
    return ForwardVar(asin(v), _div(x.adjoint, sqrt(1.0 - v * v)))


def acos(x: Any) -> Any:
    """Arccosine of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.arccos, x)
    v = x.value
    return ForwardVar(acos(v), _div(-x.adjoint, sqrt(1.0 - v * v)))


def atan(x: Any) -> Any:
    """Arctangent of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.arctan, x)
    v = x.value
    return ForwardVar(atan(v), _div(x.adjoint, 1.0 + v * v))


def exp(x: Any) -> Any:
    """Exponential of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.exp, x)
    tmp = exp(x.value)
    return ForwardVar(tmp, tmp * x.adjoint)


def log(x: Any) -> Any:
    """Natural logarithm of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.log, x)
    return ForwardVar(log(x.value), _div(x.adjoint, x.value))


def sqrt(x: Any) -> Any:
    """Square root of a dual number or a plain number."""
    if not _is_dual(x):
        return _apply(np.sqrt, x)
    tmp = sqrt(x.value)
    return ForwardVar(tmp, _div(x.adjoint, 2.0 * tmp))


def erf(x: Any) -> Any:
    """Error function of a dual number or a plain number."""
    if not _is_dual(x):
        return math.erf(float(x))
    v = x.value
    t_sq = v * v
    return ForwardVar(erf(v), _TWO_OVER_SQRT_PI * exp(-t_sq) * x.adjoint)