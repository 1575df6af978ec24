"""Products of expressions and of the elements of an expression."""

from __future__ import annotations

from functools import reduce
from typing import Any, Callable, Iterable

import numpy as np

from adnodes.expr import Constant, Expr, Shape, as_expr, constant

__all__ = ["ProdIterNode", "ProdElemNode", "prod", "prod_map"]


def _fit(node: Expr, data: Any) -> Any:
    arr = np.asarray(data, dtype=float)
    if node.shape is Shape.SCALAR:
        return float(arr.reshape(()))
    dims = (node.rows,) if node.shape is Shape.VECTOR else (node.rows, node.cols)
    return np.array(np.broadcast_to(arr, dims), dtype=float)


def _check_alike(exprs: list[Expr]) -> None:
    first = exprs[0]
    for expr in exprs[1:]:
        if (expr.shape, expr.rows, expr.cols) != (first.shape, first.rows, first.cols):
            raise ValueError(
                "all factors must have the same shape: "
                f"{first.shape.value} {first.rows}x{first.cols} vs "
                f"{expr.shape.value} {expr.rows}x{expr.cols}"
            )


def _multiply(values: Iterable[np.ndarray], start: np.ndarray) -> np.ndarray:
    with np.errstate(all="ignore"):
        return reduce(np.multiply, values, start)


class ProdIterNode(Expr):
    """Elementwise product of several expressions of the same shape.

    With no factors the node is a scalar whose value is 1.
    """

    def __init__(self, exprs: Iterable[Expr]) -> None:
        factors = list(exprs)
        for expr in factors:
            if not isinstance(expr, Expr):
                raise TypeError(f"expected expressions, got {type(expr).__name__}")
        if factors:
            _check_alike(factors)
            first = factors[0]
            super().__init__(first.shape, first.rows, first.cols)
        else:
            super().__init__(Shape.SCALAR, 1, 1)
        self.exprs = factors

    def feval(self) -> Any:
        start = np.ones_like(np.asarray(self._value, dtype=float))
        total = _multiply((np.asarray(e.feval(), dtype=float) for e in self.exprs), start)
        self._value = _fit(self, total)
        return self._value

    def beval(self, seed: Any) -> None:
        if not self.exprs:
            return
        self._adjoint = _fit(self, seed)
        adj = np.asarray(self._adjoint, dtype=float)
        total = np.asarray(self._value, dtype=float)
        for idx, expr in reversed(list(enumerate(self.exprs))):
            current = np.asarray(expr.value, dtype=float)
            if np.any(current == 0):
                others = _multiply(
                    (
                        np.asarray(other.value, dtype=float)
                        for k, other in enumerate(self.exprs)
                        if k != idx
                    ),
                    np.ones_like(total),
                )
                expr.beval(_fit(self, adj * others))
            else:
                with np.errstate(all="ignore"):
                    expr.beval(_fit(self, adj * total / current))


class ProdElemNode(Expr):
    """Product of all elements of an expression; always a scalar."""

    def __init__(self, expr: Expr) -> None:
        if not isinstance(expr, Expr):
            raise TypeError(f"expected an expression, got {type(expr).__name__}")
        super().__init__(Shape.SCALAR, 1, 1)
        self.expr = expr

    def feval(self) -> float:
        res = np.asarray(self.expr.feval(), dtype=float)
        with np.errstate(all="ignore"):
            self._value = float(np.prod(res))
        return self._value

    def beval(self, seed: Any) -> None:
        seed = float(np.asarray(seed, dtype=float).reshape(()))
        vals = np.asarray(self.expr.value, dtype=float)
        flat = vals.reshape(-1)
        adj = np.empty_like(flat)
        nonzero = flat != 0
        with np.errstate(all="ignore"):
            adj[nonzero] = seed * (self._value / flat[nonzero])
            for pos in np.flatnonzero(~nonzero):
                adj[pos] = seed * np.prod(np.delete(flat, pos))
        if self.expr.shape is Shape.SCALAR:
            self.expr.beval(float(adj[0]))
        else:
            self.expr.beval(adj.reshape(vals.shape))


def prod(x: Expr) -> Expr:
    """Product of the elements of ``x``.

    A constant is folded: a scalar constant is returned as is, otherwise a
    scalar constant holding the product.
    """
    if not isinstance(x, Expr):
        raise TypeError(f"prod needs an expression, got {type(x).__name__}")
    if isinstance(x, Constant):
        if x.shape is Shape.SCALAR:
            return x
        with np.errstate(all="ignore"):
            return constant(float(np.prod(np.asarray(x.value, dtype=float))))
    return ProdElemNode(x)


def prod_map(items: Iterable[Any], func: Callable[[Any], Any]) -> Expr:
    """Elementwise product of ``func(item)`` over ``items``.

    Non-expression results are taken as constants. If every factor is a
    constant the product is folded into one constant.
    """
    exprs = [as_expr(func(item)) for item in items]
    if exprs and all(isinstance(e, Constant) for e in exprs):
        _check_alike(exprs)
        first = np.asarray(exprs[0].value, dtype=float)
        total = _multiply((np.asarray(e.value, dtype=float) for e in exprs[1:]), first)
        return constant(total, exprs[0].shape)
    return ProdIterNode(exprs)