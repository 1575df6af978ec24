"""Placeholder assignment nodes: ``w = expr`` and ``w op= expr``."""

from __future__ import annotations

import enum
from typing import Any

import numpy as np

from adnodes.expr import Expr, Shape, Var, as_expr

__all__ = [
    "AssignOp",
    "EqNode",
    "OpEqNode",
    "assign",
    "add_assign",
    "sub_assign",
    "mul_assign",
    "div_assign",
]


def _snapshot(x: Any) -> Any:
    """Detach a value from its storage: a float or a fresh array."""
    if np.ndim(x) == 0:
        return float(np.asarray(x, dtype=float).reshape(()))
    return np.array(x, dtype=float)


def _kind(shape: Shape) -> Shape:
    return Shape.MATRIX if shape is Shape.SELFADJOINT_MATRIX else shape


def _same_layout(a: Expr, b: Expr) -> bool:
    return (_kind(a.shape), a.rows, a.cols) == (_kind(b.shape), b.rows, b.cols)


def _describe(e: Expr) -> str:
    return f"{e.shape.value} {e.rows}x{e.cols}"


class AssignOp(enum.Enum):
    """Compound assignment operations."""

    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="

    def fmap(self, x: Any, y: Any) -> Any:
        """The new left-hand value from old value ``x`` and right-hand ``y``."""
        with np.errstate(all="ignore"):
            if self is AssignOp.ADD:
                return x + y
            if self is AssignOp.SUB:
                return x - y
            if self is AssignOp.MUL:
                return x * y
            return x / y

    def blmap(self, seed: Any, x: Any, y: Any) -> Any:
        """Seed for the left-hand side (the old value)."""
        with np.errstate(all="ignore"):
            if self in (AssignOp.ADD, AssignOp.SUB):
                term = seed
            elif self is AssignOp.MUL:
                term = seed * y
            else:
                term = seed / y
        if np.ndim(x) == 0 and np.ndim(y) > 0:
            return float(np.sum(term))
        return term

    def brmap(self, seed: Any, x: Any, y: Any) -> Any:
        """Seed for the right-hand expression."""
        with np.errstate(all="ignore"):
            if self is AssignOp.ADD:
                term = seed
            elif self is AssignOp.SUB:
                term = -seed
            elif self is AssignOp.MUL:
                term = seed * x
            else:
                term = -seed * x / (y * y)
        if np.ndim(x) > 0 and np.ndim(y) == 0:
            return float(np.sum(term))
        return term


class EqNode(Expr):
    """Stores the value of an expression in a placeholder variable.

    The node shares the variable's value and adjoint. Backward evaluation
    propagates the variable's full adjoint into the expression, so every
    use of the placeholder must be back-evaluated before this node.
    """

    def __init__(self, var: Var, expr: Expr) -> None:
        if not isinstance(var, Var):
            raise TypeError(f"the placeholder must be a variable, got {type(var).__name__}")
        if not isinstance(expr, Expr):
            raise TypeError(f"expected an expression, got {type(expr).__name__}")
        if isinstance(expr, Var):
            raise TypeError("cannot assign a plain variable to a placeholder")
        if not _same_layout(var, expr):
            raise ValueError(
                f"placeholder is {_describe(var)} but expression is {_describe(expr)}"
            )
        super().__init__(var.shape, var.rows, var.cols)
        self.var = var
        self.expr = expr

    @property
    def value(self) -> Any:
        return self.var.value

    @property
    def adjoint(self) -> Any:
        return self.var.adjoint

    def feval(self) -> Any:
        self.var.value = self.expr.feval()
        return self.var.value

    def beval(self, seed: Any) -> None:
        self.var.beval(seed)
        self.expr.beval(_snapshot(self.var.adjoint))


class OpEqNode(Expr):
    """Updates a variable in place: ``var op= expr``.

    Forward evaluation overwrites the variable's value; backward evaluation
    restores the value it had before.
    """

    def __init__(self, op: AssignOp, var: Var, expr: Expr) -> None:
        op = AssignOp(op)
        if not isinstance(var, Var):
            raise TypeError(f"the target must be a variable, got {type(var).__name__}")
        if not isinstance(expr, Expr):
            raise TypeError(f"expected an expression, got {type(expr).__name__}")
        if expr.shape is not Shape.SCALAR and not _same_layout(var, expr):
            raise ValueError(
                f"target is {_describe(var)} but expression is {_describe(expr)}"
            )
        super().__init__(var.shape, var.rows, var.cols)
        self.op = op
        self.var = var
        self.expr = expr
        self._previous = _snapshot(var.value)

    @property
    def value(self) -> Any:
        return self.var.value

    @property
    def adjoint(self) -> Any:
        return self.var.adjoint

    def feval(self) -> Any:
        self._previous = _snapshot(self.var.value)
        rhs = self.expr.feval()
        self.var.value = self.op.fmap(
            np.asarray(self._previous, dtype=float), np.asarray(rhs, dtype=float)
        )
        return self.var.value

    def beval(self, seed: Any) -> None:
        self.var.beval(seed)
        self.var.value = self._previous
        adj = _snapshot(self.var.adjoint)
        self.var.reset_adjoint()
        old = _snapshot(self.var.value)
        rhs = _snapshot(self.expr.value)
        lseed = self.op.blmap(adj, old, rhs)
        rseed = self.op.brmap(adj, old, rhs)
        self.expr.beval(rseed)
        self.var.beval(lseed)


def assign(var: Var, expr: Any) -> EqNode:
    """Placeholder assignment ``var = expr``."""
    return EqNode(var, as_expr(expr))


def add_assign(var: Var, expr: Any) -> OpEqNode:
    """In-place ``var += expr``."""
    return OpEqNode(AssignOp.ADD, var, as_expr(expr))


def sub_assign(var: Var, expr: Any) -> OpEqNode:
    """In-place ``var -= expr``."""
    return OpEqNode(AssignOp.SUB, var, as_expr(expr))


def mul_assign(var: Var, expr: Any) -> OpEqNode:
    """In-place ``var *= expr``."""
    return OpEqNode(AssignOp.MUL, var, as_expr(expr))


def div_assign(var: Var, expr: Any) -> OpEqNode:
    """In-place ``var /= expr``."""
    return OpEqNode(AssignOp.DIV, var, as_expr(expr))