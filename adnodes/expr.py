"""Expression leaves for reverse-mode differentiation: variables and constants."""

from __future__ import annotations

import enum
import operator
from abc import ABC, abstractmethod
from numbers import Real
from typing import Any

import numpy as np

__all__ = [
    "Shape",
    "Expr",
    "Constant",
    "Var",
    "constant",
    "constant_view",
    "as_expr",
]


class Shape(enum.Enum):
    """Shape of an expression's value."""

    SCALAR = "scalar"
    VECTOR = "vector"
    MATRIX = "matrix"
    SELFADJOINT_MATRIX = "selfadjmat"


_MATRIX_SHAPES = (Shape.MATRIX, Shape.SELFADJOINT_MATRIX)


def _zeros(shape: Shape, rows: int, cols: int) -> Any:
    if shape is Shape.SCALAR:
        return 0.0
    if shape is Shape.VECTOR:
        return np.zeros(rows)
    return np.zeros((rows, cols))


def _dims(shape: Shape, array: np.ndarray) -> tuple[int, int]:
    if shape is Shape.SCALAR:
        return 1, 1
    if shape is Shape.VECTOR:
        return array.shape[0], 1
    return array.shape[0], array.shape[1]


class Expr(ABC):
    """A node of an expression tree.

    ``feval`` computes and caches the node's value; ``beval`` propagates a
    seed (the partial derivative of the root with respect to this node)
    down to the leaves.
    """

    def __init__(self, shape: Shape, rows: int, cols: int) -> None:
        self.shape = Shape(shape)
        self.rows = rows
        self.cols = cols
        self._value = _zeros(self.shape, rows, cols)
        self._adjoint = _zeros(self.shape, rows, cols)

    @property
    def size(self) -> int:
        return self.rows * self.cols

    @property
    def value(self) -> Any:
        """The value computed by the last forward evaluation."""
        return self._value

    @property
    def adjoint(self) -> Any:
        """The adjoint held by this node."""
        return self._adjoint

    @abstractmethod
    def feval(self) -> Any:
        """Evaluate forward and return the value."""

    @abstractmethod
    def beval(self, seed: Any) -> None:
        """Propagate ``seed`` backward through this node."""


class Constant(Expr):
    """A constant; its adjoint is never updated."""

    def __init__(self, value: Any, shape: Shape | None = None) -> None:
        data = np.array(value, dtype=float)
        self._init_from(data, shape)

    @classmethod
    def _wrap(cls, data: np.ndarray, shape: Shape | None) -> Constant:
        node = cls.__new__(cls)
        node._init_from(data, shape)
        return node

    def _init_from(self, data: np.ndarray, shape: Shape | None) -> None:
        inferred = {0: Shape.SCALAR, 1: Shape.VECTOR, 2: Shape.MATRIX}.get(data.ndim)
        if inferred is None:
            raise ValueError(f"constants have at most 2 dimensions, got {data.ndim}")
        if shape is None:
            shape = inferred
        shape = Shape(shape)
        if shape is not inferred and not (
            shape is Shape.SELFADJOINT_MATRIX and inferred is Shape.MATRIX
        ):
            raise ValueError(f"a {data.ndim}-dimensional value cannot have shape {shape.value}")
        rows, cols = _dims(shape, data)
        super().__init__(shape, rows, cols)
        if shape is Shape.SCALAR:
            self._value = float(data)
        else:
            view = data.view()
            view.flags.writeable = False
            self._value = view

    def feval(self) -> Any:
        return self._value

    def beval(self, seed: Any) -> None:
        return None


class Var(Expr):
    """A variable: a leaf viewing storage for a value and its adjoint.

    Numeric arrays of dtype float64 are viewed, not copied, so changes made
    through the variable are visible in the arrays passed in and vice versa.
    """

    def __init__(self, value: Any = 0.0, adjoint: Any = None) -> None:
        val = np.asarray(value, dtype=float)
        if val.ndim == 0:
            val = val.reshape(1)
            shape = Shape.SCALAR
        elif val.ndim == 1:
            shape = Shape.VECTOR
        elif val.ndim == 2:
            shape = Shape.MATRIX
        else:
            raise ValueError(f"variables have at most 2 dimensions, got {val.ndim}")
        if adjoint is None:
            adj = np.zeros_like(val)
        else:
            adj = np.asarray(adjoint, dtype=float)
            if shape is Shape.SCALAR and adj.ndim == 0:
                adj = adj.reshape(1)
            if adj.shape != val.shape:
                raise ValueError(
                    f"adjoint shape {adj.shape} does not match value shape {val.shape}"
                )
        self._bind(val, adj, shape)

    @classmethod
    def _view(cls, val: np.ndarray, adj: np.ndarray, shape: Shape) -> Var:
        var = cls.__new__(cls)
        var._bind(val, adj, shape)
        return var

    def _bind(self, val: np.ndarray, adj: np.ndarray, shape: Shape) -> None:
        rows, cols = _dims(shape, val)
        super().__init__(shape, rows, cols)
        self._value = val
        self._adjoint = adj

    @property
    def value(self) -> Any:
        if self.shape is Shape.SCALAR:
            return float(self._value[0])
        return self._value

    @value.setter
    def value(self, new: Any) -> None:
        self._value[...] = new

    @property
    def adjoint(self) -> Any:
        if self.shape is Shape.SCALAR:
            return float(self._adjoint[0])
        return self._adjoint

    @adjoint.setter
    def adjoint(self, new: Any) -> None:
        self._adjoint[...] = new

    def feval(self) -> Any:
        return self.value

    def beval(self, seed: Any) -> None:
        """Accumulate ``seed`` into the adjoint."""
        self._adjoint += seed

    def reset_adjoint(self) -> None:
        self._adjoint.fill(0.0)

    def _require_vector(self) -> None:
        if self.shape is not Shape.VECTOR:
            raise TypeError(f"subviews need a vector variable, not a {self.shape.value}")

    def __getitem__(self, index: int) -> Var:
        self._require_vector()
        i = operator.index(index)
        if i < 0:
            i += self.rows
        if not 0 <= i < self.rows:
            raise IndexError(f"index {index} out of range for vector of size {self.rows}")
        return Var._view(self._value[i : i + 1], self._adjoint[i : i + 1], Shape.SCALAR)

    def _check_count(self, n: int) -> int:
        n = operator.index(n)
        if not 0 <= n <= self.rows:
            raise ValueError(f"cannot take {n} elements of a vector of size {self.rows}")
        return n

    def head(self, n: int) -> Var:
        """View the first ``n`` elements."""
        self._require_vector()
        n = self._check_count(n)
        return Var._view(self._value[:n], self._adjoint[:n], Shape.VECTOR)

    def tail(self, n: int) -> Var:
        """View the last ``n`` elements."""
        self._require_vector()
        n = self._check_count(n)
        offset = self.rows - n
        return Var._view(self._value[offset:], self._adjoint[offset:], Shape.VECTOR)


def constant(value: Any, shape: Shape | None = None) -> Constant:
    """Make a constant from a number, a 1-D array (vector) or a 2-D array (matrix).

    A matrix may be marked ``Shape.SELFADJOINT_MATRIX``; it is not checked.
    """
    return Constant(value, shape)


def constant_view(values: Any, rows: int, cols: int | None = None) -> Constant:
    """View existing storage as a constant vector (no ``cols``) or matrix.

    Matrix elements are taken in column-major order from the flat storage.
    """
    rows = operator.index(rows)
    if rows < 0:
        raise ValueError("rows must not be negative")
    arr = np.asarray(values, dtype=float)
    if cols is None:
        shape = Shape.VECTOR
        count = rows
    else:
        cols = operator.index(cols)
        if cols < 0:
            raise ValueError("cols must not be negative")
        shape = Shape.MATRIX
        count = rows * cols
        if arr.shape == (rows, cols):
            return Constant._wrap(arr, shape)
    flat = arr.reshape(-1, order="K")
    if flat.size < count:
        raise ValueError(f"need {count} values, only {flat.size} given")
    data = flat[:count]
    if shape is Shape.MATRIX:
        data = data.reshape((rows, cols), order="F")
    return Constant._wrap(data, shape)


def as_expr(x: Any) -> Expr:
    """Return ``x`` if it is an expression, otherwise wrap it as a constant."""
    if isinstance(x, Expr):
        return x
    if isinstance(x, (str, bytes)) or x is None:
        raise TypeError(f"cannot use {type(x).__name__} in an expression")
    if isinstance(x, (Real, np.number, np.ndarray, list, tuple)):
        try:
            return Constant(x)
        except ValueError as exc:
            raise TypeError(f"cannot use {x!r} in an expression") from exc
    raise TypeError(f"cannot use {type(x).__name__} in an expression")