# adnodes

Automatic differentiation for scalar, vector and matrix values, built on
NumPy. It has a forward mode based on dual numbers and a reverse mode based
on expression trees.

## Installation

```
pip install .
```

## Forward mode: `adnodes.forward`

`ForwardVar(value, adjoint)` is a dual number. `value` is the value and
`adjoint` is the directional derivative. It supports `+`, `-`, `*`, `/`,
unary `-` and `+=`, and plain numbers mix in as constants. The module
functions `sin`, `cos`, `tan`, `asin`, `acos`, `atan`, `exp`, `log`, `sqrt`
and `erf` take a `ForwardVar` or a plain number. A value or adjoint can itself
be a `ForwardVar`, which gives higher-order derivatives.

```python
from adnodes.forward import ForwardVar, sin

x = ForwardVar(0.5, 1.0)      # value 0.5, derivative seed 1
y = sin(x) * x
print(y.value, y.adjoint)     # f(0.5) and f'(0.5)
```

## Reverse mode

An expression is a tree of `Expr` nodes. `feval()` evaluates the tree and
caches each node's value. After that, `beval(seed)` pushes the seed back down
to the leaves.

- `adnodes.expr`
  - `Var(value, adjoint=None)` is a scalar, vector or matrix variable. It
    views float64 arrays without copying them. `reset_adjoint()` sets its
    adjoint to zero.
  - A vector `Var` has subviews: `v[i]`, `v.head(n)` and `v.tail(n)`.
  - `constant(value, shape=None)` and `constant_view(values, rows, cols=None)`
    build a `Constant`. A matrix may be marked `Shape.SELFADJOINT_MATRIX`.
  - `as_expr(x)` wraps numbers and arrays as constants.
- `adnodes.unary` applies these functions element-wise: `neg`, `sin`, `cos`,
  `tan`, `asin`, `acos`, `atan`, `exp`, `log`, `sqrt`, `erf`, `sigmoid`,
  `sinh`, `cosh` and `tanh`. Constants are folded right away.
- `adnodes.prod`
  - `prod(x)` is the product of the elements of `x`.
  - `prod_map(items, func)` is the element-wise product of `func(item)`.
- `adnodes.assign`
  - `assign(var, expr)` makes `var` a placeholder for `expr`.
  - `add_assign`, `sub_assign`, `mul_assign` and `div_assign` update `var` in
    place. The old value is restored during `beval`.
- `adnodes.linalg`
  - `transpose(x)` is the transpose of `x`.
  - `det(x, method)` is the determinant of `x`.
  - `log_det(x, method)` is the log absolute determinant of `x`.
  - `method` is a `Decomposition`: `FULL_PIV_LU` (the default), `LDLT` or
    `LLT`.
- Adjusted log-densities, with constant terms dropped:
  - `adnodes.cauchy.cauchy_adj_log_pdf(x, loc, scale)`
  - `adnodes.uniform.uniform_adj_log_pdf(x, low, high)`
  - `adnodes.wishart.wishart_adj_log_pdf(x, v, n)`, where `n` must be a scalar
    constant.

  These return negative infinity outside their valid range.

```python
import numpy as np
from adnodes.expr import Var
from adnodes.unary import exp
from adnodes.prod import prod

x = Var(np.array([1.0, 2.0, 3.0]))
f = prod(exp(x))
value = f.feval()
f.beval(1.0)
print(value, x.adjoint)
```

The adjoints of a `Var` add up across calls to `beval`. Call `reset_adjoint()`
before you differentiate again.

## Helpers: `adnodes.models`

- `linear_regression(X, y, theta_hat, initial_lr=1e-4, max_iter=100, tol=1e-7)`
  minimises `||y - X theta||^2`.
  - The first step has size `initial_lr`. Later steps follow the
    Barzilai–Borwein rule.
  - It returns a `RegressionResult` with `loss`, `theta`, `gradient` and
    `iterations`.
- `quadratic_expression(x, sigma)` takes a 2-vector and a 2×2 matrix. It
  evaluates `xᵀ Σ x` and its gradient in `x`, and returns a `QuadraticResult`
  with `value` and `gradient`.

```python
import numpy as np
from adnodes.models import quadratic_expression

res = quadratic_expression(np.array([0.5, 0.6]), np.array([[2.0, 3.0], [3.0, 6.0]]))
print(res.value, res.gradient)
```

## What it does not do

Reverse-mode expressions have no binary arithmetic nodes. You cannot add,
subtract, multiply or take dot products of two expressions, and `Expr` objects
do not overload operators. There is no single driver call that evaluates and
differentiates in one step: you call `feval()` and then `beval(seed)`
yourself. There is no Hessian computation and no command-line tool.

## Tests

```
pip install .[test]
pytest
```