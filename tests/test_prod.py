import math

import numpy as np
import pytest

from adnodes import unary
from adnodes.expr import Constant, Shape, Var, constant
from adnodes.prod import ProdElemNode, ProdIterNode, prod, prod_map


def numeric_grad(expr, var, h=1e-6):
    base = np.array(var.value, dtype=float)
    grad = np.zeros_like(base)
    for idx in np.ndindex(base.shape):
        plus = base.copy()
        plus[idx] += h
        var.value = plus
        fp = expr.feval()
        minus = base.copy()
        minus[idx] -= h
        var.value = minus
        fm = expr.feval()
        grad[idx] = (np.sum(fp) - np.sum(fm)) / (2 * h)
    var.value = base
    return grad


@pytest.mark.parametrize(
    "values",
    [[2.0, 3.0, 4.0], [2.0, 0.0, 4.0], [0.0, 1.5, 0.0], [-1.0, 0.5, 3.0]],
)
def test_prod_of_vector_value_and_gradient(values):
    x = Var(np.array(values))
    node = prod(x)
    assert isinstance(node, ProdElemNode)
    assert node.feval() == pytest.approx(math.prod(values))
    node.beval(1.0)
    grad = x.adjoint.copy()
    assert grad == pytest.approx(numeric_grad(node, x), rel=1e-5, abs=1e-8)


def test_prod_with_one_zero_keeps_other_product():
    values = [2.0, 0.0, 4.0]
    x = Var(np.array(values))
    node = prod(x)
    node.feval()
    node.beval(1.0)
    assert x.adjoint[1] == pytest.approx(values[0] * values[2])
    assert x.adjoint[0] == 0.0
    assert x.adjoint[2] == 0.0


def test_prod_of_matrix_gradient():
    x = Var(np.array([[1.5, -2.0], [0.5, 3.0]]))
    node = prod(x)
    node.feval()
    node.beval(2.0)
    grad = x.adjoint.copy()
    assert grad == pytest.approx(2.0 * numeric_grad(node, x), rel=1e-5)


def test_prod_of_scalar_passes_seed():
    x = Var(3.0)
    node = prod(x)
    assert node.feval() == pytest.approx(3.0)
    node.beval(2.0)
    assert x.adjoint == pytest.approx(2.0)


def test_prod_of_constant_vector_folds():
    folded = prod(constant([2.0, 3.0, 5.0]))
    assert isinstance(folded, Constant)
    assert folded.shape is Shape.SCALAR
    assert folded.feval() == pytest.approx(math.prod([2.0, 3.0, 5.0]))


def test_prod_of_constant_scalar_is_itself():
    c = constant(7.0)
    assert prod(c) is c


def test_prod_rejects_plain_number():
    with pytest.raises(TypeError):
        prod(5.0)


def test_prod_map_over_subviews():
    values = [1.5, -2.0, 0.5]
    x = Var(np.array(values))
    node = prod_map(range(3), lambda i: x[i])
    assert isinstance(node, ProdIterNode)
    assert node.feval() == pytest.approx(math.prod(values))
    node.beval(1.0)
    grad = x.adjoint.copy()
    assert grad == pytest.approx(numeric_grad(node, x), rel=1e-5)


def test_prod_map_with_zero_factor():
    x = Var(np.array([2.0, 0.0, 4.0]))
    node = prod_map(range(3), lambda i: x[i])
    node.feval()
    node.beval(1.0)
    grad = x.adjoint.copy()
    assert grad == pytest.approx(numeric_grad(node, x), rel=1e-5, abs=1e-8)


def test_prod_map_of_vectors_is_elementwise():
    x = Var(np.array([1.0, 2.0, 3.0]))
    y = Var(np.array([4.0, -1.0, 0.5]))
    node = prod_map([x, y], lambda v: v)
    assert node.feval() == pytest.approx(x.value * y.value)
    node.beval(1.0)
    assert x.adjoint == pytest.approx(y.value)
    assert y.adjoint == pytest.approx(x.value)


def test_prod_map_with_unary_factors_matches_finite_differences():
    x = Var(np.array([0.3, 0.8]))
    node = prod_map([unary.sin, unary.exp], lambda f: f(x))
    node.feval()
    node.beval(np.ones(2))
    grad = x.adjoint.copy()
    assert grad == pytest.approx(numeric_grad(node, x), rel=1e-5)


def test_prod_map_mixes_constants_and_variables():
    x = Var(2.5)
    node = prod_map([3.0, x], lambda v: v)
    assert node.feval() == pytest.approx(3.0 * 2.5)
    node.beval(1.0)
    assert x.adjoint == pytest.approx(3.0)


def test_prod_map_of_constants_folds():
    folded = prod_map([2.0, 3.0, 7.0], constant)
    assert isinstance(folded, Constant)
    assert folded.feval() == pytest.approx(math.prod([2.0, 3.0, 7.0]))


def test_prod_map_empty_is_one_and_ignores_seed():
    node = prod_map([], lambda v: v)
    assert node.feval() == 1.0
    node.beval(5.0)
    assert node.feval() == 1.0


def test_prod_map_rejects_mismatched_shapes():
    x = Var(np.array([1.0, 2.0]))
    y = Var(np.array([1.0, 2.0, 3.0]))
    with pytest.raises(ValueError):
        prod_map([x, y], lambda v: v)


def test_prod_iter_node_rejects_non_expressions():
    with pytest.raises(TypeError):
        ProdIterNode([1.0, 2.0])