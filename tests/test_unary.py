import math

import numpy as np
import pytest

from adnodes import forward, unary
from adnodes.expr import Constant, Shape, Var, constant


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
    "reverse_fn, forward_fn",
    [
        (unary.sin, forward.sin),
        (unary.cos, forward.cos),
        (unary.tan, forward.tan),
        (unary.asin, forward.asin),
        (unary.acos, forward.acos),
        (unary.atan, forward.atan),
        (unary.exp, forward.exp),
        (unary.log, forward.log),
        (unary.sqrt, forward.sqrt),
        (unary.erf, forward.erf),
    ],
)
def test_matches_forward_mode(reverse_fn, forward_fn):
    v = 0.3
    x = Var(v)
    node = reverse_fn(x)
    value = node.feval()
    node.beval(1.0)
    expected = forward_fn(forward.ForwardVar(v, 1.0))
    assert value == pytest.approx(expected.value)
    assert x.adjoint == pytest.approx(expected.adjoint)


@pytest.mark.parametrize("fn", [unary.sigmoid, unary.sinh, unary.cosh, unary.tanh])
def test_hyperbolic_and_sigmoid_match_finite_differences(fn):
    x = Var(np.array([-0.7, 0.2, 1.5]))
    node = fn(x)
    node.feval()
    node.beval(1.0)
    grad = x.adjoint.copy()
    assert grad == pytest.approx(numeric_grad(node, x), rel=1e-6)


def test_chain_matches_forward_mode():
    v = 0.4
    x = Var(v)
    node = unary.sin(unary.exp(x))
    value = node.feval()
    node.beval(1.0)
    expected = forward.sin(forward.exp(forward.ForwardVar(v, 1.0)))
    assert value == pytest.approx(expected.value)
    assert x.adjoint == pytest.approx(expected.adjoint)


def test_sigmoid_at_zero_is_half():
    assert unary.sigmoid(Var(0.0)).feval() == pytest.approx(0.5)


def test_neg_gradient_is_negated_seed():
    x = Var(1.25)
    node = unary.neg(x)
    assert node.feval() == pytest.approx(-1.25)
    node.beval(3.0)
    assert x.adjoint == pytest.approx(-3.0)


def test_exp_gradient_equals_value_on_matrix():
    x = Var(np.array([[0.1, -0.2], [0.5, 1.0]]))
    node = unary.exp(x)
    value = node.feval()
    node.beval(1.0)
    assert node.shape is Shape.MATRIX
    assert x.adjoint == pytest.approx(value)


def test_array_seed_scales_gradient():
    x = Var(np.array([0.1, 0.2]))
    node = unary.sin(x)
    node.feval()
    node.beval(1.0)
    unit = x.adjoint.copy()
    x.reset_adjoint()
    seed = np.array([2.0, 3.0])
    node.beval(seed)
    assert x.adjoint == pytest.approx(seed * unit)


def test_scalar_seed_broadcasts_over_vector():
    x = Var(np.array([0.1, 0.2, 0.3]))
    node = unary.atan(x)
    node.feval()
    node.beval(np.ones(3))
    unit = x.adjoint.copy()
    x.reset_adjoint()
    node.beval(2.0)
    assert x.adjoint == pytest.approx(2.0 * unit)
    assert node.adjoint == pytest.approx(np.full(3, 2.0))


def test_adjoint_accumulates_across_backward_passes():
    x = Var(0.7)
    node = unary.cos(x)
    node.feval()
    node.beval(1.0)
    once = x.adjoint
    node.beval(1.0)
    assert x.adjoint == pytest.approx(2.0 * once)


def test_constant_is_folded_to_constant():
    folded = unary.exp(constant([0.0, 1.0]))
    assert isinstance(folded, Constant)
    assert folded.shape is Shape.VECTOR
    assert folded.feval() == pytest.approx([1.0, math.e])


def test_constant_scalar_folded():
    folded = unary.sqrt(constant(4.0))
    assert isinstance(folded, Constant)
    assert folded.feval() == pytest.approx(2.0)


def test_plain_number_is_rejected():
    with pytest.raises(TypeError):
        unary.sin(0.5)


def test_log_of_negative_gives_nan():
    x = Var(-1.0)
    node = unary.log(x)
    value = node.feval()
    assert math.isnan(value)
    node.beval(1.0)
    assert x.adjoint == pytest.approx(-1.0)


def test_node_shape_and_cached_value_follow_expression():
    x = Var(np.array([1.0, 4.0, 9.0]))
    node = unary.sqrt(x)
    result = node.feval()
    assert (node.rows, node.cols) == (3, 1)
    assert node.value == pytest.approx(result)
    assert result == pytest.approx(np.sqrt(x.value))