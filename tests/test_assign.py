import math

import numpy as np
import pytest

from adnodes.assign import (
    AssignOp,
    OpEqNode,
    add_assign,
    assign,
    div_assign,
    mul_assign,
    sub_assign,
)
from adnodes.expr import Var
from adnodes.prod import prod_map
from adnodes.unary import exp, sin


def test_assign_stores_value_in_placeholder():
    w = Var(0.0)
    x = Var(2.0)
    node = assign(w, sin(x))
    assert node.feval() == pytest.approx(math.sin(2.0))
    assert w.value == pytest.approx(math.sin(2.0))
    assert node.value == pytest.approx(math.sin(2.0))


def test_assign_backward_uses_full_adjoint():
    w = Var(0.0)
    x = Var(2.0)
    node = assign(w, sin(x))
    node.feval()
    node.beval(1.0)
    assert w.adjoint == pytest.approx(1.0)
    assert x.adjoint == pytest.approx(math.cos(2.0))


def test_placeholder_reused_in_later_expression():
    x0 = 0.7
    w = Var(0.0)
    x = Var(x0)
    u = assign(w, exp(x))
    u.feval()
    f = prod_map([w, w], lambda e: e)
    assert f.feval() == pytest.approx(math.exp(2 * x0))
    f.beval(1.0)
    u.beval(0.0)
    assert w.adjoint == pytest.approx(2 * math.exp(x0))
    assert x.adjoint == pytest.approx(2 * math.exp(2 * x0))


def test_assign_constant_value():
    w = Var(np.zeros(2))
    node = assign(w, [1.5, -2.5])
    node.feval()
    np.testing.assert_allclose(w.value, [1.5, -2.5])


def test_assign_plain_variable_rejected():
    with pytest.raises(TypeError):
        assign(Var(1.0), Var(2.0))


def test_assign_requires_variable_target():
    with pytest.raises(TypeError):
        assign(3.0, sin(Var(1.0)))


def test_assign_shape_mismatch():
    with pytest.raises(ValueError):
        assign(Var(np.zeros(2)), sin(Var(np.ones(3))))


def test_add_assign_scalar_and_restore():
    w0, x0 = 1.0, 3.0
    w = Var(w0)
    x = Var(x0)
    node = add_assign(w, x)
    assert node.feval() == pytest.approx(w0 + x0)
    assert w.value == pytest.approx(w0 + x0)
    node.beval(1.0)
    assert w.value == pytest.approx(w0)
    assert w.adjoint == pytest.approx(1.0)
    assert x.adjoint == pytest.approx(1.0)


def test_mul_assign_scalar_gradients():
    w0, x0 = 2.0, 5.0
    w = Var(w0)
    x = Var(x0)
    node = mul_assign(w, x)
    assert node.feval() == pytest.approx(w0 * x0)
    node.beval(1.0)
    assert w.adjoint == pytest.approx(x0)
    assert x.adjoint == pytest.approx(w0)


def test_div_assign_scalar_gradients():
    w0, x0 = 6.0, 3.0
    w = Var(w0)
    x = Var(x0)
    node = div_assign(w, x)
    assert node.feval() == pytest.approx(w0 / x0)
    node.beval(1.0)
    assert w.adjoint == pytest.approx(1 / x0)
    assert x.adjoint == pytest.approx(-w0 / x0**2)


def test_sub_assign_vector_with_scalar_expression():
    w0 = np.array([1.0, 2.0, 3.0])
    x0 = 0.5
    w = Var(w0.copy())
    x = Var(x0)
    node = sub_assign(w, x)
    np.testing.assert_allclose(node.feval(), w0 - x0)
    node.beval(np.ones(3))
    np.testing.assert_allclose(w.value, w0)
    np.testing.assert_allclose(w.adjoint, np.ones(3))
    assert x.adjoint == pytest.approx(-3.0)


def test_mul_assign_vector_with_scalar_expression_sums_seed():
    w0 = np.array([1.0, 2.0])
    x0 = 3.0
    w = Var(w0.copy())
    x = Var(x0)
    node = mul_assign(w, x)
    node.feval()
    node.beval(np.ones(2))
    assert x.adjoint == pytest.approx(w0.sum())
    np.testing.assert_allclose(w.adjoint, [x0, x0])


def test_div_assign_vectors():
    w0 = np.array([2.0, 4.0])
    x0 = np.array([1.0, 8.0])
    w = Var(w0.copy())
    x = Var(x0.copy())
    node = div_assign(w, x)
    np.testing.assert_allclose(node.feval(), w0 / x0)
    node.beval(np.ones(2))
    np.testing.assert_allclose(w.adjoint, 1 / x0)
    np.testing.assert_allclose(x.adjoint, -w0 / x0**2)


def test_op_assign_on_itself():
    w0 = 3.0
    w = Var(w0)
    node = OpEqNode(AssignOp.MUL, w, w)
    assert node.feval() == pytest.approx(w0 * w0)
    node.beval(1.0)
    assert w.value == pytest.approx(w0)
    assert w.adjoint == pytest.approx(2 * w0)


def test_add_assign_with_constant():
    w = Var(np.array([1.0, 2.0]))
    node = add_assign(w, 2.0)
    np.testing.assert_allclose(node.feval(), [3.0, 4.0])


def test_op_assign_shape_mismatch():
    with pytest.raises(ValueError):
        add_assign(Var(np.zeros(2)), Var(np.zeros(3)))


def test_op_assign_scalar_target_vector_expression_rejected():
    with pytest.raises(ValueError):
        add_assign(Var(1.0), Var(np.zeros(3)))


def test_op_assign_requires_variable_target():
    with pytest.raises(TypeError):
        mul_assign(sin(Var(1.0)), 2.0)