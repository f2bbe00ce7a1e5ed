"""Conversion between expression trees and SymPy expressions."""
import logging
from functools import reduce

import sympy as sp
from sympy.core.function import AppliedUndef

from Expressions.errors import BuildError
from Expressions.expression_tree import (
    EULER_NUMBER, OP_DERIVATIVE, OP_DIV, OP_MINUS, OP_MUL, OP_PLUS, OP_POW,
    BinaryOp, Call, Node, Number, PostfixOp, PrefixOp, Variable,
    make_binary, make_function, make_number, make_prefix_unary, make_variable,
)

# --- Logger Setup ---
logger = logging.getLogger(__name__)

TO_SYMPY_FUNCTIONS = {
    'sin': sp.sin,
    'cos': sp.cos,
    'tg': sp.tan,
    'ctg': sp.cot,
    'ln': sp.log,
}
FROM_SYMPY_FUNCTIONS = {
    sp.sin: 'sin',
    sp.cos: 'cos',
    sp.tan: 'tg',
    sp.cot: 'ctg',
    sp.log: 'ln',
}


# --- Tree -> SymPy ---
def to_sympy(node: Node) -> sp.Expr:
    if isinstance(node, Number):
        if node.value.is_integer():
            return sp.Integer(int(node.value))
        return sp.Float(node.value)

    if isinstance(node, Variable):
        if node.name == EULER_NUMBER:
            return sp.E
        if node.name == 'pi':
            return sp.pi
        return sp.Symbol(node.name)

    if isinstance(node, PrefixOp):
        operand = to_sympy(node.operand)
        return -operand if node.op == OP_MINUS else operand

    if isinstance(node, BinaryOp):
        lhs = to_sympy(node.lhs)
        rhs = to_sympy(node.rhs)
        if node.op == OP_PLUS:
            return lhs + rhs
        if node.op == OP_MINUS:
            return lhs - rhs
        if node.op == OP_MUL:
            return lhs * rhs
        if node.op == OP_DIV:
            return lhs / rhs
        return sp.Pow(lhs, rhs)

    if isinstance(node, Call):
        function = TO_SYMPY_FUNCTIONS.get(node.name, sp.Function(node.name))
        return function(to_sympy(node.arg))

    if isinstance(node, PostfixOp) and node.op == OP_DERIVATIVE:
        # f(u)'' is the second derivative of f taken at u.
        order = 0
        inner = node
        while isinstance(inner, PostfixOp):
            order += 1
            inner = inner.operand
        if not isinstance(inner, Call):
            raise BuildError(f"Derivative marker must wrap a function call, found {inner!r}")

        t = sp.Dummy('t')
        function = TO_SYMPY_FUNCTIONS.get(inner.name, sp.Function(inner.name))
        return sp.Subs(sp.Derivative(function(t), (t, order)), t, to_sympy(inner.arg))

    raise BuildError(f"Cannot convert {node!r} to SymPy")


# --- SymPy -> Tree ---
def _fold(op, nodes):
    return reduce(lambda lhs, rhs: make_binary(op, lhs, rhs), nodes)


def _from_number(expr) -> Node:
    if expr.is_Integer or expr.is_Float:
        value = float(expr)
        if value < 0:
            return make_prefix_unary(OP_MINUS, make_number(-value))
        return make_number(value)
    if expr.is_Rational:
        fraction = make_binary(OP_DIV, make_number(abs(expr.p)), make_number(expr.q))
        return make_prefix_unary(OP_MINUS, fraction) if expr.p < 0 else fraction
    raise BuildError(f"Unsupported number {expr}")


def from_sympy(expr) -> Node:
    """Builds a tree the parser could have produced from ``expr``."""
    expr = sp.sympify(expr)

    if expr is sp.E:
        return make_variable(EULER_NUMBER)
    if expr is sp.pi:
        return make_variable('pi')
    if expr.is_Number:
        return _from_number(expr)
    if expr.is_Symbol:
        return make_variable(expr.name)

    if expr.is_Add:
        return _fold(OP_PLUS, [from_sympy(arg) for arg in expr.as_ordered_terms()])

    if expr.is_Mul:
        coefficient, rest = expr.as_coeff_Mul()
        if coefficient == -1:
            return make_prefix_unary(OP_MINUS, from_sympy(rest))
        return _fold(OP_MUL, [from_sympy(arg) for arg in expr.as_ordered_factors()])

    if expr.is_Pow:
        base, exponent = expr.as_base_exp()
        return make_binary(OP_POW, from_sympy(base), from_sympy(exponent))

    if isinstance(expr, sp.exp):
        return make_binary(OP_POW, make_variable(EULER_NUMBER), from_sympy(expr.args[0]))

    if expr.func in FROM_SYMPY_FUNCTIONS:
        return make_function(FROM_SYMPY_FUNCTIONS[expr.func], from_sympy(expr.args[0]))

    if isinstance(expr, AppliedUndef) and len(expr.args) == 1:
        return make_function(expr.func.__name__, from_sympy(expr.args[0]))

    raise BuildError(f"Cannot convert {expr.func.__name__} expressions")
