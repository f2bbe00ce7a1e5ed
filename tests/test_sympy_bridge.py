import pytest
import sympy as sp

from Expressions.errors import BuildError
from Expressions.expression_tree import BinaryOp, Call, Number, PostfixOp, PrefixOp, Variable
from Expressions.parser import parse
from Expressions.sympy_bridge import from_sympy, to_sympy

x = sp.Symbol('x')


# ─── 1) Tree -> SymPy ───────────────────────────────────────────────────────────

def test_to_sympy_maps_function_names():
    assert to_sympy(parse("tg(x) + ctg(x) + ln(e)")) == sp.tan(x) + sp.cot(x) + 1
    assert to_sympy(parse("2 ^ 3 - pi")) == 8 - sp.pi
    assert to_sympy(BinaryOp('/', PrefixOp('-', Variable('x')), Number(2.5))) == -x / sp.Float(2.5)


def test_to_sympy_unknown_function():
    assert to_sympy(parse("f(x)")) == sp.Function('f')(x)


def test_to_sympy_derivative_marker():
    first = to_sympy(PostfixOp("'", Call('sin', Variable('x'))))
    assert first.doit() == sp.cos(x)

    second = to_sympy(PostfixOp("'", PostfixOp("'", Call('sin', Variable('x')))))
    assert second.doit() == -sp.sin(x)

    assert to_sympy(PostfixOp("'", Call('f', Variable('x')))).has(sp.Derivative)


def test_to_sympy_rejects_marker_without_call():
    with pytest.raises(BuildError):
        to_sympy(PostfixOp("'", Variable('x')))


# ─── 2) SymPy -> Tree ───────────────────────────────────────────────────────────

@pytest.mark.parametrize("expr, expected", [
    (x, Variable('x')),
    (sp.Integer(3), Number(3)),
    (sp.Float(2.5), Number(2.5)),
    (sp.Integer(-3), PrefixOp('-', Number(3))),
    (sp.Rational(-1, 2), PrefixOp('-', BinaryOp('/', Number(1), Number(2)))),
    (sp.E, Variable('e')),
    (sp.pi, Variable('pi')),
    (-x, PrefixOp('-', Variable('x'))),
    (x ** 2, BinaryOp('^', Variable('x'), Number(2))),
    (sp.exp(x), BinaryOp('^', Variable('e'), Variable('x'))),
    (sp.tan(x), Call('tg', Variable('x'))),
    (sp.log(x), Call('ln', Variable('x'))),
    (sp.Function('f')(x), Call('f', Variable('x'))),
])
def test_from_sympy(expr, expected):
    assert from_sympy(expr) == expected


@pytest.mark.parametrize("expr", [
    sp.sin(x) ** 2 + 3 * x,
    x / 2 - sp.cot(x),
    sp.exp(-x) * sp.cos(3 * x),
    (x + 1) ** 3 * sp.log(x),
])
def test_round_trip_through_sympy(expr):
    assert sp.simplify(to_sympy(from_sympy(expr)) - expr) == 0


def test_unsupported_sympy_expression():
    with pytest.raises(BuildError):
        from_sympy(sp.Abs(x))
    with pytest.raises(BuildError):
        from_sympy(sp.sin(x) + sp.Max(x, 1))
