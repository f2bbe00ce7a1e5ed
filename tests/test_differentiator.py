import math

import pytest
import sympy as sp

from Expressions.differentiator import Differentiator, derivative, derivatives, differentiate
from Expressions.errors import DifferentiationError
from Expressions.evaluate import evaluate
from Expressions.expression_tree import Call, Number, PostfixOp, PrefixOp, Variable, copy_tree
from Expressions.parser import parse
from Expressions.render import to_infix
from Expressions.sympy_bridge import to_sympy


def d(text, variable='x'):
    return to_infix(derivative(parse(text), variable))


# ─── 1) Exact fixtures ──────────────────────────────────────────────────────────

@pytest.mark.parametrize("text, expected", [
    ("3", "0"),
    ("x", "1"),
    ("y", "0"),
    ("x ^ 2", "2*x"),
    ("x * x", "2*x"),
    ("sin(x)", "cos(x)"),
    ("cos(x)", "-sin(x)"),
    ("ln(x)", "1/x"),
    ("tg(x)", "1/cos(x)^2"),
    ("ctg(x)", "(-1)/sin(x)^2"),
    ("x + 5", "1"),
    ("5 - x", "-1"),
    ("-x", "-1"),
    ("+x", "1"),
    ("3 * x", "3"),
    ("x ^ 3", "3*x^2"),
    ("x ^ 0", "0"),
    ("x ^ (1 - 1)", "0"),
    ("e ^ x", "e^x"),
    ("2 ^ x", "2^x*ln(2)"),
    ("f(x)", "f(x)'"),
    ("sin(2 * x)", "cos(2*x)*2"),
])
def test_derivative_fixtures(text, expected):
    assert d(text) == expected


def test_other_variable():
    assert d("x * y", 'y') == "x"
    assert d("x ^ 2", 'y') == "0"


def test_raw_derivative_shape_of_product():
    raw = differentiate(parse("x * x"))
    assert raw == parse("x * 1 + 1 * x")


def test_raw_derivative_shape_of_quotient():
    raw = differentiate(parse("x / y"))
    assert raw == parse("(1 * y - x * 0) / y ^ 2")


def test_input_is_not_modified():
    tree = parse("x ^ x + sin(x * ln(x))")
    original = copy_tree(tree)
    differentiate(tree)
    assert tree == original


def test_result_shares_no_nodes_with_input():
    tree = parse("x ^ 3")
    raw = differentiate(tree)

    def ids(node):
        found = {id(node)}
        for child in node.children():
            found |= ids(child)
        return found

    assert not ids(tree) & ids(raw)


# ─── 2) Numeric checks against SymPy ────────────────────────────────────────────

POINTS = [0.5, 1.3, 2.0, 3.7]


@pytest.mark.parametrize("text", [
    "x ^ x",
    "x ^ sin(x)",
    "sin(x) ^ 2 + cos(x) ^ 2",
    "ln(x ^ 2 + 1) / x",
    "tg(x / 2) - ctg(x)",
    "(x + 1) ^ 3 * ln(x)",
    "2 ^ (x * x)",
    "e ^ (-x) * cos(3 * x)",
])
def test_derivative_matches_sympy_numerically(text):
    tree = parse(text)
    ours = derivative(tree)
    reference = sp.diff(to_sympy(tree), sp.Symbol('x'))
    for point in POINTS:
        expected = float(reference.subs(sp.Symbol('x'), point).evalf())
        assert math.isclose(evaluate(ours, point), expected, rel_tol=1e-9, abs_tol=1e-9)


def test_general_power_rule():
    # (x^x)' = x^x * (1 + ln(x))
    ours = derivative(parse("x ^ x"))
    assert ours == parse("x ^ x * (1 + ln(x))")
    for point in POINTS:
        expected = point ** point * (1 + math.log(point))
        assert math.isclose(evaluate(ours, point), expected, rel_tol=1e-9)


# ─── 3) Unknown functions ───────────────────────────────────────────────────────

def test_unknown_function_chain_rule():
    assert d("f(x ^ 2)") == "f(x^2)'*(2*x)"


def test_repeated_differentiation_of_unknown_function():
    chain = derivatives(parse("f(x)"), 3)
    assert [to_infix(tree) for tree in chain] == ["f(x)", "f(x)'", "f(x)''", "f(x)'''"]


def test_second_derivative_of_composed_unknown_function():
    second = derivatives(parse("f(2 * x)"), 2)[2]
    assert to_infix(second) == "f(2*x)''*2*2"


def test_marker_without_function_is_rejected():
    with pytest.raises(DifferentiationError):
        differentiate(PostfixOp("'", Variable('x')))
    with pytest.raises(DifferentiationError):
        differentiate(PostfixOp("'", PostfixOp("'", Number(1))))


def test_unknown_node_is_rejected():
    with pytest.raises(DifferentiationError):
        differentiate(object())


# ─── 4) Higher orders and steps ─────────────────────────────────────────────────

def test_higher_derivatives():
    chain = derivatives(parse("x ^ 4"), 4)
    assert [to_infix(tree) for tree in chain[:3]] == ["x^4", "4*x^3", "4*(3*x^2)"]
    assert math.isclose(evaluate(chain[2], 2), 48)
    assert math.isclose(evaluate(chain[3], 2), 48)
    assert chain[4] == Number(24)


def test_negative_order_is_rejected():
    with pytest.raises(DifferentiationError):
        derivatives(parse("x"), -1)


def test_steps_are_recorded():
    differentiator = Differentiator()
    differentiator.run(parse("sin(x) * 2"))
    rules = [step["rule"] for step in differentiator.steps]
    assert rules == ["constantRule", "variableRule", "chainRule", "productRule"]
    assert differentiator.steps[-1]["expression_latex"] == r"\sin(x) \cdot 2"
    assert differentiator.steps[0]["id"] == "step_0_constantRule"


@pytest.mark.parametrize("text, rule", [
    ("x + 1", "sumRule"),
    ("x - 1", "sumRule"),
    ("x * 2", "productRule"),
    ("x / 2", "quotientRule"),
    ("x ^ 2", "powerRule"),
])
def test_binary_steps_have_named_rules(text, rule):
    differentiator = Differentiator()
    differentiator.run(parse(text))
    last = differentiator.steps[-1]
    assert last["rule"] == rule
    assert last["id"] == f"step_{len(differentiator.steps) - 1}_{rule}"


def test_sign_rule_keeps_prefix():
    raw = differentiate(parse("-sin(x)"))
    assert isinstance(raw, PrefixOp)
    assert isinstance(raw.operand.lhs, Call)
