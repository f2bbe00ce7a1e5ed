import pytest

from Expressions.engine import (
    compute_derivative, compute_taylor, compute_value, depth_guard, iter_derivatives,
)
from Expressions.errors import ExpressionError, ParseError
from Expressions.parser import MAX_TREE_DEPTH


# ─── 1) Derivatives ─────────────────────────────────────────────────────────────

def test_compute_derivative():
    result = compute_derivative("x ^ 2")

    assert result["expression"] == "x ^ 2"
    assert result["variable"] == "x"
    assert result["execution_time_ms"] >= 0
    assert result["peak_memory_bytes"] >= 0

    (first,) = result["derivatives"]
    assert first["order"] == 1
    assert first["derivative"] == "2*x"
    assert first["derivative_latex"] == "2x"
    assert first["steps"]
    assert {"id", "rule", "expression_latex", "derivative_latex"} <= set(first["steps"][0])


def test_each_order_builds_on_the_previous_one():
    result = compute_derivative("x ^ 3", 3)
    assert [item["order"] for item in result["derivatives"]] == [1, 2, 3]
    assert result["derivatives"][0]["derivative"] == "3*x^2"
    assert result["derivatives"][2]["derivative"] == "6"


def test_other_variable():
    result = compute_derivative("x * y ^ 2", 1, "y")
    assert result["derivatives"][0]["derivative"] == "x*(2*y)"


def test_iter_derivatives_is_lazy():
    results = iter_derivatives("sin(x)", 4)
    assert next(results)["derivative"] == "cos(x)"
    assert next(results)["derivative"] == "-sin(x)"


def test_errors_are_raised():
    with pytest.raises(ParseError):
        compute_derivative("x +")
    with pytest.raises(ExpressionError):
        compute_derivative("x", 0)


def test_long_chain_fails_as_an_expression_error():
    with pytest.raises(ParseError):
        compute_derivative(" + ".join(["x"] * 1500))

    result = compute_derivative(" + ".join(["x"] * MAX_TREE_DEPTH))
    assert result["derivatives"][0]["derivative"] == str(MAX_TREE_DEPTH)


def test_depth_guard_converts_recursion_errors():
    with pytest.raises(ExpressionError) as info:
        with depth_guard("x"):
            raise RecursionError("maximum recursion depth exceeded")
    assert isinstance(info.value.__cause__, RecursionError)


# ─── 2) Values and Taylor polynomials ───────────────────────────────────────────

def test_compute_value():
    result = compute_value("x ^ 2", 3)
    assert result["substituted"] == "9"
    assert result["value"] == 9


def test_compute_value_keeps_other_identifiers():
    result = compute_value("x ^ 2 + y", 3)
    assert result["substituted"] == "9 + y"
    assert result["value"] is None


def test_compute_value_undefined():
    result = compute_value("1 / x", 0)
    assert result["substituted"] == "1/0"
    assert result["substituted_latex"] == r"\frac{1}{0}"
    assert result["value"] is None


def test_compute_taylor():
    result = compute_taylor("e ^ x", 2, 0)
    assert result["polynomial"] == "1 + x + 0.5*x^2"
    assert result["polynomial_latex"].endswith(r" + o\left(x^{2}\right)")
