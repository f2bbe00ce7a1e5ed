import math
from typing import Dict, Optional

from Expressions.errors import EvaluationError
from Expressions.expression_tree import (
    DEFAULT_VARIABLE, EULER_NUMBER, OP_MINUS,
    BinaryOp, Call, Node, Number, PostfixOp, PrefixOp, Variable,
)
from Expressions.optimizer import fold_binary

CONSTANTS = {
    EULER_NUMBER: math.e,
    'pi': math.pi,
}


def _ctg(value):
    return math.cos(value) / math.sin(value)


FUNCTIONS = {
    'sin': math.sin,
    'cos': math.cos,
    'tg': math.tan,
    'ctg': _ctg,
    'ln': math.log,
}


def evaluate(node: Node, value: float, variable: str = DEFAULT_VARIABLE,
             env: Optional[Dict[str, float]] = None) -> float:
    """Evaluates ``node`` numerically with ``variable`` bound to ``value``.

    ``env`` may bind further identifiers; ``e`` and ``pi`` are always known.
    """
    bindings = dict(CONSTANTS)
    if env:
        bindings.update(env)
    bindings[variable] = float(value)
    return _evaluate(node, bindings)


def _evaluate(node: Node, bindings: Dict[str, float]) -> float:
    if isinstance(node, Number):
        return node.value

    if isinstance(node, Variable):
        if node.name in bindings:
            return bindings[node.name]
        raise EvaluationError(f"Missing value for identifier '{node.name}'")

    if isinstance(node, PrefixOp):
        operand = _evaluate(node.operand, bindings)
        return -operand if node.op == OP_MINUS else operand

    if isinstance(node, BinaryOp):
        lhs = _evaluate(node.lhs, bindings)
        rhs = _evaluate(node.rhs, bindings)
        result = fold_binary(node.op, lhs, rhs)
        if result is None:
            raise EvaluationError(f"{lhs} {node.op} {rhs} is undefined")
        return result

    if isinstance(node, Call):
        function = FUNCTIONS.get(node.name)
        if function is None:
            raise EvaluationError(f"Unknown function '{node.name}'")
        arg = _evaluate(node.arg, bindings)
        try:
            return function(arg)
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            raise EvaluationError(f"{node.name}({arg}) is undefined") from e

    if isinstance(node, PostfixOp):
        raise EvaluationError("Cannot evaluate the derivative of an unknown function")

    raise EvaluationError(f"Cannot evaluate {node!r}")
