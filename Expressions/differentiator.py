import logging
from typing import Callable, Dict, List

from Expressions.errors import DifferentiationError
from Expressions.expression_tree import (
    DEFAULT_VARIABLE, OP_DERIVATIVE, OP_DIV, OP_MINUS, OP_MUL, OP_PLUS, OP_POW,
    BinaryOp, Call, Node, Number, PostfixOp, PrefixOp, Variable,
    copy_tree, make_binary, make_function, make_number, make_postfix_unary,
    make_prefix_unary,
)
from Expressions.optimizer import Optimizer, is_constant, numbers_equal
from Expressions.render import to_latex

# --- Logger Setup ---
logger = logging.getLogger(__name__)


# --- Derivatives of known functions, without the inner derivative ---
# Each rule receives its own copy of the argument.
def _sin_rule(arg):
    return make_function('cos', arg)


def _cos_rule(arg):
    return make_prefix_unary(OP_MINUS, make_function('sin', arg))


def _tg_rule(arg):
    return make_binary(OP_DIV, make_number(1),
                       make_binary(OP_POW, make_function('cos', arg), make_number(2)))


def _ctg_rule(arg):
    return make_binary(OP_DIV, make_prefix_unary(OP_MINUS, make_number(1)),
                       make_binary(OP_POW, make_function('sin', arg), make_number(2)))


def _ln_rule(arg):
    return make_binary(OP_DIV, make_number(1), arg)


FUNCTION_RULES: Dict[str, Callable[[Node], Node]] = {
    'sin': _sin_rule,
    'cos': _cos_rule,
    'tg': _tg_rule,
    'ctg': _ctg_rule,
    'ln': _ln_rule,
}

# Step names for binary operators; a difference is reported as a sum.
BINARY_RULE_KEYS = {
    OP_PLUS: "sumRule",
    OP_MINUS: "sumRule",
    OP_MUL: "productRule",
    OP_DIV: "quotientRule",
    OP_POW: "powerRule",
}


class Differentiator:
    """Builds the derivative of an expression tree.

    The input tree is never modified: every subtree of the result is either
    freshly built or a copy. Steps are recorded as the rules fire so callers
    can show how the result was reached.
    """

    def __init__(self, variable: str = DEFAULT_VARIABLE):
        self.variable = variable
        self.steps = []
        self.optimizer = Optimizer()

    def _add_step(self, rule_key: str, node: Node, result: Node):
        self.steps.append({
            "id": f"step_{len(self.steps)}_{rule_key}",
            "rule": rule_key,
            "expression_latex": to_latex(node),
            "derivative_latex": to_latex(result),
        })

    def run(self, node: Node) -> Node:
        logger.debug(f"Differentiating {node!r} with respect to {self.variable}")
        return self._differentiate(node)

    def _differentiate(self, node: Node) -> Node:
        if isinstance(node, Number):
            result = make_number(0)
            rule_key = "constantRule"
        elif isinstance(node, Variable):
            result = make_number(1 if node.name == self.variable else 0)
            rule_key = "variableRule"
        elif isinstance(node, Call):
            result = self._differentiate_call(node)
            rule_key = "chainRule"
        elif isinstance(node, BinaryOp):
            result = self._differentiate_binary(node)
            rule_key = BINARY_RULE_KEYS[node.op]
        elif isinstance(node, PrefixOp):
            result = make_prefix_unary(node.op, self._differentiate(node.operand))
            rule_key = "signRule"
        elif isinstance(node, PostfixOp):
            result = self._differentiate_marker(node)
            rule_key = "opaqueChainRule"
        else:
            raise DifferentiationError(f"Cannot differentiate node {node!r}")

        self._add_step(rule_key, node, result)
        return result

    def _differentiate_call(self, node: Call) -> Node:
        rule = FUNCTION_RULES.get(node.name)
        if rule is not None:
            outer = rule(copy_tree(node.arg))
        else:
            # Unknown function: keep f(arg)' unresolved.
            outer = make_postfix_unary(OP_DERIVATIVE,
                                       make_function(node.name, copy_tree(node.arg)))

        return make_binary(OP_MUL, outer, self._differentiate(node.arg))

    def _differentiate_marker(self, node: PostfixOp) -> Node:
        if node.op != OP_DERIVATIVE:
            raise DifferentiationError(f"Unknown postfix operator '{node.op}'")

        inner = node.operand
        while isinstance(inner, PostfixOp) and inner.op == OP_DERIVATIVE:
            inner = inner.operand

        if not isinstance(inner, Call):
            raise DifferentiationError(
                f"Derivative marker must wrap a function call, found {inner!r}")

        outer = make_postfix_unary(OP_DERIVATIVE, copy_tree(node))
        return make_binary(OP_MUL, outer, self._differentiate(inner.arg))

    def _differentiate_binary(self, node: BinaryOp) -> Node:
        op, lhs, rhs = node.op, node.lhs, node.rhs
        d = self._differentiate

        if op in (OP_PLUS, OP_MINUS):
            return make_binary(op, d(lhs), d(rhs))

        if op == OP_MUL:
            return make_binary(OP_PLUS,
                               make_binary(OP_MUL, copy_tree(lhs), d(rhs)),
                               make_binary(OP_MUL, d(lhs), copy_tree(rhs)))

        if op == OP_DIV:
            numerator = make_binary(OP_MINUS,
                                    make_binary(OP_MUL, d(lhs), copy_tree(rhs)),
                                    make_binary(OP_MUL, copy_tree(lhs), d(rhs)))
            denominator = make_binary(OP_POW, copy_tree(rhs), make_number(2))
            return make_binary(OP_DIV, numerator, denominator)

        if op == OP_POW:
            return self._differentiate_power(lhs, rhs)

        raise DifferentiationError(f"Unknown binary operator '{op}'")

    def _differentiate_power(self, base: Node, exponent: Node) -> Node:
        d = self._differentiate

        # Power rule: n * u^(n-1) * u'
        if is_constant(exponent, self.variable):
            n = self.optimizer.run(copy_tree(exponent))
            if isinstance(n, Number) and numbers_equal(n.value, 0):
                return make_number(0)

            lowered = make_binary(OP_POW, copy_tree(base),
                                  make_binary(OP_MINUS, copy_tree(n), make_number(1)))
            return make_binary(OP_MUL, make_binary(OP_MUL, n, lowered), d(base))

        power = make_binary(OP_POW, copy_tree(base), copy_tree(exponent))

        # Exponential rule: a^v * ln(a) * v'
        if is_constant(base, self.variable):
            scaled = make_binary(OP_MUL, power, make_function('ln', copy_tree(base)))
            return make_binary(OP_MUL, scaled, d(exponent))

        # u^v * (u' * v / u + v' * ln(u))
        base_part = make_binary(OP_DIV,
                                make_binary(OP_MUL, d(base), copy_tree(exponent)),
                                copy_tree(base))
        exponent_part = make_binary(OP_MUL, d(exponent),
                                    make_function('ln', copy_tree(base)))
        return make_binary(OP_MUL, power,
                           make_binary(OP_PLUS, base_part, exponent_part))


def differentiate(tree: Node, variable: str = DEFAULT_VARIABLE) -> Node:
    """Returns the raw (unoptimized) derivative of ``tree``."""
    return Differentiator(variable).run(tree)


def derivative(tree: Node, variable: str = DEFAULT_VARIABLE) -> Node:
    """Returns the optimized derivative of ``tree``."""
    return Optimizer().run(differentiate(tree, variable))


def derivatives(tree: Node, order: int, variable: str = DEFAULT_VARIABLE) -> List[Node]:
    """Returns ``[tree, tree', ..., tree^(order)]``.

    The first entry is a copy of ``tree``; every derivative is optimized
    before the next one is taken from it.
    """
    if order < 0:
        raise DifferentiationError(f"Derivative order must not be negative, got {order}")

    optimizer = Optimizer()
    result = [copy_tree(tree)]
    for _ in range(order):
        result.append(optimizer.run(differentiate(result[-1], variable)))
    return result
