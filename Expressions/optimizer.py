import logging
import math
from typing import Callable, Optional, Tuple

from Expressions.errors import OptimizationError
from Expressions.expression_tree import (
    BINARY_OPERATORS, DEFAULT_VARIABLE, EULER_NUMBER, OP_DIV, OP_MINUS, OP_MUL,
    OP_PLUS, OP_POW, BinaryOp, Call, Node, Number, PrefixOp, Variable,
    make_binary, make_number, make_prefix_unary, replace_subtree,
)

# --- Logger Setup ---
logger = logging.getLogger(__name__)

# Tolerance for every numeric comparison made while rewriting.
EPSILON = 1e-6

# Upper bound on optimizer sweeps; every rewrite shrinks the tree, so a
# well-formed tree never gets near it.
MAX_SWEEPS = 10000

# (function, argument) -> value
FUNCTION_IDENTITIES = {
    ('sin', 0.0): 0.0,
    ('tg', 0.0): 0.0,
    ('cos', 0.0): 1.0,
    ('ln', 1.0): 0.0,
}

Rewrite = Tuple[Node, bool]


def numbers_equal(a: float, b: float, epsilon: float = EPSILON) -> bool:
    return abs(b - a) < epsilon


def is_constant(node: Node, variable: str = DEFAULT_VARIABLE) -> bool:
    """True if ``node`` contains no occurrence of ``variable``."""
    if isinstance(node, Variable):
        return node.name != variable
    return all(is_constant(child, variable) for child in node.children())


def fold_binary(op: str, lhs: float, rhs: float) -> Optional[float]:
    """Evaluates ``lhs op rhs``; None when the result is not a finite real."""
    if op not in BINARY_OPERATORS:
        raise OptimizationError(f"Cannot fold operator '{op}'")

    try:
        if op == OP_PLUS:
            value = lhs + rhs
        elif op == OP_MINUS:
            value = lhs - rhs
        elif op == OP_MUL:
            value = lhs * rhs
        elif op == OP_DIV:
            value = lhs / rhs
        else:
            value = math.pow(lhs, rhs)
    except (ZeroDivisionError, OverflowError, ValueError) as e:
        logger.debug(f"Leaving {lhs} {op} {rhs} unfolded: {e}")
        return None

    if math.isnan(value) or math.isinf(value):
        return None
    return value


class Optimizer:
    """Constant folding plus algebraic simplification, repeated to a fixpoint.

    Both passes walk the tree post-order and rewrite in place through
    ``replace_subtree``; a node that gets rewritten is not looked at again
    until the next sweep.
    """

    def __init__(self, epsilon: float = EPSILON):
        self.epsilon = epsilon
        self.sweeps = 0

    def run(self, root: Node) -> Node:
        self.sweeps = 0
        while True:
            self.sweeps += 1
            if self.sweeps > MAX_SWEEPS:
                raise OptimizationError(f"Optimizer did not settle after {MAX_SWEEPS} sweeps")

            root, folded = self.fold_constants(root)
            root, simplified = self.simplify(root)
            if not folded and not simplified:
                break

        logger.debug(f"Optimizer settled after {self.sweeps} sweep(s)")
        return root

    # --- Helpers ---
    def _is_value(self, node: Node, value: float) -> bool:
        return isinstance(node, Number) and numbers_equal(node.value, value, self.epsilon)

    @staticmethod
    def _visit_children(node: Node, visit: Callable[[Node], Rewrite]) -> bool:
        changed = False
        for slot in node.SLOTS:
            child = getattr(node, slot)
            if child is None:
                raise OptimizationError(f"Empty '{slot}' subtree in {type(node).__name__}")

            new_child, child_changed = visit(child)
            if new_child is not child:
                replace_subtree(node, slot, new_child)
            changed = changed or child_changed
        return changed

    # --- Constant folding ---
    def fold_constants(self, node: Node) -> Rewrite:
        changed = self._visit_children(node, self.fold_constants)

        if isinstance(node, BinaryOp) and isinstance(node.lhs, Number) \
                and isinstance(node.rhs, Number):
            value = fold_binary(node.op, node.lhs.value, node.rhs.value)
            if value is not None:
                return make_number(value), True

        return node, changed

    # --- Algebraic simplification ---
    def simplify(self, node: Node) -> Rewrite:
        changed = self._visit_children(node, self.simplify)

        if isinstance(node, PrefixOp):
            rewritten = self._simplify_prefix(node)
        elif isinstance(node, BinaryOp):
            rewritten = self._simplify_binary(node)
        elif isinstance(node, Call):
            rewritten = self._simplify_call(node)
        else:
            # Numbers, variables and derivative-markers are left alone.
            rewritten = None

        if rewritten is None:
            return node, changed
        return rewritten, True

    def _simplify_prefix(self, node: PrefixOp) -> Optional[Node]:
        operand = node.operand
        if node.op == OP_PLUS:
            return operand

        if isinstance(operand, Number):
            return make_number(-operand.value)
        if isinstance(operand, PrefixOp):
            if operand.op == OP_MINUS:
                return operand.operand
            return make_prefix_unary(OP_MINUS, operand.operand)
        return None

    def _simplify_binary(self, node: BinaryOp) -> Optional[Node]:
        op, lhs, rhs = node.op, node.lhs, node.rhs

        if op == OP_PLUS:
            if self._is_value(lhs, 0):
                return rhs
            if self._is_value(rhs, 0):
                return lhs
            if lhs == rhs:
                return make_binary(OP_MUL, make_number(2), lhs)

        elif op == OP_MINUS:
            if self._is_value(rhs, 0):
                return lhs
            if self._is_value(lhs, 0):
                return make_prefix_unary(OP_MINUS, rhs)
            if lhs == rhs:
                return make_number(0)

        elif op == OP_MUL:
            if self._is_value(lhs, 1):
                return rhs
            if self._is_value(rhs, 1):
                return lhs
            if self._is_value(lhs, 0) or self._is_value(rhs, 0):
                return make_number(0)

        elif op == OP_DIV:
            if self._is_value(lhs, 0):
                return make_number(0)
            if self._is_value(rhs, 1):
                return lhs
            if lhs == rhs:
                return make_number(1)

        elif op == OP_POW:
            if self._is_value(lhs, 0):
                return make_number(0)
            if self._is_value(lhs, 1):
                return make_number(1)
            if self._is_value(rhs, 0):
                return make_number(1)
            if self._is_value(rhs, 1):
                return lhs

        return None

    def _simplify_call(self, node: Call) -> Optional[Node]:
        arg = node.arg
        if isinstance(arg, Number):
            for (name, at), value in FUNCTION_IDENTITIES.items():
                if node.name == name and numbers_equal(arg.value, at, self.epsilon):
                    return make_number(value)
        elif node.name == 'ln' and isinstance(arg, Variable) and arg.name == EULER_NUMBER:
            return make_number(1)
        return None


def optimize(root: Node) -> Node:
    """Optimizes ``root`` in place and returns the (possibly new) root."""
    return Optimizer().run(root)
