"""Expression tree nodes and the primitives used to build and rewrite them.

Each node kind is its own class, so a prefix operator, a postfix
derivative-marker and a function call never have to be told apart by which
child happens to be present::

    Number(2.0)                       2
    Variable('x')                     x
    BinaryOp('*', lhs, rhs)           lhs * rhs
    PrefixOp('-', operand)            -operand
    PostfixOp("'", operand)           operand'   (derivative-marker)
    Call('sin', arg)                  sin(arg)

A subtree belongs to exactly one parent. Rewrites move subtrees around,
they never share them; use ``copy_tree`` when the same subexpression is
needed twice.
"""
import logging
from typing import Optional

from Expressions.errors import BuildError

# --- Logger Setup ---
logger = logging.getLogger(__name__)

DEFAULT_VARIABLE = 'x'
# Reserved identifier for Euler's number.
EULER_NUMBER = 'e'

# --- Operators ---
OP_PLUS = '+'
OP_MINUS = '-'
OP_MUL = '*'
OP_DIV = '/'
OP_POW = '^'
OP_DERIVATIVE = "'"

BINARY_OPERATORS = {OP_PLUS, OP_MINUS, OP_MUL, OP_DIV, OP_POW}
PREFIX_OPERATORS = {OP_PLUS, OP_MINUS}
POSTFIX_OPERATORS = {OP_DERIVATIVE}


# --- Nodes ---
class Node:
    # Names of the attributes holding child nodes, in left-to-right order.
    SLOTS = ()

    def children(self):
        return [getattr(self, slot) for slot in self.SLOTS]

    def _payload(self):
        return ()

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._payload() == other._payload() and self.children() == other.children()

    __hash__ = None


class Number(Node):
    def __init__(self, value):
        self.value = float(value)

    def _payload(self):
        return (self.value,)

    def __repr__(self):
        return f"Number({self.value})"


class Variable(Node):
    def __init__(self, name):
        self.name = name

    def _payload(self):
        return (self.name,)

    def __repr__(self):
        return f"Variable({self.name!r})"


class BinaryOp(Node):
    SLOTS = ('lhs', 'rhs')

    def __init__(self, op, lhs, rhs):
        self.op = op
        self.lhs = lhs
        self.rhs = rhs

    def _payload(self):
        return (self.op,)

    def __repr__(self):
        return f"BinaryOp({self.op!r}, {self.lhs!r}, {self.rhs!r})"


class PrefixOp(Node):
    SLOTS = ('operand',)

    def __init__(self, op, operand):
        self.op = op
        self.operand = operand

    def _payload(self):
        return (self.op,)

    def __repr__(self):
        return f"PrefixOp({self.op!r}, {self.operand!r})"


class PostfixOp(Node):
    SLOTS = ('operand',)

    def __init__(self, op, operand):
        self.op = op
        self.operand = operand

    def _payload(self):
        return (self.op,)

    def __repr__(self):
        return f"PostfixOp({self.op!r}, {self.operand!r})"


class Call(Node):
    SLOTS = ('arg',)

    def __init__(self, name, arg):
        self.name = name
        self.arg = arg

    def _payload(self):
        return (self.name,)

    def __repr__(self):
        return f"Call({self.name!r}, {self.arg!r})"


# --- Construction primitives ---
# Each one fails closed: a missing child or a bad operator raises BuildError
# and no half-built node escapes.

def make_number(value) -> Number:
    try:
        return Number(value)
    except (TypeError, ValueError) as e:
        raise BuildError(f"Invalid number {value!r}") from e


def make_variable(name: str) -> Variable:
    if not name:
        raise BuildError("Variable without a name")
    return Variable(name)


def make_binary(op: str, lhs: Optional[Node], rhs: Optional[Node]) -> BinaryOp:
    if lhs is None or rhs is None:
        raise BuildError(f"Operator '{op}' is missing an operand")
    if op not in BINARY_OPERATORS:
        raise BuildError(f"'{op}' is not a binary operator")
    return BinaryOp(op, lhs, rhs)


def make_function(name: str, arg: Optional[Node]) -> Call:
    if not name:
        raise BuildError("Function without a name")
    if arg is None:
        raise BuildError(f"Function '{name}' is missing its argument")
    return Call(name, arg)


def make_prefix_unary(op: str, operand: Optional[Node]) -> PrefixOp:
    if operand is None:
        raise BuildError(f"Prefix operator '{op}' is missing its operand")
    if op not in PREFIX_OPERATORS:
        raise BuildError(f"'{op}' is not a prefix operator")
    return PrefixOp(op, operand)


def make_postfix_unary(op: str, operand: Optional[Node]) -> PostfixOp:
    if operand is None:
        raise BuildError(f"Postfix operator '{op}' is missing its operand")
    if op not in POSTFIX_OPERATORS:
        raise BuildError(f"'{op}' is not a postfix operator")
    return PostfixOp(op, operand)


# --- Tree operations ---
def copy_tree(node: Node) -> Node:
    """Returns an independent deep copy of ``node``."""
    if isinstance(node, Number):
        return Number(node.value)
    if isinstance(node, Variable):
        return Variable(node.name)
    if isinstance(node, BinaryOp):
        return BinaryOp(node.op, copy_tree(node.lhs), copy_tree(node.rhs))
    if isinstance(node, PrefixOp):
        return PrefixOp(node.op, copy_tree(node.operand))
    if isinstance(node, PostfixOp):
        return PostfixOp(node.op, copy_tree(node.operand))
    if isinstance(node, Call):
        return Call(node.name, copy_tree(node.arg))
    raise BuildError(f"Cannot copy {node!r}")


def trees_equal(a: Node, b: Node) -> bool:
    return a == b


def replace_subtree(parent: Node, slot: str, replacement: Node) -> Node:
    """Puts ``replacement`` in ``parent``'s ``slot`` and returns it.

    The subtree previously held in that slot is detached and dropped unless
    the caller kept a reference to it.
    """
    if slot not in parent.SLOTS:
        raise BuildError(f"{type(parent).__name__} has no child slot '{slot}'")
    if replacement is None:
        raise BuildError(f"Cannot put an empty subtree into '{slot}'")
    setattr(parent, slot, replacement)
    return replacement


def substitute(node: Node, value: float, variable: str = DEFAULT_VARIABLE) -> Node:
    """Returns a copy of ``node`` with every ``variable`` leaf replaced by ``value``."""
    if isinstance(node, Variable):
        if node.name == variable:
            return Number(value)
        return Variable(node.name)
    if isinstance(node, Number):
        return Number(node.value)
    if isinstance(node, BinaryOp):
        return BinaryOp(node.op, substitute(node.lhs, value, variable),
                        substitute(node.rhs, value, variable))
    if isinstance(node, PrefixOp):
        return PrefixOp(node.op, substitute(node.operand, value, variable))
    if isinstance(node, PostfixOp):
        return PostfixOp(node.op, substitute(node.operand, value, variable))
    if isinstance(node, Call):
        return Call(node.name, substitute(node.arg, value, variable))
    raise BuildError(f"Cannot substitute into {node!r}")


def tree_depth(node: Node) -> int:
    # Walks with an explicit stack so it can measure trees too deep for the
    # recursive passes.
    depth = 0
    stack = [(node, 1)]
    while stack:
        current, level = stack.pop()
        depth = max(depth, level)
        stack.extend((child, level + 1) for child in current.children())
    return depth
