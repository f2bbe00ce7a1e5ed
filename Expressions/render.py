"""Text and LaTeX rendering of expression trees.

``min_priority`` is the lowest operator priority that may appear without
parentheses at the current position; -1 means "anything goes" (top level or
inside a function call's own parentheses).
"""
from Expressions.expression_tree import (
    OP_DIV, OP_MINUS, OP_MUL, OP_PLUS, OP_POW,
    BinaryOp, Call, Node, Number, PostfixOp, PrefixOp, Variable,
)

PRIORITIES = {OP_PLUS: 0, OP_MINUS: 0, OP_MUL: 1, OP_DIV: 1, OP_POW: 2}
# Operands of unary operators bind tighter than any binary operator.
MAX_PRIORITY = 3

LATEX_FUNCTIONS = {
    'sin': r'\sin',
    'cos': r'\cos',
    'ln': r'\ln',
}
LATEX_CONSTANTS = {
    'pi': r'\pi',
}


def format_number(value: float) -> str:
    # Integral values always print as plain digits, the only number form
    # the lexer reads.
    if value.is_integer():
        return str(int(value))
    return str(value)


def _wrap(text: str, needed: bool, left='(', right=')') -> str:
    return f"{left}{text}{right}" if needed else text


# --- Infix ---
def to_infix(node: Node, min_priority: int = -1) -> str:
    """Renders ``node`` in the same notation the parser reads."""
    if isinstance(node, Number):
        return _wrap(format_number(node.value), node.value < 0 and min_priority != -1)

    if isinstance(node, Variable):
        return node.name

    if isinstance(node, Call):
        return f"{node.name}({to_infix(node.arg)})"

    if isinstance(node, PrefixOp):
        text = node.op + to_infix(node.operand, MAX_PRIORITY)
        return _wrap(text, min_priority != -1)

    if isinstance(node, PostfixOp):
        return to_infix(node.operand, MAX_PRIORITY) + node.op

    if isinstance(node, BinaryOp):
        priority = PRIORITIES[node.op]
        # Every level is left-associative, so only the right operand needs
        # brackets at equal priority.
        lhs = to_infix(node.lhs, priority)
        rhs = to_infix(node.rhs, priority + 1)
        if node.op in (OP_PLUS, OP_MINUS):
            text = f"{lhs} {node.op} {rhs}"
        else:
            text = f"{lhs}{node.op}{rhs}"
        return _wrap(text, priority < min_priority)

    raise TypeError(f"Cannot render {node!r}")


# --- LaTeX ---
def _latex_function_name(name: str) -> str:
    return LATEX_FUNCTIONS.get(name, f"\\operatorname{{{name}}}")


def to_latex(node: Node, min_priority: int = -1) -> str:
    if isinstance(node, Number):
        return _wrap(format_number(node.value), node.value < 0 and min_priority != -1)

    if isinstance(node, Variable):
        return LATEX_CONSTANTS.get(node.name, node.name)

    if isinstance(node, Call):
        return f"{_latex_function_name(node.name)}({to_latex(node.arg)})"

    if isinstance(node, PrefixOp):
        text = node.op + to_latex(node.operand, MAX_PRIORITY)
        return _wrap(text, min_priority != -1)

    if isinstance(node, PostfixOp):
        return to_latex(node.operand, MAX_PRIORITY) + node.op

    if not isinstance(node, BinaryOp):
        raise TypeError(f"Cannot render {node!r}")

    op = node.op
    priority = PRIORITIES[op]

    if op == OP_DIV:
        # The fraction bar groups both sides on its own.
        text = f"\\frac{{{to_latex(node.lhs)}}}{{{to_latex(node.rhs)}}}"
        return _wrap(text, priority < min_priority, r'\left(', r'\right)')

    if op == OP_POW:
        base = to_latex(node.lhs, MAX_PRIORITY)
        text = f"{base}^{{{to_latex(node.rhs)}}}"
        return _wrap(text, priority < min_priority, r'\left(', r'\right)')

    lhs = to_latex(node.lhs, priority)
    rhs = to_latex(node.rhs, priority + 1)

    if op == OP_MUL:
        # Use implicit multiplication for a number times a symbol (e.g. 4x)
        if isinstance(node.lhs, Number) and node.lhs.value >= 0 \
                and isinstance(node.rhs, (Variable, Call, PostfixOp)):
            text = f"{lhs}{rhs}"
        else:
            text = f"{lhs} \\cdot {rhs}"
    else:
        text = f"{lhs} {op} {rhs}"

    return _wrap(text, priority < min_priority, r'\left(', r'\right)')
