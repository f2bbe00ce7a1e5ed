import logging
import math

from Expressions.differentiator import derivatives
from Expressions.expression_tree import (
    DEFAULT_VARIABLE, OP_DIV, OP_MINUS, OP_MUL, OP_PLUS, OP_POW,
    Node, make_binary, make_number, make_variable, substitute,
)
from Expressions.optimizer import Optimizer
from Expressions.render import to_latex

# --- Logger Setup ---
logger = logging.getLogger(__name__)


def taylor_polynomial(tree: Node, order: int, point: float,
                      variable: str = DEFAULT_VARIABLE) -> Node:
    """Builds sum(f^(i)(a) / i! * (x - a)^i for i in 0..order).

    Coefficients that do not fold to a number (e.g. ``sin(1)``) stay symbolic.
    """
    optimizer = Optimizer()
    polynomial = None
    for i, deriv in enumerate(derivatives(tree, order, variable)):
        coefficient = optimizer.run(substitute(deriv, point, variable))
        shift = make_binary(OP_MINUS, make_variable(variable), make_number(point))
        term = make_binary(OP_MUL,
                           make_binary(OP_DIV, coefficient, make_number(math.factorial(i))),
                           make_binary(OP_POW, shift, make_number(i)))
        polynomial = term if polynomial is None else make_binary(OP_PLUS, polynomial, term)

    logger.debug(f"Built Taylor polynomial of order {order} around {point}")
    return optimizer.run(polynomial)


def remainder_latex(order: int, point: float, variable: str = DEFAULT_VARIABLE) -> str:
    shift = to_latex(_shift(point, variable), 3)
    return f"o\\left({shift}^{{{order}}}\\right)"


def _shift(point: float, variable: str = DEFAULT_VARIABLE) -> Node:
    return Optimizer().run(make_binary(OP_MINUS, make_variable(variable), make_number(point)))
