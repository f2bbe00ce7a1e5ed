"""Text-in, text-out entry points: parse, differentiate, optimize, render."""
import logging
import time
import tracemalloc
from contextlib import contextmanager
from typing import Dict, Iterator

from Expressions.differentiator import Differentiator
from Expressions.errors import EvaluationError, ExpressionError
from Expressions.evaluate import evaluate
from Expressions.expression_tree import DEFAULT_VARIABLE, substitute, tree_depth
from Expressions.optimizer import Optimizer
from Expressions.parser import parse
from Expressions.render import to_infix, to_latex
from Expressions.taylor import remainder_latex, taylor_polynomial

# --- Logger Setup ---
logger = logging.getLogger(__name__)


@contextmanager
def depth_guard(expression_str: str):
    """Reports a result tree grown too deep to walk as an ExpressionError."""
    try:
        yield
    except RecursionError as e:
        raise ExpressionError(f"Expression '{expression_str}' grew too deep to process") from e


def iter_derivatives(expression_str: str, order: int = 1,
                     variable_str: str = DEFAULT_VARIABLE) -> Iterator[Dict]:
    """Yields one result per derivative order, each taken from the previous one."""
    if order < 1:
        raise ExpressionError(f"Derivative order must be at least 1, got {order}")

    current = parse(expression_str)
    logger.debug(f"Parsed '{expression_str}' into a tree of depth {tree_depth(current)}")

    optimizer = Optimizer()
    for n in range(1, order + 1):
        differentiator = Differentiator(variable_str)
        with depth_guard(expression_str):
            current = optimizer.run(differentiator.run(current))
            result = {
                "order": n,
                "derivative": to_infix(current),
                "derivative_latex": to_latex(current),
                "steps": differentiator.steps,
            }
        yield result


def compute_derivative(expression_str: str, order: int = 1,
                       variable_str: str = DEFAULT_VARIABLE) -> Dict:
    was_tracing = tracemalloc.is_tracing()
    if not was_tracing:
        tracemalloc.start()
    start_time = time.perf_counter()

    try:
        derivatives = list(iter_derivatives(expression_str, order, variable_str))
    except ExpressionError as e:
        logger.error(f"Error computing derivative for '{expression_str}': {e}")
        raise
    finally:
        end_time = time.perf_counter()
        _, peak_memory = tracemalloc.get_traced_memory()
        if not was_tracing:
            tracemalloc.stop()

    return {
        "expression": expression_str,
        "variable": variable_str,
        "derivatives": derivatives,
        "execution_time_ms": (end_time - start_time) * 1000,
        "peak_memory_bytes": peak_memory,
    }


def compute_value(expression_str: str, point: float,
                  variable_str: str = DEFAULT_VARIABLE) -> Dict:
    """Substitutes ``point`` and folds; ``value`` is None when it cannot be computed."""
    tree = parse(expression_str)
    with depth_guard(expression_str):
        substituted = Optimizer().run(substitute(tree, point, variable_str))

    try:
        value = evaluate(tree, point, variable_str)
    except EvaluationError as e:
        logger.debug(f"No numeric value for '{expression_str}' at {point}: {e}")
        value = None

    return {
        "expression": expression_str,
        "substituted": to_infix(substituted),
        "substituted_latex": to_latex(substituted),
        "value": value,
    }


def compute_taylor(expression_str: str, order: int, point: float,
                   variable_str: str = DEFAULT_VARIABLE) -> Dict:
    tree = parse(expression_str)
    with depth_guard(expression_str):
        polynomial = taylor_polynomial(tree, order, point, variable_str)
        polynomial_str = to_infix(polynomial)
        polynomial_latex = to_latex(polynomial)

    return {
        "expression": expression_str,
        "polynomial": polynomial_str,
        "polynomial_latex": f"{polynomial_latex} + {remainder_latex(order, point, variable_str)}",
    }
