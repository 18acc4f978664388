"""
Taylor polynomials built from the symbolic differentiator.
"""

import math
from typing import Optional

from .differentiator import Differentiator
from .errors import EvaluationError
from .evaluator import EvaluationScope, Evaluator, as_scope
from .expression_tree.core.node import Node, num, var, add, sub, mul, div, power
from .simplifier import Simplifier
from .step_tracker import StepTracker


def _coefficient(value: float, order: int) -> Node:
    """value/order! kept as an exact fraction when value is a whole number"""
    denominator = math.factorial(order)
    if value == int(value) and abs(value) < 1e15:
        if denominator == 1:
            return num(value)
        if value % denominator == 0:
            return num(value / denominator)
        return div(num(value), num(denominator))
    return num(value / denominator)


def taylor_polynomial(node: Node, variable: str, center: float = 0.0, order: int = 5,
                      tracker: Optional[StepTracker] = None,
                      scope: Optional[EvaluationScope] = None) -> Node:
    """
    Taylor polynomial of ``node`` around ``center`` up to ``order``.

    Raises:
        UnsupportedFunction: the expression cannot be differentiated
        EvaluationError: a derivative does not evaluate to a finite number at the center
    """
    if not isinstance(order, int) or order < 0:
        raise ValueError("order must be a non-negative integer")

    base_scope = as_scope(scope)
    evaluator = Evaluator(base_scope.bind(variable, center))
    differentiator = Differentiator(variable)
    simplifier = Simplifier()

    offset = var(variable) if center == 0 else sub(var(variable), num(center))
    derivatives = [node]
    for _ in range(order):
        derivatives.append(simplifier.simplify(differentiator.differentiate(derivatives[-1])))

    polynomial: Optional[Node] = None
    for k, current in enumerate(derivatives):
        value = evaluator.evaluate_partial(current)
        if not isinstance(value, float):
            raise EvaluationError(f"Derivative of order {k} is not numeric at {variable} = {center}: {value.to_string()}")
        if not math.isfinite(value):
            raise EvaluationError(f"Derivative of order {k} is not finite at {variable} = {center}")
        if value == 0:
            continue

        coefficient = _coefficient(abs(value), k)
        term = coefficient if k == 0 else mul(coefficient, power(offset, num(k)))
        if polynomial is None:
            polynomial = term if value > 0 else mul(num(-1), term)
        else:
            polynomial = add(polynomial, term) if value > 0 else sub(polynomial, term)

    result = simplifier.simplify(polynomial if polynomial is not None else num(0))
    if tracker is not None:
        tracker.record('series', node, result, 'taylor_polynomial',
                       f"Taylor polynomial of order {order} around {variable} = {center}")
    return result
