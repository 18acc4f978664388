"""
Numeric limits.

Approximates lim f(x) as x approaches a point (from both sides) or +-inf
by evaluating the expression close to it.
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

from .errors import EvaluationError
from .evaluator import EvaluationScope, Evaluator, as_scope
from .expression_tree.core.node import Node
from .logging_system import log_debug


@dataclass(frozen=True)
class LimitResult:
    value: Optional[float]
    exists: bool
    message: str
    left: Optional[float] = None
    right: Optional[float] = None


def _sample(node: Node, variable: str, scope: EvaluationScope, x: float) -> Union[float, str]:
    try:
        value = Evaluator(scope.bind(variable, x)).evaluate_partial(node)
    except EvaluationError:
        return float('nan')
    return value if isinstance(value, float) else value.to_string()


def _fmt(value: float) -> str:
    return f"{value:.7g}"


def _limit_at_infinity(node: Node, variable: str, scope: EvaluationScope, sign: float,
                       delta: float) -> LimitResult:
    near = _sample(node, variable, scope, sign / delta)
    far = _sample(node, variable, scope, sign * 10 / delta)
    side = "+inf" if sign > 0 else "-inf"

    if isinstance(near, str) or isinstance(far, str):
        unresolved = near if isinstance(near, str) else far
        return LimitResult(None, False, f"Cannot evaluate symbolically at large values: {unresolved}")
    if math.isnan(near) or math.isnan(far):
        return LimitResult(None, False, f"Result is NaN as {variable} approaches {side}")

    if (math.isinf(far) or abs(far) >= 1 / delta) and (near * far > 0):
        value = math.copysign(math.inf, far)
        return LimitResult(value, False, f"Diverges to {'+' if value > 0 else '-'}inf", near, far)
    if abs(near - far) < 100 * delta * max(1.0, abs(far)):
        return LimitResult(far, True, _fmt(far), near, far)
    return LimitResult(None, False,
                       f"Limit may not exist (values {_fmt(near)} and {_fmt(far)} do not settle)", near, far)


def numeric_limit(node: Node, variable: str, approaching: float,
                  scope: Optional[EvaluationScope] = None, delta: float = 1e-7) -> LimitResult:
    """
    Limit of ``node`` as ``variable`` approaches a point, ``inf`` or ``-inf``.

    Finite points are approached from both sides at distance ``delta``; the
    limit exists when both sides agree within 100*delta. Values that blow up
    with the same sign on both sides report +-inf with ``exists=False``.
    """
    if delta <= 0:
        raise ValueError("delta must be positive")
    approaching = float(approaching)
    base_scope = as_scope(scope)

    if math.isinf(approaching):
        result = _limit_at_infinity(node, variable, base_scope, math.copysign(1.0, approaching), delta)
        log_debug(f"limit {node.to_string()} as {variable} -> {approaching}: {result.message}")
        return result
    if math.isnan(approaching):
        raise ValueError("Cannot take a limit at NaN")

    left = _sample(node, variable, base_scope, approaching - delta)
    right = _sample(node, variable, base_scope, approaching + delta)

    if isinstance(left, str) or isinstance(right, str):
        unresolved = left if isinstance(left, str) else right
        return LimitResult(None, False, f"Limit could not be numerically determined: {unresolved}")
    if math.isnan(left) or math.isnan(right):
        return LimitResult(None, False, "Result is NaN near the limit point.", left, right)

    blow_up = 1 / delta
    left_large = math.isinf(left) or abs(left) > blow_up
    right_large = math.isinf(right) or abs(right) > blow_up
    if left_large or right_large:
        if left_large and right_large and left * right > 0:
            value = math.copysign(math.inf, left)
            return LimitResult(value, False, f"Diverges to {'+' if value > 0 else '-'}inf", left, right)
        return LimitResult(None, False,
                           "Limit approaches infinity or is undefined near the point.", left, right)

    if abs(left - right) < 100 * delta:
        value = (left + right) / 2
        result = LimitResult(value, True, _fmt(value), left, right)
    else:
        result = LimitResult(None, False,
                             f"Limit may not exist or is a jump discontinuity "
                             f"(approaching {_fmt(left)} from the left, {_fmt(right)} from the right).",
                             left, right)
    log_debug(f"limit {node.to_string()} as {variable} -> {approaching}: {result.message}")
    return result
