"""
Built-in function catalogue for the evaluator.

Every entry maps a lower-case name to a FunctionSpec holding a numeric
callable and the number of arguments it accepts. Callables receive floats
and return floats; domain problems come back as NaN or +-inf instead of
raising, so that numeric analysis can treat them as gaps.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np
from scipy.optimize import newton


@dataclass(frozen=True)
class FunctionSpec:
    func: Callable[..., float]
    min_args: int = 1
    max_args: Optional[int] = 1     # None means variadic

    def accepts(self, n_args: int) -> bool:
        if n_args < self.min_args:
            return False
        return self.max_args is None or n_args <= self.max_args


# Trig inputs are converted in degrees mode, inverse-trig outputs converted back
TRIG_FUNCTIONS = frozenset({'sin', 'cos', 'tan', 'sec', 'csc', 'cot'})
INVERSE_TRIG_FUNCTIONS = frozenset({'asin', 'acos', 'atan', 'arcsin', 'arccos', 'arctan'})


def _is_whole(value: float) -> bool:
    return math.isfinite(value) and value == int(value)


# --- Rounding ---

def round_half_away(value: float, digits: float = 0) -> float:
    if not _is_whole(digits):
        return float('nan')
    if not math.isfinite(value):
        return value
    factor = 10.0 ** int(digits)
    return math.copysign(math.floor(abs(value) * factor + 0.5) / factor, value)


# --- Combinatorics ---

def factorial(n: float) -> float:
    if not _is_whole(n) or n < 0:
        return float('nan')
    if n > 170:
        return float('inf')
    return float(math.factorial(int(n)))


_LOG_FLOAT_MAX = math.log(np.finfo(np.float64).max) + 1.0


def _log_factorial(n: float) -> float:
    return math.lgamma(n + 1)


def ncr(n: float, r: float) -> float:
    if not (_is_whole(n) and _is_whole(r)) or n < 0 or r < 0 or r > n:
        return float('nan')
    if _log_factorial(n) - _log_factorial(r) - _log_factorial(n - r) > _LOG_FLOAT_MAX:
        return float('inf')
    try:
        return float(math.comb(int(n), int(r)))
    except OverflowError:
        return float('inf')


def npr(n: float, r: float) -> float:
    if not (_is_whole(n) and _is_whole(r)) or n < 0 or r < 0 or r > n:
        return float('nan')
    if _log_factorial(n) - _log_factorial(n - r) > _LOG_FLOAT_MAX:
        return float('inf')
    try:
        return float(math.perm(int(n), int(r)))
    except OverflowError:
        return float('inf')


# --- Financial ---

def _growth(rate: float, periods: float) -> np.float64:
    return np.power(np.float64(1.0) + rate, np.float64(periods))


def present_value(future: float, rate: float, periods: float) -> float:
    with np.errstate(all='ignore'):
        return float(np.divide(future, _growth(rate, periods)))


def future_value(present: float, rate: float, periods: float) -> float:
    with np.errstate(all='ignore'):
        return float(present * _growth(rate, periods))


def payment(present: float, rate: float, periods: float) -> float:
    with np.errstate(all='ignore'):
        if rate == 0:
            return float(np.divide(np.float64(present), periods))
        return float(np.divide(present * rate, 1.0 - _growth(rate, -periods)))


def net_present_value(rate: float, *cashflows: float) -> float:
    with np.errstate(all='ignore'):
        flows = np.asarray(cashflows, dtype=float)
        discount = np.power(np.float64(1.0) + rate, np.arange(1, len(flows) + 1))
        return float(np.sum(flows / discount))


def internal_rate_of_return(*cashflows: float) -> float:
    """Newton iteration from 10%; NaN when it does not converge"""
    if len(cashflows) < 2:
        return float('nan')
    flows = np.asarray(cashflows, dtype=float)
    periods = np.arange(len(flows))

    def npv(rate):
        return float(np.sum(flows / (1.0 + rate) ** periods))

    def d_npv(rate):
        return float(np.sum(-periods * flows / (1.0 + rate) ** (periods + 1)))

    try:
        with np.errstate(all='ignore'):
            rate = newton(npv, 0.1, fprime=d_npv, tol=1e-7, maxiter=100)
    except (RuntimeError, ZeroDivisionError, OverflowError):
        return float('nan')
    return float(rate) if math.isfinite(rate) else float('nan')


# --- Statistics ---

def mean(*values: float) -> float:
    return float(np.mean(values)) if values else float('nan')


def median(*values: float) -> float:
    return float(np.median(values)) if values else float('nan')


def mode(*values: float) -> float:
    """Most frequent value; ties go to the value seen first"""
    if not values:
        return float('nan')
    return float(Counter(values).most_common(1)[0][0])


def stddev(*values: float) -> float:
    return float(np.std(values)) if values else float('nan')


def variance(*values: float) -> float:
    return float(np.var(values)) if values else float('nan')


def _numpy_unary(ufunc) -> Callable[[float], float]:
    def apply(value: float) -> float:
        with np.errstate(all='ignore'):
            return float(ufunc(np.float64(value)))
    apply.__name__ = getattr(ufunc, '__name__', 'unary')
    return apply


def _reciprocal_of(ufunc) -> Callable[[float], float]:
    def apply(value: float) -> float:
        with np.errstate(all='ignore'):
            return float(np.divide(1.0, ufunc(np.float64(value))))
    return apply


def _power(base: float, exponent: float) -> float:
    with np.errstate(all='ignore'):
        return float(np.power(np.float64(base), np.float64(exponent)))


def _min(*values: float) -> float:
    return float(min(values))


def _max(*values: float) -> float:
    return float(max(values))


BUILTIN_FUNCTIONS: Dict[str, FunctionSpec] = {
    'sin': FunctionSpec(_numpy_unary(np.sin)),
    'cos': FunctionSpec(_numpy_unary(np.cos)),
    'tan': FunctionSpec(_numpy_unary(np.tan)),
    'sec': FunctionSpec(_reciprocal_of(np.cos)),
    'csc': FunctionSpec(_reciprocal_of(np.sin)),
    'cot': FunctionSpec(_reciprocal_of(np.tan)),
    'asin': FunctionSpec(_numpy_unary(np.arcsin)),
    'acos': FunctionSpec(_numpy_unary(np.arccos)),
    'atan': FunctionSpec(_numpy_unary(np.arctan)),
    'arcsin': FunctionSpec(_numpy_unary(np.arcsin)),
    'arccos': FunctionSpec(_numpy_unary(np.arccos)),
    'arctan': FunctionSpec(_numpy_unary(np.arctan)),
    'sinh': FunctionSpec(_numpy_unary(np.sinh)),
    'cosh': FunctionSpec(_numpy_unary(np.cosh)),
    'tanh': FunctionSpec(_numpy_unary(np.tanh)),
    'asinh': FunctionSpec(_numpy_unary(np.arcsinh)),
    'acosh': FunctionSpec(_numpy_unary(np.arccosh)),
    'atanh': FunctionSpec(_numpy_unary(np.arctanh)),
    'ln': FunctionSpec(_numpy_unary(np.log)),
    'log': FunctionSpec(_numpy_unary(np.log10)),
    'log10': FunctionSpec(_numpy_unary(np.log10)),
    'log2': FunctionSpec(_numpy_unary(np.log2)),
    'exp': FunctionSpec(_numpy_unary(np.exp)),
    'sqrt': FunctionSpec(_numpy_unary(np.sqrt)),
    'cbrt': FunctionSpec(_numpy_unary(np.cbrt)),
    'abs': FunctionSpec(_numpy_unary(np.abs)),
    'sign': FunctionSpec(_numpy_unary(np.sign)),
    'floor': FunctionSpec(_numpy_unary(np.floor)),
    'ceil': FunctionSpec(_numpy_unary(np.ceil)),
    'round': FunctionSpec(round_half_away, 1, 2),
    'min': FunctionSpec(_min, 1, None),
    'max': FunctionSpec(_max, 1, None),
    'pow': FunctionSpec(_power, 2, 2),

    'factorial': FunctionSpec(factorial),
    'ncr': FunctionSpec(ncr, 2, 2),
    'npr': FunctionSpec(npr, 2, 2),

    'pv': FunctionSpec(present_value, 3, 3),
    'fv': FunctionSpec(future_value, 3, 3),
    'pmt': FunctionSpec(payment, 3, 3),
    'npv': FunctionSpec(net_present_value, 1, None),
    'irr': FunctionSpec(internal_rate_of_return, 0, None),

    'mean': FunctionSpec(mean, 0, None),
    'median': FunctionSpec(median, 0, None),
    'mode': FunctionSpec(mode, 0, None),
    'stddev': FunctionSpec(stddev, 0, None),
    'variance': FunctionSpec(variance, 0, None),
}


def lookup_function(name: str) -> Optional[FunctionSpec]:
    return BUILTIN_FUNCTIONS.get(name.lower())
