import pytest

from symbolic_calculus.errors import EvaluationError, UnsupportedFunction
from symbolic_calculus.evaluator import make_numeric_function
from symbolic_calculus.parser import parse_or_raise
from symbolic_calculus.series import taylor_polynomial
from symbolic_calculus.step_tracker import StepTracker


def series_of(text, **kwargs):
    return taylor_polynomial(parse_or_raise(text), 'x', **kwargs)


def test_exponential():
    polynomial = series_of("exp(x)", order=3)
    f = make_numeric_function(polynomial, 'x')
    assert f(0.1) == pytest.approx(1 + 0.1 + 0.01 / 2 + 0.001 / 6, rel=1e-12)
    assert f(0.0) == pytest.approx(1.0)


def test_sine_has_odd_terms_only():
    polynomial = series_of("sin(x)", order=5)
    f = make_numeric_function(polynomial, 'x')
    x = 0.5
    assert f(x) == pytest.approx(x - x ** 3 / 6 + x ** 5 / 120, rel=1e-12)
    assert f(-x) == pytest.approx(-f(x))


def test_polynomial_around_other_center():
    polynomial = series_of("x^2", center=1.0, order=2)
    f = make_numeric_function(polynomial, 'x')
    for x in (-2.0, 0.5, 3.0):
        assert f(x) == pytest.approx(x ** 2)


def test_order_zero_is_the_value_at_center():
    assert series_of("exp(x)", order=0).to_string() == "1"
    assert series_of("sin(x)", order=0).to_string() == "0"


def test_pole_at_center():
    with pytest.raises(EvaluationError):
        series_of("1/x", order=2)


def test_unsupported_function():
    with pytest.raises(UnsupportedFunction):
        series_of("gamma(x)", order=2)


@pytest.mark.parametrize("order", [-1, 2.5])
def test_invalid_order(order):
    with pytest.raises(ValueError):
        series_of("x", order=order)


def test_step_is_recorded():
    tracker = StepTracker()
    series_of("cos(x)", order=4, tracker=tracker)
    assert len(tracker) == 1
    step = tracker.steps[0]
    assert step.operation_kind == 'series'
    assert step.rule_name == 'taylor_polynomial'
    assert step.before.to_string() == "cos(x)"


def test_scope_values_are_used():
    polynomial = series_of("exp(a*x)", order=2, scope={"a": 2})
    f = make_numeric_function(polynomial, 'x')
    assert f(0.1) == pytest.approx(1 + 0.2 + 0.02, rel=1e-12)
