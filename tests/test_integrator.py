import math

import pytest

from symbolic_calculus.differentiator import differentiate
from symbolic_calculus.expression_tree import CallNode, VariableNode, are_equivalent, contains_marker
from symbolic_calculus.integrator import Integrator, integrate, definite_integral, numeric_integral
from symbolic_calculus.parser import parse_or_raise
from symbolic_calculus.simplifier import simplify
from symbolic_calculus.step_tracker import StepTracker


def antiderivative_text(text, variable='x'):
    return simplify(integrate(parse_or_raise(text), variable)).to_string()


@pytest.mark.parametrize("text, expected", [
    ("x^2", "x^3/3"),
    ("x^-1", "ln(abs(x))"),
    ("1/x", "ln(abs(x))"),
    ("3/x", "3*ln(abs(x))"),
    ("exp(x)", "exp(x)"),
    ("exp(2*x)", "exp(2*x)/2"),
    ("sin(3*x)", "-cos(3*x)/3"),
    ("cos(x)", "sin(x)"),
    ("1/(1 + x^2)", "arctan(x)"),
    ("1/(x^2 + 1)", "arctan(x)"),
    ("x", "x^2/2"),
    ("5", "5*x"),
    ("1", "x"),
])
def test_antiderivatives(text, expected):
    assert antiderivative_text(text) == expected


# One entry per rule, so that integrate-then-differentiate covers them all
@pytest.mark.parametrize("text", [
    "x^2", "x^5", "x^(-3)", "x^-1", "x^(1/2)",
    "exp(x)", "exp(-x)", "exp(3*x)", "exp(x*2)", "e^(2*x)",
    "1/x", "4/x",
    "sin(x)", "sin(2*x)", "cos(x)", "cos(-x)", "cos(x*5)",
    "1/(1 + x^2)",
    "x^2 + 3*x - 1", "sin(x) - cos(x)",
    "3*x^2", "x^3*4", "cos(x)/2", "-exp(x)", "a*x",
    "x", "7", "y",
])
def test_integrate_then_differentiate_recovers_integrand(text):
    integrand = parse_or_raise(text)
    antiderivative = integrate(integrand, 'x')
    assert not contains_marker(antiderivative)
    assert are_equivalent(differentiate(antiderivative, 'x'), integrand, sample_points=(0.35, 0.9, 1.7, 3.1))


@pytest.mark.parametrize("text", ["sin(x)^2", "x*exp(x)", "ln(x)", "exp(x^2)", "1/(x^2 + 4)"])
def test_unmatched_integrand_returns_marker(text):
    tracker = StepTracker()
    integrand = parse_or_raise(text)
    result = integrate(integrand, 'x', tracker)
    assert result == CallNode('integral', [integrand, VariableNode('x')])
    assert tracker.steps[-1].rule_name == 'unevaluated'
    assert tracker.overall_confidence() == 0.0


def test_marker_inside_a_sum():
    result = integrate(parse_or_raise("x + ln(x)"), 'x')
    assert contains_marker(result)
    assert result.to_string() == "x^2/2 + integral(ln(x), x)"


def test_integration_steps():
    tracker = StepTracker()
    integrate(parse_or_raise("3*x^2 + cos(x)"), 'x', tracker)
    rules = [step.rule_name for step in tracker.steps]
    assert rules == ['power_rule', 'constant_multiple', 'trigonometric_rule', 'sum_rule']
    assert all(step.operation_kind == 'integration' for step in tracker.steps)
    assert tracker.overall_confidence() == 1.0


def test_other_variable():
    assert antiderivative_text("t^2", 't') == "t^3/3"
    assert antiderivative_text("x", 't') == "x*t"


def test_statements():
    assert antiderivative_text("y = 2*x") == "x^2"


@pytest.mark.parametrize("text, lower, upper, expected", [
    ("x^2", 0, 1, 1 / 3),
    ("3*x^2 + 1", -1, 2, 12.0),
    ("exp(x)", 0, 1, math.e - 1),
    ("cos(x)", 0, math.pi / 2, 1.0),
    ("1/x", 1, math.e, 1.0),
    ("1/(1 + x^2)", 0, 1, math.pi / 4),
])
def test_definite_integrals(text, lower, upper, expected):
    tracker = StepTracker()
    result = definite_integral(parse_or_raise(text), 'x', lower, upper, tracker=tracker)
    assert result.computable
    assert result.method == 'symbolic'
    assert result.value == pytest.approx(expected, abs=1e-9)
    assert tracker.steps[-1].operation_kind == 'definite_integration'


def test_definite_integral_uses_scope():
    result = definite_integral(parse_or_raise("a*x"), 'x', 0, 2, scope={"a": 3})
    assert result.value == pytest.approx(6.0)


def test_definite_integral_with_marker_is_not_computable():
    result = definite_integral(parse_or_raise("x*sin(x)"), 'x', 0, math.pi)
    assert not result.computable
    assert result.value is None
    assert "unevaluated integral" in result.message


def test_definite_integral_with_leftover_symbols():
    result = definite_integral(parse_or_raise("a*x"), 'x', 0, 1)
    assert not result.computable
    assert "unresolved symbols" in result.message


def test_definite_integral_not_finite_at_bound():
    result = definite_integral(parse_or_raise("x^(-2)"), 'x', 0, 1)
    assert not result.computable


def test_numeric_integral():
    result = numeric_integral(parse_or_raise("x*sin(x)"), 'x', 0, math.pi)
    assert result.computable
    assert result.method == 'numeric'
    assert result.value == pytest.approx(math.pi, abs=1e-8)


def test_invalid_variable():
    with pytest.raises(ValueError):
        Integrator('')


@pytest.mark.parametrize("text, expected", [
    ("exp(0*x)", 1.0),
    ("cos(0*x)", 1.0),
    ("sin(0*x)", 0.0),
    ("3*cos(0*x)", 3.0),
])
def test_zero_coefficient_integrand_is_constant(text, expected):
    tracker = StepTracker()
    antiderivative = integrate(parse_or_raise(text), 'x', tracker)
    assert not contains_marker(antiderivative)
    assert any(step.rule_name == 'constant_rule' for step in tracker.steps)

    result = definite_integral(parse_or_raise(text), 'x', 0, 1)
    assert result.computable, result.message
    assert result.value == pytest.approx(expected)
