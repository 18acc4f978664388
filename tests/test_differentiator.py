import logging

import pytest

from symbolic_calculus.differentiator import Differentiator, differentiate, differentiate_n, gradient
from symbolic_calculus.errors import UnsupportedFunction, UnsupportedOperation
from symbolic_calculus.expression_tree import EquationNode, are_equivalent
from symbolic_calculus.parser import parse_or_raise
from symbolic_calculus.simplifier import simplify
from symbolic_calculus.step_tracker import StepTracker


def derivative_text(text, variable='x'):
    return simplify(differentiate(parse_or_raise(text), variable)).to_string()


@pytest.mark.parametrize("text, expected", [
    ("x^3", "3*x^2"),
    ("sin(x)", "cos(x)"),
    ("exp(2*x)", "2*exp(2*x)"),
    ("5", "0"),
    ("x", "1"),
    ("X", "1"),
    ("y", "0"),
    ("3*x", "3"),
    ("x^2 + 3*x - 1", "2*x + 3"),
    ("e^x", "e^x"),
    ("ln(x)", "1/x"),
])
def test_simplified_derivatives(text, expected):
    assert derivative_text(text) == expected


@pytest.mark.parametrize("text, expected", [
    ("x*sin(x)", "sin(x) + x*cos(x)"),
    ("1/x", "-1/x^2"),
    ("sin(x)/x", "(cos(x)*x - sin(x))/x^2"),
    ("2^x", "2^x*ln(2)"),
    ("x^x", "x^x*(ln(x) + 1)"),
    ("cos(3*x)", "-3*sin(3*x)"),
    ("tan(x)", "1/cos(x)^2"),
    ("sqrt(x)", "1/(2*sqrt(x))"),
    ("log10(x)", "1/(x*ln(10))"),
    ("abs(x)", "sign(x)"),
    ("asin(x)", "1/sqrt(1 - x^2)"),
    ("arccos(x)", "-1/sqrt(1 - x^2)"),
    ("atan(x^2)", "2*x/(1 + x^4)"),
    ("sinh(x)", "cosh(x)"),
    ("cosh(x)", "sinh(x)"),
    ("tanh(x)", "1/cosh(x)^2"),
    ("-x^2", "-2*x"),
    ("x^n", "n*x^(n - 1)"),
    ("exp(x^2)", "2*x*exp(x^2)"),
    ("ln(sin(x))", "cos(x)/sin(x)"),
])
def test_derivatives_match_reference(text, expected):
    result = differentiate(parse_or_raise(text), 'x')
    assert are_equivalent(result, parse_or_raise(expected))


def test_variable_match_is_case_insensitive():
    assert derivative_text("X^2", "x") == "2*X"
    assert derivative_text("x*y", "Y") == "x"


def test_chain_rule_shortcut_for_constant_argument():
    assert differentiate(parse_or_raise("sin(y)"), 'x').to_string() == "0"


@pytest.mark.parametrize("text, name", [
    ("gamma(x)", "gamma"),
    ("2*foo(x) + 1", "foo"),
    ("max(x, 1)", "max"),
    ("log(x, 2)", "log"),
])
def test_unsupported_functions_raise(text, name):
    with pytest.raises(UnsupportedFunction) as info:
        differentiate(parse_or_raise(text), 'x')
    assert info.value.function_name == name
    assert isinstance(info.value, UnsupportedOperation)


def test_unsupported_function_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger='symbolic_calculus'):
        with pytest.raises(UnsupportedFunction):
            differentiate(parse_or_raise("gamma(x)"), 'x')
    assert "No differentiation rule for function 'gamma'" in caplog.text


def test_derivative_of_integral_marker():
    assert differentiate(parse_or_raise("integral(x*sin(x), x)"), 'x') == parse_or_raise("x*sin(x)")


def test_statements():
    assert derivative_text("y = x^2") == "2*x"
    result = differentiate(parse_or_raise("x^2 = 3*x"), 'x')
    assert isinstance(result, EquationNode)
    assert simplify(result).to_string() == "2*x = 3"


def test_differentiate_n():
    assert simplify(differentiate_n(parse_or_raise("x^3"), 'x', 2)).to_string() == "6*x"
    assert differentiate_n(parse_or_raise("x^3"), 'x', 0) == parse_or_raise("x^3")
    with pytest.raises(ValueError):
        differentiate_n(parse_or_raise("x"), 'x', -1)


def test_gradient():
    partials = gradient(parse_or_raise("x^2*y + y"))
    assert list(partials) == ['x', 'y']
    assert are_equivalent(partials['x'], parse_or_raise("2*x*y"))
    assert are_equivalent(partials['y'], parse_or_raise("x^2 + 1"))


def test_steps_are_recorded_in_order():
    tracker = StepTracker()
    differentiate(parse_or_raise("x^2 + sin(x)"), 'x', tracker)
    rules = [step.rule_name for step in tracker.steps]
    assert rules == ['power_rule', 'chain_rule', 'sum_rule']
    assert [step.sequence_number for step in tracker.steps] == [1, 2, 3]
    assert all(step.operation_kind == 'differentiation' for step in tracker.steps)


def test_quotient_rule_is_recorded():
    tracker = StepTracker()
    Differentiator('x', tracker).differentiate(parse_or_raise("x/(x + 1)"))
    assert tracker.steps[-1].rule_name == 'quotient_rule'


def test_invalid_variable():
    with pytest.raises(ValueError):
        Differentiator('')
