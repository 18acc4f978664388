"""
Rule-based symbolic integration.

Integration is partial on purpose: when no rule matches, the result is the
explicit ``integral(f, x)`` marker node rather than an error. Definite
integrals evaluate the antiderivative at both bounds through the full
evaluator catalogue, and quadrature is available for whatever the rules
cannot handle.
"""
import math
import warnings
from dataclasses import dataclass
from typing import Optional

from scipy.integrate import quad, IntegrationWarning

from .errors import EvaluationError
from .evaluator import EvaluationScope, Evaluator, as_scope, make_numeric_function
from .expression_tree.core.node import (
  Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
  CallNode, EquationNode, AssignmentNode,
  num, var, add, mul, div, power, neg, call, is_number
)
from .expression_tree.utils.tree_utils import contains_variable, contains_marker, numeric_value, MARKER_FUNCTION
from .logging_system import log_warning, log_debug
from .step_tracker import StepTracker

OPERATION_KIND = 'integration'


@dataclass(frozen=True)
class DefiniteIntegral:
  antiderivative: Optional[Node]
  value: Optional[float]
  computable: bool
  method: str               # 'symbolic' or 'numeric'
  message: str = ""


class Integrator:
  """Applies the integration rules in priority order"""

  def __init__(self, variable: str, tracker: Optional[StepTracker] = None):
    if not isinstance(variable, str) or not variable:
      raise ValueError("variable must be a non-empty string")
    self.variable = variable
    self.tracker = tracker

  def _record(self, before: Node, after: Node, rule_name: str, explanation: str, confidence: float = 1.0):
    if self.tracker is not None:
      self.tracker.record(OPERATION_KIND, before, after, rule_name, explanation, confidence)

  def _is_variable(self, node: Node) -> bool:
    return isinstance(node, VariableNode) and node.matches(self.variable)

  def _is_constant(self, node: Node) -> bool:
    return not contains_variable(node, self.variable)

  def _linear_coefficient(self, node: Node) -> Optional[Node]:
    """a for arguments of the form a*x, x*a, x or -x (a free of x)"""
    if self._is_variable(node):
      return num(1)
    if isinstance(node, UnaryMinusNode) and self._is_variable(node.operand):
      return num(-1)
    if isinstance(node, BinaryOpNode) and node.operator == '*':
      if self._is_variable(node.right) and self._is_constant(node.left):
        return node.left
      if self._is_variable(node.left) and self._is_constant(node.right):
        return node.right
    return None

  def _constant_integrand(self, node: Node) -> Node:
    """c*x for an integrand whose argument has a zero coefficient on x"""
    result = mul(node, var(self.variable))
    self._record(node, result, 'constant_rule', "zero coefficient on the variable; the integrand is constant")
    return result

  def _log_abs(self) -> Node:
    return call('ln', call('abs', var(self.variable)))

  def integrate(self, node: Node) -> Node:
    if isinstance(node, EquationNode):
      return EquationNode(self.integrate(node.left), self.integrate(node.right))
    if isinstance(node, AssignmentNode):
      return self.integrate(node.value)
    if not isinstance(node, (NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode, CallNode)):
      raise TypeError(f"Unknown node type: {type(node).__name__}")

    for rule in (self._power_rule, self._exponential_rule, self._reciprocal_rule,
                 self._trigonometric_rule, self._arctangent_rule, self._sum_rule,
                 self._constant_multiple_rule, self._base_case_rule):
      result = rule(node)
      if result is not None:
        return result

    marker = call(MARKER_FUNCTION, node, var(self.variable))
    log_warning(f"No integration rule matches {node.to_string()}; returning unevaluated integral")
    self._record(node, marker, 'unevaluated', "No integration rule matches; left as an unevaluated integral", 0.0)
    return marker

  # Rule 1
  def _power_rule(self, node: Node) -> Optional[Node]:
    if not (isinstance(node, BinaryOpNode) and node.operator == '^' and self._is_variable(node.left)
            and self._is_constant(node.right)):
      return None
    n = numeric_value(node.right)
    if n == -1:
      result = self._log_abs()
      self._record(node, result, 'logarithmic_rule', "integral of x^-1 is ln|x|")
      return result
    raised = num(n + 1) if n is not None else add(node.right, num(1))
    result = div(power(node.left, raised), raised)
    self._record(node, result, 'power_rule', "integral of x^n is x^(n+1)/(n+1)")
    return result

  # Rule 2
  def _exponential_rule(self, node: Node) -> Optional[Node]:
    if isinstance(node, CallNode) and node.lowered_name == 'exp' and len(node.args) == 1:
      argument = node.args[0]
    elif isinstance(node, BinaryOpNode) and node.operator == '^' and isinstance(node.left, VariableNode) \
        and node.left.name.lower() == 'e' and not self._is_variable(node.left):
      argument = node.right
    else:
      return None
    a = self._linear_coefficient(argument)
    if a is None:
      return None
    if numeric_value(a) == 0:
      return self._constant_integrand(node)
    result = node if is_number(a, 1) else div(node, a)
    self._record(node, result, 'exponential_rule', "integral of exp(a*x) is exp(a*x)/a")
    return result

  # Rule 3
  def _reciprocal_rule(self, node: Node) -> Optional[Node]:
    if not (isinstance(node, BinaryOpNode) and node.operator == '/' and self._is_variable(node.right)
            and self._is_constant(node.left)):
      return None
    result = self._log_abs() if is_number(node.left, 1) else mul(node.left, self._log_abs())
    self._record(node, result, 'reciprocal_rule', "integral of c/x is c*ln|x|")
    return result

  # Rule 4
  def _trigonometric_rule(self, node: Node) -> Optional[Node]:
    if not (isinstance(node, CallNode) and node.lowered_name in ('sin', 'cos') and len(node.args) == 1):
      return None
    argument = node.args[0]
    a = self._linear_coefficient(argument)
    if a is None:
      return None
    if numeric_value(a) == 0:
      return self._constant_integrand(node)
    if node.lowered_name == 'sin':
      antiderivative = neg(call('cos', argument))
      explanation = "integral of sin(a*x) is -cos(a*x)/a"
    else:
      antiderivative = call('sin', argument)
      explanation = "integral of cos(a*x) is sin(a*x)/a"
    result = antiderivative if is_number(a, 1) else div(antiderivative, a)
    self._record(node, result, 'trigonometric_rule', explanation)
    return result

  # Rule 5
  def _arctangent_rule(self, node: Node) -> Optional[Node]:
    if not (isinstance(node, BinaryOpNode) and node.operator == '/' and is_number(node.left, 1)):
      return None
    denominator = node.right
    if not (isinstance(denominator, BinaryOpNode) and denominator.operator == '+'):
      return None

    def is_square(term: Node) -> bool:
      return (isinstance(term, BinaryOpNode) and term.operator == '^' and self._is_variable(term.left)
              and is_number(term.right, 2))

    left, right = denominator.left, denominator.right
    if (is_number(left, 1) and is_square(right)) or (is_square(left) and is_number(right, 1)):
      result = call('arctan', var(self.variable))
      self._record(node, result, 'arctangent_rule', "integral of 1/(1+x^2) is arctan(x)")
      return result
    return None

  # Rule 6
  def _sum_rule(self, node: Node) -> Optional[Node]:
    if not (isinstance(node, BinaryOpNode) and node.operator in ('+', '-')):
      return None
    result = BinaryOpNode(node.operator, self.integrate(node.left), self.integrate(node.right))
    rule_name = 'sum_rule' if node.operator == '+' else 'difference_rule'
    self._record(node, result, rule_name, "integrate each term separately")
    return result

  # Rule 7
  def _constant_multiple_rule(self, node: Node) -> Optional[Node]:
    if isinstance(node, UnaryMinusNode):
      result = neg(self.integrate(node.operand))
    elif isinstance(node, BinaryOpNode) and node.operator == '*' and self._is_constant(node.left):
      result = mul(node.left, self.integrate(node.right))
    elif isinstance(node, BinaryOpNode) and node.operator == '*' and self._is_constant(node.right):
      result = mul(node.right, self.integrate(node.left))
    elif isinstance(node, BinaryOpNode) and node.operator == '/' and self._is_constant(node.right):
      result = div(self.integrate(node.left), node.right)
    else:
      return None
    self._record(node, result, 'constant_multiple', "constant factors move outside the integral")
    return result

  # Rule 8
  def _base_case_rule(self, node: Node) -> Optional[Node]:
    if self._is_variable(node):
      result = div(power(node, num(2)), num(2))
      self._record(node, result, 'variable_rule', "integral of x is x^2/2")
      return result
    if self._is_constant(node):
      x = var(self.variable)
      result = x if is_number(node, 1) else mul(node, x)
      self._record(node, result, 'constant_rule', "integral of a constant c is c*x")
      return result
    return None


def integrate(node: Node, variable: str, tracker: Optional[StepTracker] = None) -> Node:
  """Antiderivative of ``node``, or the ``integral(node, variable)`` marker"""
  return Integrator(variable, tracker).integrate(node)


def definite_integral(node: Node, variable: str, lower: float, upper: float,
                      scope: Optional[EvaluationScope] = None,
                      tracker: Optional[StepTracker] = None) -> DefiniteIntegral:
  """F(upper) - F(lower) from the symbolic antiderivative F"""
  antiderivative = integrate(node, variable, tracker)
  if contains_marker(antiderivative):
    return DefiniteIntegral(antiderivative, None, False, 'symbolic',
                            "Antiderivative contains an unevaluated integral; not computable symbolically")

  base_scope = as_scope(scope)
  try:
    at_upper = Evaluator(base_scope.bind(variable, upper)).evaluate_partial(antiderivative)
    at_lower = Evaluator(base_scope.bind(variable, lower)).evaluate_partial(antiderivative)
  except EvaluationError as e:
    return DefiniteIntegral(antiderivative, None, False, 'symbolic', f"Antiderivative undefined at a bound: {e}")

  if not (isinstance(at_upper, float) and isinstance(at_lower, float)):
    leftover = at_upper if not isinstance(at_upper, float) else at_lower
    return DefiniteIntegral(antiderivative, None, False, 'symbolic',
                            f"Antiderivative has unresolved symbols at the bounds: {leftover.to_string()}")

  value = at_upper - at_lower
  if not math.isfinite(value):
    return DefiniteIntegral(antiderivative, None, False, 'symbolic',
                            "Antiderivative is not finite at the bounds")

  if tracker is not None:
    tracker.record('definite_integration', antiderivative, num(value), 'fundamental_theorem',
                   f"Evaluated F({upper}) - F({lower})")
  log_debug(f"Definite integral of {node.to_string()} over [{lower}, {upper}] = {value}")
  return DefiniteIntegral(antiderivative, value, True, 'symbolic')


def numeric_integral(node: Node, variable: str, lower: float, upper: float,
                     scope: Optional[EvaluationScope] = None) -> DefiniteIntegral:
  """Adaptive quadrature (scipy.integrate.quad) over the evaluator"""
  f = make_numeric_function(node, variable, scope)
  with warnings.catch_warnings():
    warnings.simplefilter('ignore', IntegrationWarning)
    value, error = quad(f, lower, upper, limit=200)

  if not math.isfinite(value):
    return DefiniteIntegral(None, None, False, 'numeric', "Quadrature did not produce a finite value")
  return DefiniteIntegral(None, float(value), True, 'numeric',
                          f"Numeric quadrature (estimated error {error:.2e})")
