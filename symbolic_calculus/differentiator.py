"""
Rule-based symbolic differentiation.

Total over its catalogue: every node kind has a rule, and a function outside
the catalogue raises UnsupportedFunction instead of quietly becoming zero.
"""
import math
from typing import Dict, List, Optional, Sequence

from .errors import UnsupportedFunction
from .expression_tree.core.node import (
  Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
  CallNode, EquationNode, AssignmentNode,
  num, add, sub, mul, div, power, neg, call, is_number
)
from .expression_tree.utils.tree_utils import contains_variable, get_variables, numeric_value
from .logging_system import log_warning
from .step_tracker import StepTracker

OPERATION_KIND = 'differentiation'

SUPPORTED_FUNCTIONS = frozenset({
  'sin', 'cos', 'tan', 'ln', 'log', 'log10', 'exp', 'sqrt', 'abs',
  'asin', 'acos', 'atan', 'arcsin', 'arccos', 'arctan', 'sinh', 'cosh', 'tanh',
})


# Builders that fold the trivial 0 and 1 cases so results stay readable

def _times(a: Node, b: Node) -> Node:
  if is_number(a, 0) or is_number(b, 0):
    return num(0)
  if is_number(a, 1):
    return b
  if is_number(b, 1):
    return a
  return mul(a, b)


def _plus(a: Node, b: Node) -> Node:
  if is_number(a, 0):
    return b
  if is_number(b, 0):
    return a
  return add(a, b)


def _minus(a: Node, b: Node) -> Node:
  if is_number(b, 0):
    return a
  if is_number(a, 0):
    return _negate(b)
  return sub(a, b)


def _negate(a: Node) -> Node:
  if isinstance(a, NumberNode):
    return num(-a.value)
  return neg(a)


def _over(a: Node, b: Node) -> Node:
  if is_number(a, 0):
    return num(0)
  if is_number(b, 1):
    return a
  return div(a, b)


def _raise(base: Node, exponent: Node) -> Node:
  if is_number(exponent, 1):
    return base
  if is_number(exponent, 0):
    return num(1)
  return power(base, exponent)


def _is_euler(node: Node) -> bool:
  if isinstance(node, VariableNode):
    return node.name.lower() == 'e'
  return isinstance(node, NumberNode) and node.value == math.e


def outer_derivative(name: str, u: Node) -> Node:
  """f'(u) for a catalogue function f"""
  if name == 'sin':
    return call('cos', u)
  elif name == 'cos':
    return neg(call('sin', u))
  elif name == 'tan':
    return div(num(1), power(call('cos', u), num(2)))
  elif name == 'ln':
    return div(num(1), u)
  elif name in ('log', 'log10'):
    return div(num(1), mul(u, call('ln', num(10))))
  elif name == 'exp':
    return call('exp', u)
  elif name == 'sqrt':
    return div(num(1), mul(num(2), call('sqrt', u)))
  elif name == 'abs':
    return call('sign', u)
  elif name in ('asin', 'arcsin'):
    return div(num(1), call('sqrt', sub(num(1), power(u, num(2)))))
  elif name in ('acos', 'arccos'):
    return neg(div(num(1), call('sqrt', sub(num(1), power(u, num(2))))))
  elif name in ('atan', 'arctan'):
    return div(num(1), add(num(1), power(u, num(2))))
  elif name == 'sinh':
    return call('cosh', u)
  elif name == 'cosh':
    return call('sinh', u)
  elif name == 'tanh':
    return div(num(1), power(call('cosh', u), num(2)))
  raise UnsupportedFunction(name)


class Differentiator:
  """Differentiates trees with respect to one variable (case-insensitive)"""

  def __init__(self, variable: str, tracker: Optional[StepTracker] = None):
    if not isinstance(variable, str) or not variable:
      raise ValueError("variable must be a non-empty string")
    self.variable = variable
    self.tracker = tracker

  def _record(self, before: Node, after: Node, rule_name: str, explanation: str):
    if self.tracker is not None:
      self.tracker.record(OPERATION_KIND, before, after, rule_name,
                          f"d/d{self.variable} [{before.to_string()}]: {explanation}")

  def differentiate(self, node: Node) -> Node:
    if isinstance(node, NumberNode):
      return num(0)

    elif isinstance(node, VariableNode):
      return num(1) if node.matches(self.variable) else num(0)

    elif isinstance(node, BinaryOpNode):
      return self._differentiate_binary(node)

    elif isinstance(node, UnaryMinusNode):
      result = _negate(self.differentiate(node.operand))
      self._record(node, result, 'negation', "the derivative of -u is -u'")
      return result

    elif isinstance(node, CallNode):
      return self._differentiate_call(node)

    elif isinstance(node, EquationNode):
      return EquationNode(self.differentiate(node.left), self.differentiate(node.right))

    elif isinstance(node, AssignmentNode):
      return self.differentiate(node.value)

    raise TypeError(f"Unknown node type: {type(node).__name__}")

  def _differentiate_binary(self, node: BinaryOpNode) -> Node:
    u, v = node.left, node.right
    op = node.operator

    if op == '+':
      result = _plus(self.differentiate(u), self.differentiate(v))
      self._record(node, result, 'sum_rule', "differentiate each term")
      return result

    if op == '-':
      result = _minus(self.differentiate(u), self.differentiate(v))
      self._record(node, result, 'difference_rule', "differentiate each term")
      return result

    if op == '*':
      du = self.differentiate(u)
      dv = self.differentiate(v)
      result = _plus(_times(du, v), _times(u, dv))
      self._record(node, result, 'product_rule', "(uv)' = u'v + uv'")
      return result

    if op == '/':
      du = self.differentiate(u)
      dv = self.differentiate(v)
      if is_number(dv, 0):
        result = _over(du, v)
      else:
        result = div(_minus(_times(du, v), _times(u, dv)), power(v, num(2)))
      self._record(node, result, 'quotient_rule', "(u/v)' = (u'v - uv')/v^2")
      return result

    return self._differentiate_power(node)

  def _differentiate_power(self, node: BinaryOpNode) -> Node:
    u, v = node.left, node.right

    if not contains_variable(v, self.variable):
      n = numeric_value(v)
      if n is not None:
        coefficient, reduced = num(n), num(n - 1)
      else:
        coefficient, reduced = v, sub(v, num(1))
      result = _times(_times(coefficient, _raise(u, reduced)), self.differentiate(u))
      self._record(node, result, 'power_rule', "d/dx u^n = n*u^(n-1)*u'")
      return result

    dv = self.differentiate(v)
    if not contains_variable(u, self.variable):
      if _is_euler(u):
        result = _times(node, dv)
      else:
        result = _times(_times(node, call('ln', u)), dv)
      self._record(node, result, 'exponential_rule', "d/dx a^u = a^u*ln(a)*u'")
      return result

    du = self.differentiate(u)
    result = _times(node, _plus(_times(dv, call('ln', u)), _times(v, _over(du, u))))
    self._record(node, result, 'logarithmic_differentiation', "d/dx u^v = u^v*(v'*ln(u) + v*u'/u)")
    return result

  def _differentiate_call(self, node: CallNode) -> Node:
    name = node.lowered_name

    if name == 'integral' and len(node.args) == 2 and isinstance(node.args[1], VariableNode) \
        and node.args[1].matches(self.variable):
      result = node.args[0]
      self._record(node, result, 'fundamental_theorem', "the derivative of an antiderivative is the integrand")
      return result

    if name not in SUPPORTED_FUNCTIONS:
      log_warning(f"No differentiation rule for function '{node.name}'")
      raise UnsupportedFunction(node.name)
    if len(node.args) != 1:
      log_warning(f"Function '{node.name}' called with {len(node.args)} arguments cannot be differentiated")
      raise UnsupportedFunction(node.name, f"expects 1 argument, got {len(node.args)}")

    inner = node.args[0]
    d_inner = self.differentiate(inner)
    if is_number(d_inner, 0):
      result = num(0)
    else:
      result = _times(outer_derivative(name, inner), d_inner)
    self._record(node, result, 'chain_rule', f"f'(g(x))*g'(x) with f = {name}")
    return result


def differentiate(node: Node, variable: str, tracker: Optional[StepTracker] = None) -> Node:
  """Derivative of ``node`` with respect to ``variable``.

  Raises:
      UnsupportedFunction: a call outside the catalogue, or with several arguments
  """
  return Differentiator(variable, tracker).differentiate(node)


def differentiate_n(node: Node, variable: str, order: int, tracker: Optional[StepTracker] = None) -> Node:
  if not isinstance(order, int) or order < 0:
    raise ValueError("order must be a non-negative integer")
  differentiator = Differentiator(variable, tracker)
  for _ in range(order):
    node = differentiator.differentiate(node)
  return node


def gradient(node: Node, variables: Optional[Sequence[str]] = None,
             tracker: Optional[StepTracker] = None) -> Dict[str, Node]:
  """Partial derivatives keyed by variable name (all referenced variables by default)"""
  names: List[str] = list(variables) if variables is not None else get_variables(node)
  return {name: Differentiator(name, tracker).differentiate(node) for name in names}
