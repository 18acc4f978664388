"""
Simplification plugins.

A plugin is a named pure function Node -> Node | None. It returns a
replacement for the node it is given, or None when it does not apply. The
simplifier tries plugins after its own rules, at every node, on every pass.
"""
import math
from typing import Callable, NamedTuple, Optional, Tuple

from .expression_tree.core.node import (
  Node, NumberNode, VariableNode, UnaryMinusNode,
  num, mul, power, neg, call, is_number, is_call, is_binary
)

PluginFunction = Callable[[Node], Optional[Node]]


class SimplificationPlugin(NamedTuple):
  name: str
  apply: PluginFunction


def _single_argument(node: Node, *names: str) -> Optional[Node]:
  if is_call(node, *names) and len(node.args) == 1:
    return node.args[0]
  return None


def _squared_call_argument(node: Node, name: str) -> Optional[Node]:
  """u for nodes shaped name(u)^2"""
  if is_binary(node, '^') and is_number(node.right, 2):
    return _single_argument(node.left, name)
  return None


# --- Trigonometric pack ---

def trig_odd_even(node: Node) -> Optional[Node]:
  """sin(-u) -> -sin(u), tan(-u) -> -tan(u), cos(-u) -> cos(u)"""
  argument = _single_argument(node, 'sin', 'cos', 'tan')
  if not isinstance(argument, UnaryMinusNode):
    return None
  inner = call(node.name, argument.operand)
  return inner if node.lowered_name == 'cos' else neg(inner)


def trig_quotient(node: Node) -> Optional[Node]:
  """sin(u)/cos(u) -> tan(u)"""
  if not is_binary(node, '/'):
    return None
  numerator = _single_argument(node.left, 'sin')
  denominator = _single_argument(node.right, 'cos')
  if numerator is not None and numerator == denominator:
    return call('tan', numerator)
  return None


def trig_complement(node: Node) -> Optional[Node]:
  """1 - sin(u)^2 -> cos(u)^2 and 1 - cos(u)^2 -> sin(u)^2"""
  if not (is_binary(node, '-') and is_number(node.left, 1)):
    return None
  argument = _squared_call_argument(node.right, 'sin')
  if argument is not None:
    return power(call('cos', argument), num(2))
  argument = _squared_call_argument(node.right, 'cos')
  if argument is not None:
    return power(call('sin', argument), num(2))
  return None


def _trig_pack(node: Node) -> Optional[Node]:
  for rule in (trig_odd_even, trig_quotient, trig_complement):
    result = rule(node)
    if result is not None:
      return result
  return None


# --- Logarithm / exponential pack ---

def log_of_exp(node: Node) -> Optional[Node]:
  """ln(exp(u)) -> u, ln(e) -> 1, log10(10^u) -> u"""
  argument = _single_argument(node, 'ln')
  if argument is not None:
    inner = _single_argument(argument, 'exp')
    if inner is not None:
      return inner
    if (isinstance(argument, NumberNode) and argument.value == math.e) or \
        (isinstance(argument, VariableNode) and argument.name.lower() == 'e'):
      return num(1)
    return None

  argument = _single_argument(node, 'log10', 'log')
  if argument is not None and is_binary(argument, '^') and is_number(argument.left, 10):
    return argument.right
  return None


def exp_of_log(node: Node) -> Optional[Node]:
  """exp(ln(u)) -> u, exp(a*ln(u)) -> u^a"""
  argument = _single_argument(node, 'exp')
  if argument is None:
    return None
  inner = _single_argument(argument, 'ln')
  if inner is not None:
    return inner
  if is_binary(argument, '*'):
    inner = _single_argument(argument.right, 'ln')
    if inner is not None:
      return power(inner, argument.left)
  return None


def log_of_power(node: Node) -> Optional[Node]:
  """ln(u^n) -> n*ln(u) for numeric n"""
  argument = _single_argument(node, 'ln', 'log', 'log10', 'log2')
  if argument is not None and is_binary(argument, '^') and isinstance(argument.right, NumberNode):
    return mul(argument.right, call(node.name, argument.left))
  return None


def _log_exp_pack(node: Node) -> Optional[Node]:
  for rule in (log_of_exp, exp_of_log, log_of_power):
    result = rule(node)
    if result is not None:
      return result
  return None


TRIG_PLUGIN = SimplificationPlugin('trigonometric', _trig_pack)
LOG_EXP_PLUGIN = SimplificationPlugin('logarithmic-exponential', _log_exp_pack)

DEFAULT_PLUGINS: Tuple[SimplificationPlugin, ...] = (TRIG_PLUGIN, LOG_EXP_PLUGIN)
