"""
Algebraic simplifier.

Bottom-up fixed-point rewriting: each pass simplifies the children of a node
first, then applies the built-in rules (and after them the registered
plugins) at the node until none of them fires. Passes repeat until the tree
stops changing or the pass cap is reached, in which case the best tree so far
is returned.
"""
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple, Union

import numpy as np

from .expression_tree.core.node import (
  Node, NumberNode, BinaryOpNode, UnaryMinusNode, CallNode,
  num, add, sub, mul, power, neg, call, is_number, is_call, is_binary
)
from .expression_tree.core.operators import apply_binary_op
from .expression_tree.utils.tree_utils import validate_tree_structure
from .logging_system import log_debug, log_warning, log_step
from .math_functions import lookup_function
from .plugins import SimplificationPlugin, PluginFunction
from .step_tracker import StepTracker

OPERATION_KIND = 'simplification'
LOCAL_REWRITE_LIMIT = 64
LOG_FUNCTIONS = ('ln', 'log', 'log10', 'log2')


def _integral(value: float) -> bool:
  return math.isfinite(value) and value == int(value)


def _coefficient_split(node: Node) -> Tuple[float, Node]:
  """(c, u) for c*u, (1, u) otherwise"""
  if is_binary(node, '*') and isinstance(node.left, NumberNode) and not isinstance(node.right, NumberNode):
    return node.left.value, node.right
  return 1.0, node


def _scaled(coefficient: float, term: Node) -> Node:
  return mul(num(coefficient), term)


# --- Built-in rules: each returns a replacement or None ---

def fold_constants(node: Node) -> Optional[Node]:
  if isinstance(node, UnaryMinusNode) and isinstance(node.operand, NumberNode):
    return num(-node.operand.value)

  if isinstance(node, BinaryOpNode) and isinstance(node.left, NumberNode) and isinstance(node.right, NumberNode):
    if node.operator == '/' and node.right.value == 0:
      return None
    result = apply_binary_op(node.left.value, node.right.value, node.operator)
    if not math.isfinite(result):
      return None
    # Keep 1/3 and 2^0.5 exact
    if node.operator in ('/', '^') and not _integral(result):
      return None
    return num(result)

  if isinstance(node, CallNode) and node.args and all(isinstance(a, NumberNode) for a in node.args):
    spec = lookup_function(node.name)
    if spec is None or not spec.accepts(len(node.args)):
      return None
    try:
      with np.errstate(all='ignore'):
        result = float(spec.func(*(a.value for a in node.args)))
    except (ArithmeticError, ValueError):
      return None
    if _integral(result):
      return num(result)
  return None


def additive_identity(node: Node) -> Optional[Node]:
  if is_binary(node, '+'):
    if is_number(node.right, 0):
      return node.left
    if is_number(node.left, 0):
      return node.right
  elif is_binary(node, '-'):
    if is_number(node.right, 0):
      return node.left
    if is_number(node.left, 0):
      return neg(node.right)
  return None


def multiplicative_identity(node: Node) -> Optional[Node]:
  if is_binary(node, '*'):
    if is_number(node.left, 0) or is_number(node.right, 0):
      return num(0)
    if is_number(node.left, 1):
      return node.right
    if is_number(node.right, 1):
      return node.left
  elif is_binary(node, '/'):
    if is_number(node.right, 1):
      return node.left
    if is_number(node.left, 0) and not is_number(node.right, 0):
      return num(0)
  return None


def self_cancellation(node: Node) -> Optional[Node]:
  if is_binary(node, '-') and node.left == node.right:
    return num(0)
  if is_binary(node, '/') and node.left == node.right and not is_number(node.left, 0):
    return num(1)
  return None


def exponent_identity(node: Node) -> Optional[Node]:
  if not is_binary(node, '^'):
    return None
  if is_number(node.right, 0):
    return num(1)
  if is_number(node.right, 1):
    return node.left
  if is_number(node.left, 1):
    return num(1)
  return None


def pythagorean_identity(node: Node) -> Optional[Node]:
  if not is_binary(node, '+'):
    return None

  def squared(term: Node, name: str) -> Optional[Node]:
    if is_binary(term, '^') and is_number(term.right, 2) and is_call(term.left, name) and len(term.left.args) == 1:
      return term.left.args[0]
    return None

  for first, second in ((node.left, node.right), (node.right, node.left)):
    u = squared(first, 'sin')
    if u is not None and u == squared(second, 'cos'):
      return num(1)
  return None


def log_of_product(node: Node) -> Optional[Node]:
  if is_call(node, *LOG_FUNCTIONS) and len(node.args) == 1 and is_binary(node.args[0], '*'):
    product = node.args[0]
    return add(call(node.name, product.left), call(node.name, product.right))
  return None


def exp_of_sum(node: Node) -> Optional[Node]:
  if is_call(node, 'exp') and len(node.args) == 1 and is_binary(node.args[0], '+'):
    total = node.args[0]
    return mul(call(node.name, total.left), call(node.name, total.right))
  return None


def normalize_negation(node: Node) -> Optional[Node]:
  if isinstance(node, UnaryMinusNode) and isinstance(node.operand, UnaryMinusNode):
    return node.operand.operand
  if not isinstance(node, BinaryOpNode):
    return None

  left, right, op = node.left, node.right, node.operator
  if op in ('+', '-'):
    flipped = '-' if op == '+' else '+'
    if isinstance(right, UnaryMinusNode):
      return BinaryOpNode(flipped, left, right.operand)
    if isinstance(right, NumberNode) and right.value < 0:
      return BinaryOpNode(flipped, left, num(-right.value))
    c, term = _coefficient_split(right)
    if c < 0:
      return BinaryOpNode(flipped, left, _scaled(-c, term))
    if op == '+' and isinstance(left, UnaryMinusNode):
      return sub(right, left.operand)
    if op == '+' and isinstance(left, NumberNode) and left.value < 0 and not isinstance(right, NumberNode):
      return sub(right, num(-left.value))
    return None

  if op == '*':
    if is_number(left, -1):
      return neg(right)
    if is_number(right, -1):
      return neg(left)
  # u*-v -> -(u*v)
  if op in ('*', '/') and isinstance(right, UnaryMinusNode):
    return neg(BinaryOpNode(op, left, right.operand))
  return None


def coefficient_first(node: Node) -> Optional[Node]:
  """u*c -> c*u"""
  if is_binary(node, '*') and isinstance(node.right, NumberNode) and not isinstance(node.left, NumberNode):
    return mul(node.right, node.left)
  return None


def merge_coefficients(node: Node) -> Optional[Node]:
  if is_binary(node, '*'):
    left, right = node.left, node.right
    if isinstance(left, NumberNode) and is_binary(right, '*') and isinstance(right.left, NumberNode):
      return mul(num(left.value * right.left.value), right.right)
    if is_binary(left, '*') and isinstance(left.left, NumberNode) and not isinstance(right, NumberNode):
      return mul(left.left, mul(left.right, right))
    if not isinstance(left, NumberNode) and is_binary(right, '*') and isinstance(right.left, NumberNode):
      return mul(right.left, mul(left, right.right))
    if isinstance(left, NumberNode) and is_binary(right, '/') and isinstance(right.right, NumberNode) \
        and right.right.value != 0:
      ratio = left.value / right.right.value
      if _integral(ratio):
        return mul(num(ratio), right.left)
  elif is_binary(node, '/'):
    numerator, denominator = node.left, node.right
    if is_binary(numerator, '*') and isinstance(numerator.left, NumberNode) \
        and isinstance(denominator, NumberNode) and denominator.value != 0:
      ratio = numerator.left.value / denominator.value
      if _integral(ratio):
        return mul(num(ratio), numerator.right)
  return None


def combine_like_terms(node: Node) -> Optional[Node]:
  if not is_binary(node, '+', '-'):
    return None
  if isinstance(node.left, NumberNode) or isinstance(node.right, NumberNode):
    return None
  c1, u = _coefficient_split(node.left)
  c2, v = _coefficient_split(node.right)
  if u != v:
    return None
  total = c1 + c2 if node.operator == '+' else c1 - c2
  return _scaled(total, u)


def merge_powers(node: Node) -> Optional[Node]:
  def base_and_exponent(term: Node) -> Tuple[Node, Optional[float]]:
    if is_binary(term, '^') and isinstance(term.right, NumberNode):
      return term.left, term.right.value
    return term, 1.0

  if is_binary(node, '*') and not isinstance(node.left, NumberNode):
    if node.left == node.right:
      return power(node.left, num(2))
    base_l, exp_l = base_and_exponent(node.left)
    base_r, exp_r = base_and_exponent(node.right)
    if base_l == base_r and (exp_l != 1.0 or exp_r != 1.0):
      return power(base_l, num(exp_l + exp_r))

  elif is_binary(node, '/') and is_binary(node.left, '^') and isinstance(node.left.right, NumberNode):
    base_l, exp_l = base_and_exponent(node.left)
    base_r, exp_r = base_and_exponent(node.right)
    if base_l == base_r:
      return power(base_l, num(exp_l - exp_r))

  elif is_binary(node, '^') and isinstance(node.right, NumberNode) and node.right.is_integer:
    inner = node.left
    if is_binary(inner, '^') and isinstance(inner.right, NumberNode):
      return power(inner.left, num(inner.right.value * node.right.value))
  return None


BUILTIN_RULES: Tuple[Tuple[str, str, Callable[[Node], Optional[Node]]], ...] = (
  ('constant_folding', "Evaluate numeric subexpressions", fold_constants),
  ('additive_identity', "x + 0 = x", additive_identity),
  ('multiplicative_identity', "x*1 = x and x*0 = 0", multiplicative_identity),
  ('self_cancellation', "x - x = 0 and x/x = 1", self_cancellation),
  ('exponent_identity', "x^0 = 1 and x^1 = x", exponent_identity),
  ('pythagorean_identity', "sin(u)^2 + cos(u)^2 = 1", pythagorean_identity),
  ('log_of_product', "log(a*b) = log(a) + log(b)", log_of_product),
  ('exp_of_sum', "exp(a + b) = exp(a)*exp(b)", exp_of_sum),
  ('negation', "Normalize signs", normalize_negation),
  ('coefficient_order', "Move numeric coefficients to the left", coefficient_first),
  ('coefficient_merge', "Combine numeric coefficients", merge_coefficients),
  ('like_terms', "Combine like terms", combine_like_terms),
  ('power_merge', "Combine powers of the same base", merge_powers),
)


@dataclass(frozen=True)
class SimplificationReport:
  result: Node
  passes: int
  converged: bool


class Simplifier:
  """Fixed-point simplifier with a plugin registry"""

  def __init__(self, plugins: Iterable[Union[SimplificationPlugin, Tuple[str, PluginFunction]]] = (),
               max_passes: int = 10):
    if not isinstance(max_passes, int) or max_passes < 1:
      raise ValueError("max_passes must be a positive integer")
    self.max_passes = max_passes
    self.plugins: List[SimplificationPlugin] = []
    for plugin in plugins:
      self.register_plugin(*plugin)

  def register_plugin(self, name: str, apply: PluginFunction):
    if not callable(apply):
      raise TypeError(f"Plugin {name!r} is not callable")
    self.plugins.append(SimplificationPlugin(name, apply))

  def simplify(self, node: Node, tracker: Optional[StepTracker] = None) -> Node:
    return self.simplify_with_report(node, tracker).result

  def simplify_with_report(self, node: Node, tracker: Optional[StepTracker] = None) -> SimplificationReport:
    current = node
    for passes in range(1, self.max_passes + 1):
      rewritten = self._rewrite_tree(current, tracker)
      if rewritten == current:
        return SimplificationReport(rewritten, passes, True)
      current = rewritten

    log_debug(f"Simplification stopped after {self.max_passes} passes at {current.to_string()}")
    return SimplificationReport(current, self.max_passes, False)

  def _rewrite_tree(self, node: Node, tracker: Optional[StepTracker]) -> Node:
    children = node.children()
    if children:
      node = node.with_children(*(self._rewrite_tree(child, tracker) for child in children))
    return self._rewrite_node(node, tracker)

  def _rewrite_node(self, node: Node, tracker: Optional[StepTracker]) -> Node:
    for _ in range(LOCAL_REWRITE_LIMIT):
      rewritten = self._apply_builtin(node, tracker)
      if rewritten is None:
        rewritten = self._apply_plugins(node, tracker)
      if rewritten is None:
        return node
      node = rewritten
    return node

  def _apply_builtin(self, node: Node, tracker: Optional[StepTracker]) -> Optional[Node]:
    for rule_name, explanation, rule in BUILTIN_RULES:
      result = rule(node)
      if result is not None and result != node:
        self._record(tracker, node, result, rule_name, explanation)
        return result
    return None

  def _apply_plugins(self, node: Node, tracker: Optional[StepTracker]) -> Optional[Node]:
    for plugin in self.plugins:
      try:
        result = plugin.apply(node)
      except Exception as e:
        log_warning(f"Simplification plugin '{plugin.name}' failed on {node.to_string()}: {e}")
        continue
      if result is None or result == node:
        continue
      if not validate_tree_structure(result):
        log_warning(f"Simplification plugin '{plugin.name}' returned a non-tree value; ignored")
        continue
      self._record(tracker, node, result, 'plugin_simplification', f"plugin: {plugin.name}")
      return result
    return None

  @staticmethod
  def _record(tracker: Optional[StepTracker], before: Node, after: Node, rule_name: str, explanation: str):
    if tracker is not None:
      tracker.record(OPERATION_KIND, before, after, rule_name, explanation)
    else:
      log_step(OPERATION_KIND, rule_name, before.to_string(), after.to_string())


def simplify(node: Node, tracker: Optional[StepTracker] = None,
             plugins: Iterable[SimplificationPlugin] = (), max_passes: int = 10) -> Node:
  return Simplifier(plugins, max_passes).simplify(node, tracker)


def simplify_with_report(node: Node, tracker: Optional[StepTracker] = None,
                         plugins: Iterable[SimplificationPlugin] = (),
                         max_passes: int = 10) -> SimplificationReport:
  return Simplifier(plugins, max_passes).simplify_with_report(node, tracker)
