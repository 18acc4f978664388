import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple, Union

import numpy as np

from .errors import DivisionByZeroError, EvaluationError
from .expression_tree.core.node import (
  Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
  CallNode, EquationNode, AssignmentNode
)
from .expression_tree.core.operators import CONSTANTS, apply_binary_op
from .math_functions import (
  FunctionSpec, BUILTIN_FUNCTIONS, TRIG_FUNCTIONS, INVERSE_TRIG_FUNCTIONS, round_half_away
)

Value = Union[float, Node]


@dataclass(frozen=True)
class EvaluationScope:
  """Variable bindings, user functions and mode flags for one evaluation.

  Variable and function names are matched case-insensitively. User functions
  shadow the built-in catalogue; a plain callable is treated as variadic.
  """
  variables: Mapping[str, float] = field(default_factory=dict)
  functions: Mapping[str, Union[FunctionSpec, Callable[..., float]]] = field(default_factory=dict)
  angle_mode: str = 'radians'
  precision: Optional[int] = None

  def __post_init__(self):
    if self.angle_mode not in ('radians', 'degrees'):
      raise ValueError(f"angle_mode must be 'radians' or 'degrees', got {self.angle_mode!r}")
    if self.precision is not None and self.precision < 0:
      raise ValueError("precision must be non-negative")
    variables = {name.lower(): float(value) for name, value in self.variables.items()}
    functions = {}
    for name, spec in self.functions.items():
      if not isinstance(spec, FunctionSpec):
        if not callable(spec):
          raise TypeError(f"Function {name!r} is not callable")
        spec = FunctionSpec(spec, 0, None)
      functions[name.lower()] = spec
    object.__setattr__(self, 'variables', MappingProxyType(variables))
    object.__setattr__(self, 'functions', MappingProxyType(functions))

  def bind(self, name: str, value: float) -> 'EvaluationScope':
    """New scope with one more (or a replaced) variable binding"""
    variables = dict(self.variables)
    variables[name.lower()] = float(value)
    return EvaluationScope(variables, dict(self.functions), self.angle_mode, self.precision)

  def lookup_variable(self, name: str) -> Optional[float]:
    lowered = name.lower()
    if lowered in self.variables:
      return self.variables[lowered]
    return CONSTANTS.get(lowered)

  def lookup_function(self, name: str) -> Optional[FunctionSpec]:
    lowered = name.lower()
    if lowered in self.functions:
      return self.functions[lowered]
    return BUILTIN_FUNCTIONS.get(lowered)


def as_scope(scope: Union[None, EvaluationScope, Mapping[str, float]]) -> EvaluationScope:
  if scope is None:
    return EvaluationScope()
  if isinstance(scope, EvaluationScope):
    return scope
  return EvaluationScope(variables=scope)


def as_node(value: Value) -> Node:
  return value if isinstance(value, Node) else NumberNode(value)


class Evaluator:
  """Partial evaluator: numeric where it can be, symbolic where it must be"""

  def __init__(self, scope: Union[None, EvaluationScope, Mapping[str, float]] = None):
    self.scope = as_scope(scope)

  def evaluate_partial(self, node: Node) -> Value:
    if isinstance(node, NumberNode):
      return node.value

    elif isinstance(node, VariableNode):
      value = self.scope.lookup_variable(node.name)
      return node if value is None else value

    elif isinstance(node, UnaryMinusNode):
      operand = self.evaluate_partial(node.operand)
      if isinstance(operand, float):
        return -operand
      return UnaryMinusNode(operand)

    elif isinstance(node, BinaryOpNode):
      left = self.evaluate_partial(node.left)
      right = self.evaluate_partial(node.right)
      if isinstance(left, float) and isinstance(right, float):
        if node.operator == '/' and right == 0.0 and math.isfinite(left):
          raise DivisionByZeroError(node.to_string())
        return apply_binary_op(left, right, node.operator)
      return BinaryOpNode(node.operator, as_node(left), as_node(right))

    elif isinstance(node, CallNode):
      return self._evaluate_call(node)

    elif isinstance(node, EquationNode):
      return EquationNode(as_node(self.evaluate_partial(node.left)),
                          as_node(self.evaluate_partial(node.right)))

    elif isinstance(node, AssignmentNode):
      return self.evaluate_partial(node.value)

    raise TypeError(f"Unknown node type: {type(node).__name__}")

  def _evaluate_call(self, node: CallNode) -> Value:
    args = [self.evaluate_partial(arg) for arg in node.args]
    spec = self.scope.lookup_function(node.name)
    if spec is None or not spec.accepts(len(args)) or not all(isinstance(a, float) for a in args):
      return CallNode(node.name, [as_node(a) for a in args])

    lowered = node.lowered_name
    degrees = self.scope.angle_mode == 'degrees'
    if degrees and lowered in TRIG_FUNCTIONS:
      args[0] = math.radians(args[0])

    try:
      with np.errstate(all='ignore'):
        result = float(spec.func(*args))
    except (ArithmeticError, ValueError) as e:
      raise EvaluationError(f"Function {node.name} failed: {e}") from e

    if degrees and lowered in INVERSE_TRIG_FUNCTIONS:
      result = math.degrees(result)
    return result

  def finalize(self, value: Value) -> Union[float, str]:
    if isinstance(value, Node):
      return value.to_string()
    if self.scope.precision is not None:
      return round_half_away(value, self.scope.precision)
    return value

  def evaluate(self, node: Node) -> Union[float, str]:
    return self.finalize(self.evaluate_partial(node))


def evaluate(node: Node, scope: Union[None, EvaluationScope, Mapping[str, float]] = None) -> Union[float, str]:
  """Reduce a tree to a float, or to its symbolic string when something stays unresolved.

  Raises:
      DivisionByZeroError: exact division of a finite number by zero
  """
  return Evaluator(scope).evaluate(node)


def evaluate_partial(node: Node, scope: Union[None, EvaluationScope, Mapping[str, float]] = None) -> Value:
  return Evaluator(scope).evaluate_partial(node)


def evaluate_statement(node: Node, scope: Union[None, EvaluationScope, Mapping[str, float]] = None
                       ) -> Tuple[Union[float, str], EvaluationScope]:
  """Evaluate a statement, binding numeric assignments into a new scope"""
  evaluator = Evaluator(scope)
  value = evaluator.evaluate_partial(node)
  new_scope = evaluator.scope
  if isinstance(node, AssignmentNode) and isinstance(value, float):
    new_scope = new_scope.bind(node.name, value)
  return evaluator.finalize(value), new_scope


def make_numeric_function(node: Node, variable: str,
                          scope: Union[None, EvaluationScope, Mapping[str, float]] = None
                          ) -> Callable[[float], float]:
  """Single-variable float function over the tree.

  Non-numeric results and evaluation failures (exact division by zero, a
  function that overflows) become NaN so callers that sample the function
  see gaps instead of exceptions.
  """
  base_scope = as_scope(scope)

  def f(x: float) -> float:
    try:
      value = Evaluator(base_scope.bind(variable, x)).evaluate_partial(node)
    except EvaluationError:
      return float('nan')
    return value if isinstance(value, float) else float('nan')

  return f
