import math
import sympy as sp
from abc import ABC, abstractmethod
from typing import Optional, Tuple, Iterable
from .operators import (
  NodeType, BINARY_OP_MAP, BINARY_PRECEDENCE, CONSTANTS,
  PRECEDENCE_ADDITIVE, PRECEDENCE_UNARY, PRECEDENCE_POWER, PRECEDENCE_ATOM,
  format_number
)

# Names understood by to_sympy; anything else becomes an undefined sympy Function.
SYMPY_FUNCTIONS = {
  'sin': sp.sin, 'cos': sp.cos, 'tan': sp.tan,
  'sec': sp.sec, 'csc': sp.csc, 'cot': sp.cot,
  'asin': sp.asin, 'acos': sp.acos, 'atan': sp.atan,
  'arcsin': sp.asin, 'arccos': sp.acos, 'arctan': sp.atan,
  'sinh': sp.sinh, 'cosh': sp.cosh, 'tanh': sp.tanh,
  'asinh': sp.asinh, 'acosh': sp.acosh, 'atanh': sp.atanh,
  'ln': sp.log, 'exp': sp.exp, 'sqrt': sp.sqrt, 'cbrt': sp.cbrt,
  'abs': sp.Abs, 'sign': sp.sign, 'floor': sp.floor, 'ceil': sp.ceiling,
  'log10': lambda arg: sp.log(arg, 10),
  'log': lambda arg: sp.log(arg, 10),
  'log2': lambda arg: sp.log(arg, 2),
}


class Node(ABC):
  """Immutable expression tree node.

  Nodes never change after construction: rewrites build new nodes bottom-up,
  so a subtree can be shared freely between the trees of successive steps.
  Hash, size and display string are computed lazily and cached.
  """

  __slots__ = ('_hash_cache', '_size_cache', '_string_cache')

  def __init__(self):
    object.__setattr__(self, '_hash_cache', None)
    object.__setattr__(self, '_size_cache', None)
    object.__setattr__(self, '_string_cache', None)

  def __setattr__(self, name, value):
    raise AttributeError(f"{type(self).__name__} is immutable")

  def __delattr__(self, name):
    raise AttributeError(f"{type(self).__name__} is immutable")

  @property
  @abstractmethod
  def node_type(self) -> NodeType:
    pass

  @abstractmethod
  def children(self) -> Tuple['Node', ...]:
    pass

  @abstractmethod
  def with_children(self, *children: 'Node') -> 'Node':
    """Return a node of the same kind with the given children."""

  @abstractmethod
  def precedence(self) -> int:
    pass

  @abstractmethod
  def _render(self) -> str:
    pass

  @abstractmethod
  def _key(self) -> tuple:
    pass

  @abstractmethod
  def to_sympy(self) -> sp.Basic:
    pass

  def to_string(self) -> str:
    if self._string_cache is None:
      object.__setattr__(self, '_string_cache', self._render())
    return self._string_cache

  def size(self) -> int:
    """Node count of the subtree"""
    if self._size_cache is None:
      object.__setattr__(self, '_size_cache', 1 + sum(child.size() for child in self.children()))
    return self._size_cache

  def __hash__(self) -> int:
    if self._hash_cache is None:
      object.__setattr__(self, '_hash_cache', hash((self.node_type, self._key())))
    return self._hash_cache

  def __eq__(self, other) -> bool:
    if self is other:
      return True
    if type(self) is not type(other):
      return False
    if hash(self) != hash(other):
      return False
    return self._key() == other._key()

  def __ne__(self, other) -> bool:
    return not self.__eq__(other)

  def __str__(self) -> str:
    return self.to_string()

  def __repr__(self) -> str:
    return f"{type(self).__name__}({self.to_string()!r})"


def _check_child(child, role: str) -> 'Node':
  if not isinstance(child, Node):
    raise TypeError(f"{role} must be a Node, got {type(child).__name__}")
  return child


def _wrap(node: Node, parenthesize: bool) -> str:
  text = node.to_string()
  return f"({text})" if parenthesize else text


class NumberNode(Node):
  __slots__ = ('value',)

  def __init__(self, value: float):
    super().__init__()
    if isinstance(value, (bool, str)) or not hasattr(value, '__float__'):
      raise TypeError(f"NumberNode value must be numeric, got {type(value).__name__}")
    object.__setattr__(self, 'value', float(value))

  @property
  def node_type(self) -> NodeType:
    return NodeType.NUMBER

  def children(self) -> Tuple[Node, ...]:
    return ()

  def with_children(self, *children: Node) -> 'NumberNode':
    return self

  def precedence(self) -> int:
    return PRECEDENCE_UNARY if self.value < 0 else PRECEDENCE_ATOM

  def _render(self) -> str:
    return format_number(self.value)

  def _key(self) -> tuple:
    return (self.value,)

  def to_sympy(self):
    if self.is_integer and abs(self.value) < 1e15:
      return sp.Integer(int(self.value))
    return sp.Float(self.value)

  @property
  def is_integer(self) -> bool:
    return math.isfinite(self.value) and self.value == int(self.value)


class VariableNode(Node):
  __slots__ = ('name',)

  def __init__(self, name: str):
    super().__init__()
    if not isinstance(name, str) or not name:
      raise TypeError("VariableNode name must be a non-empty string")
    object.__setattr__(self, 'name', name)

  @property
  def node_type(self) -> NodeType:
    return NodeType.VARIABLE

  def children(self) -> Tuple[Node, ...]:
    return ()

  def with_children(self, *children: Node) -> 'VariableNode':
    return self

  def precedence(self) -> int:
    return PRECEDENCE_ATOM

  def _render(self) -> str:
    return self.name

  def _key(self) -> tuple:
    return (self.name,)

  def matches(self, name: str) -> bool:
    return self.name.lower() == name.lower()

  @property
  def is_constant(self) -> bool:
    return self.name.lower() in CONSTANTS

  def to_sympy(self):
    lowered = self.name.lower()
    if lowered == 'pi':
      return sp.pi
    if lowered == 'e':
      return sp.E
    return sp.Symbol(self.name)


class BinaryOpNode(Node):
  __slots__ = ('operator', 'left', 'right')

  def __init__(self, operator: str, left: Node, right: Node):
    super().__init__()
    if operator not in BINARY_OP_MAP:
      raise ValueError(f"Unknown binary operator: {operator!r}")
    object.__setattr__(self, 'operator', operator)
    object.__setattr__(self, 'left', _check_child(left, 'left operand'))
    object.__setattr__(self, 'right', _check_child(right, 'right operand'))

  @property
  def node_type(self) -> NodeType:
    return NodeType.BINARY_OP

  def children(self) -> Tuple[Node, ...]:
    return (self.left, self.right)

  def with_children(self, *children: Node) -> 'BinaryOpNode':
    left, right = children
    if left is self.left and right is self.right:
      return self
    return BinaryOpNode(self.operator, left, right)

  def precedence(self) -> int:
    return BINARY_PRECEDENCE[self.operator]

  def _render(self) -> str:
    if self.operator == '^':
      base = _wrap(self.left, self.left.precedence() <= PRECEDENCE_POWER)
      exponent = _wrap(self.right, self.right.precedence() < PRECEDENCE_ATOM)
      return f"{base}^{exponent}"

    own = self.precedence()
    left = _wrap(self.left, self.left.precedence() < own)
    # Right operands of equal precedence keep their grouping: a - (b - c), a/(b*c)
    right = _wrap(self.right, self.right.precedence() <= own)
    if own == PRECEDENCE_ADDITIVE:
      return f"{left} {self.operator} {right}"
    return f"{left}{self.operator}{right}"

  def _key(self) -> tuple:
    return (self.operator, self.left, self.right)

  def to_sympy(self):
    left = self.left.to_sympy()
    right = self.right.to_sympy()
    if self.operator == '+':
      return sp.Add(left, right)
    elif self.operator == '-':
      return sp.Add(left, sp.Mul(-1, right))
    elif self.operator == '*':
      return sp.Mul(left, right)
    elif self.operator == '/':
      return sp.Mul(left, sp.Pow(right, -1))
    return sp.Pow(left, right)


class UnaryMinusNode(Node):
  __slots__ = ('operand',)

  def __init__(self, operand: Node):
    super().__init__()
    object.__setattr__(self, 'operand', _check_child(operand, 'operand'))

  @property
  def node_type(self) -> NodeType:
    return NodeType.UNARY_MINUS

  def children(self) -> Tuple[Node, ...]:
    return (self.operand,)

  def with_children(self, *children: Node) -> 'UnaryMinusNode':
    operand, = children
    if operand is self.operand:
      return self
    return UnaryMinusNode(operand)

  def precedence(self) -> int:
    return PRECEDENCE_UNARY

  def _render(self) -> str:
    return "-" + _wrap(self.operand, self.operand.precedence() < PRECEDENCE_UNARY)

  def _key(self) -> tuple:
    return (self.operand,)

  def to_sympy(self):
    return sp.Mul(-1, self.operand.to_sympy())


class CallNode(Node):
  __slots__ = ('name', 'args')

  def __init__(self, name: str, args: Iterable[Node] = ()):
    super().__init__()
    if not isinstance(name, str) or not name:
      raise TypeError("CallNode name must be a non-empty string")
    object.__setattr__(self, 'name', name)
    object.__setattr__(self, 'args', tuple(_check_child(arg, f"argument of {name}") for arg in args))

  @property
  def node_type(self) -> NodeType:
    return NodeType.CALL

  @property
  def lowered_name(self) -> str:
    return self.name.lower()

  def children(self) -> Tuple[Node, ...]:
    return self.args

  def with_children(self, *children: Node) -> 'CallNode':
    if len(children) == len(self.args) and all(a is b for a, b in zip(children, self.args)):
      return self
    return CallNode(self.name, children)

  def precedence(self) -> int:
    return PRECEDENCE_ATOM

  def _render(self) -> str:
    return f"{self.name}({', '.join(arg.to_string() for arg in self.args)})"

  def _key(self) -> tuple:
    return (self.name, self.args)

  def to_sympy(self):
    args = [arg.to_sympy() for arg in self.args]
    lowered = self.lowered_name
    if lowered == 'integral' and len(args) == 2:
      return sp.Integral(args[0], args[1])
    func = SYMPY_FUNCTIONS.get(lowered)
    if func is not None and len(args) == 1:
      return func(args[0])
    return sp.Function(self.name)(*args)


class EquationNode(Node):
  __slots__ = ('left', 'right')

  def __init__(self, left: Node, right: Node):
    super().__init__()
    object.__setattr__(self, 'left', _check_child(left, 'left side'))
    object.__setattr__(self, 'right', _check_child(right, 'right side'))

  @property
  def node_type(self) -> NodeType:
    return NodeType.EQUATION

  def children(self) -> Tuple[Node, ...]:
    return (self.left, self.right)

  def with_children(self, *children: Node) -> 'EquationNode':
    left, right = children
    if left is self.left and right is self.right:
      return self
    return EquationNode(left, right)

  def precedence(self) -> int:
    return 0

  def _render(self) -> str:
    return f"{self.left.to_string()} = {self.right.to_string()}"

  def _key(self) -> tuple:
    return (self.left, self.right)

  def to_sympy(self):
    return sp.Eq(self.left.to_sympy(), self.right.to_sympy(), evaluate=False)


class AssignmentNode(Node):
  __slots__ = ('name', 'value')

  def __init__(self, name: str, value: Node):
    super().__init__()
    if not isinstance(name, str) or not name:
      raise TypeError("AssignmentNode name must be a non-empty string")
    object.__setattr__(self, 'name', name)
    object.__setattr__(self, 'value', _check_child(value, 'assigned value'))

  @property
  def node_type(self) -> NodeType:
    return NodeType.ASSIGNMENT

  def children(self) -> Tuple[Node, ...]:
    return (self.value,)

  def with_children(self, *children: Node) -> 'AssignmentNode':
    value, = children
    if value is self.value:
      return self
    return AssignmentNode(self.name, value)

  def precedence(self) -> int:
    return 0

  def _render(self) -> str:
    return f"{self.name} = {self.value.to_string()}"

  def _key(self) -> tuple:
    return (self.name, self.value)

  def to_sympy(self):
    return sp.Eq(sp.Symbol(self.name), self.value.to_sympy(), evaluate=False)


# Construction shorthands used by the rewriting components

def num(value: float) -> NumberNode:
  return NumberNode(value)


def var(name: str) -> VariableNode:
  return VariableNode(name)


def add(left: Node, right: Node) -> BinaryOpNode:
  return BinaryOpNode('+', left, right)


def sub(left: Node, right: Node) -> BinaryOpNode:
  return BinaryOpNode('-', left, right)


def mul(left: Node, right: Node) -> BinaryOpNode:
  return BinaryOpNode('*', left, right)


def div(left: Node, right: Node) -> BinaryOpNode:
  return BinaryOpNode('/', left, right)


def power(base: Node, exponent: Node) -> BinaryOpNode:
  return BinaryOpNode('^', base, exponent)


def neg(operand: Node) -> UnaryMinusNode:
  return UnaryMinusNode(operand)


def call(name: str, *args: Node) -> CallNode:
  return CallNode(name, args)


def is_number(node: Node, value: Optional[float] = None) -> bool:
  if not isinstance(node, NumberNode):
    return False
  return value is None or node.value == value


def is_call(node: Node, *names: str) -> bool:
  return isinstance(node, CallNode) and (not names or node.lowered_name in names)


def is_binary(node: Node, *operators: str) -> bool:
  return isinstance(node, BinaryOpNode) and (not operators or node.operator in operators)
