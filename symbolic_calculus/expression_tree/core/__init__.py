"""Core expression tree components."""

from .node import (
  Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
  CallNode, EquationNode, AssignmentNode,
  num, var, add, sub, mul, div, power, neg, call,
  is_number, is_call, is_binary
)
from .operators import (
  NodeType, OpType, BINARY_OP_MAP, CONSTANTS,
  apply_binary_op, format_number
)

__all__ = [
  'Node', 'NumberNode', 'VariableNode', 'BinaryOpNode', 'UnaryMinusNode',
  'CallNode', 'EquationNode', 'AssignmentNode',
  'num', 'var', 'add', 'sub', 'mul', 'div', 'power', 'neg', 'call',
  'is_number', 'is_call', 'is_binary',
  'NodeType', 'OpType', 'BINARY_OP_MAP', 'CONSTANTS',
  'apply_binary_op', 'format_number'
]
