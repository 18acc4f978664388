"""Expression Tree Module

Immutable expression trees for the symbolic calculus engine.
"""

from .core.node import (
    Node,
    NumberNode,
    VariableNode,
    BinaryOpNode,
    UnaryMinusNode,
    CallNode,
    EquationNode,
    AssignmentNode
)
from .core.operators import (
    NodeType,
    OpType,
    BINARY_OP_MAP,
    CONSTANTS,
    format_number
)
from .utils import to_latex, are_equivalent, get_variables, contains_marker

__all__ = [
    "Node", "NumberNode", "VariableNode", "BinaryOpNode", "UnaryMinusNode",
    "CallNode", "EquationNode", "AssignmentNode",
    "NodeType", "OpType", "BINARY_OP_MAP", "CONSTANTS", "format_number",
    "to_latex", "are_equivalent", "get_variables", "contains_marker"
]
