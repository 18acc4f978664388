"""
Tree Utility Functions

Traversal and query helpers shared by the parser, rewriters and analyzer.
All helpers are read-only: replacement functions return a new tree and leave
the input untouched.
"""

from typing import List, Set, Optional, Callable, Mapping

from ..core.node import (
    Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
    CallNode, EquationNode, AssignmentNode
)

MARKER_FUNCTION = 'integral'


def get_all_nodes(node: Node, traversal_order: str = 'breadth_first') -> List[Node]:
    """
    Get all nodes in the tree using specified traversal order.

    Args:
        node: Root node of the tree
        traversal_order: 'breadth_first' (default) or 'depth_first'

    Returns:
        List of all nodes in the tree
    """
    if traversal_order == 'breadth_first':
        return _breadth_first_traversal(node)
    elif traversal_order == 'depth_first':
        return _depth_first_traversal(node)
    else:
        raise ValueError(f"Invalid traversal_order: {traversal_order}")


def _breadth_first_traversal(node: Node) -> List[Node]:
    nodes_to_visit = [node]
    all_nodes = []
    index = 0

    while index < len(nodes_to_visit):
        current_node = nodes_to_visit[index]
        index += 1
        all_nodes.append(current_node)
        nodes_to_visit.extend(current_node.children())

    return all_nodes


def _depth_first_traversal(node: Node) -> List[Node]:
    nodes = [node]
    for child in node.children():
        nodes.extend(_depth_first_traversal(child))
    return nodes


def calculate_tree_depth(node: Node) -> int:
    """Maximum depth of the tree (leaf nodes have depth 1)"""
    children = node.children()
    if not children:
        return 1
    return 1 + max(calculate_tree_depth(child) for child in children)


def get_variables(node: Node, include_constants: bool = False) -> List[str]:
    """
    Distinct variable names in first-seen (left to right) order.

    Constants pi and e are left out unless include_constants is set. The
    target of an assignment is not a reference and is never listed.
    """
    seen: Set[str] = set()
    names: List[str] = []
    for current in get_all_nodes(node, 'depth_first'):
        if not isinstance(current, VariableNode):
            continue
        if not include_constants and current.is_constant:
            continue
        if current.name not in seen:
            seen.add(current.name)
            names.append(current.name)
    return names


def get_function_names(node: Node) -> List[str]:
    seen: Set[str] = set()
    names: List[str] = []
    for current in get_all_nodes(node, 'depth_first'):
        if isinstance(current, CallNode) and current.name not in seen:
            seen.add(current.name)
            names.append(current.name)
    return names


def contains_variable(node: Node, variable: str) -> bool:
    """Case-insensitive check whether ``variable`` occurs anywhere in the tree"""
    lowered = variable.lower()
    return any(isinstance(n, VariableNode) and n.name.lower() == lowered
               for n in get_all_nodes(node, 'depth_first'))


def contains_marker(node: Node) -> bool:
    """True when the tree holds an unevaluated ``integral(...)`` marker"""
    return any(isinstance(n, CallNode) and n.lowered_name == MARKER_FUNCTION
               for n in get_all_nodes(node, 'depth_first'))


def transform_bottom_up(node: Node, func: Callable[[Node], Node]) -> Node:
    """Rebuild the tree applying ``func`` to every node after its children"""
    children = node.children()
    if children:
        node = node.with_children(*(transform_bottom_up(child, func) for child in children))
    return func(node)


def substitute(node: Node, bindings: Mapping[str, Node]) -> Node:
    """Replace variables (case-insensitive) by the given subtrees"""
    lowered = {name.lower(): value for name, value in bindings.items()}

    def replace(current: Node) -> Node:
        if isinstance(current, VariableNode):
            return lowered.get(current.name.lower(), current)
        return current

    return transform_bottom_up(node, replace)


def replace_node_in_tree(root: Node, target: Node, replacement: Node) -> Node:
    """Return a copy of ``root`` with every subtree equal to ``target`` replaced"""
    return transform_bottom_up(root, lambda current: replacement if current == target else current)


def validate_tree_structure(node: Node) -> bool:
    """
    Validate that the tree is made only of the known node kinds.

    Construction already checks children, so this mostly guards against
    foreign objects produced by plugins.
    """
    if isinstance(node, (NumberNode, VariableNode)):
        return True
    elif isinstance(node, (BinaryOpNode, UnaryMinusNode, CallNode, EquationNode, AssignmentNode)):
        return all(validate_tree_structure(child) for child in node.children())
    return False


def numeric_value(node: Node) -> Optional[float]:
    if isinstance(node, NumberNode):
        return node.value
    if isinstance(node, UnaryMinusNode) and isinstance(node.operand, NumberNode):
        return -node.operand.value
    return None
