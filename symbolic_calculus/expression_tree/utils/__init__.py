"""Utilities for expression trees."""

from .sympy_utils import to_latex, are_equivalent
from .tree_utils import (
    get_all_nodes, calculate_tree_depth, get_variables, get_function_names,
    contains_variable, contains_marker, transform_bottom_up, substitute,
    replace_node_in_tree, validate_tree_structure, numeric_value, MARKER_FUNCTION
)

__all__ = [
    'to_latex', 'are_equivalent',
    'get_all_nodes', 'calculate_tree_depth', 'get_variables', 'get_function_names',
    'contains_variable', 'contains_marker', 'transform_bottom_up', 'substitute',
    'replace_node_in_tree', 'validate_tree_structure', 'numeric_value', 'MARKER_FUNCTION'
]
