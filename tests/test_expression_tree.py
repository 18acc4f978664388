import pytest

from symbolic_calculus.expression_tree import (
    NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode, CallNode,
    EquationNode, AssignmentNode, to_latex, are_equivalent, get_variables, contains_marker
)
from symbolic_calculus.expression_tree.core.node import num, var, add, sub, mul, div, power, neg, call
from symbolic_calculus.expression_tree.utils import (
    calculate_tree_depth, substitute, replace_node_in_tree, get_function_names,
    contains_variable, validate_tree_structure, numeric_value
)


def sample_tree():
    # 2*x^2 + 3*x - 1
    return sub(add(mul(num(2), power(var('x'), num(2))), mul(num(3), var('x'))), num(1))


def test_nodes_are_immutable():
    node = add(var('x'), num(1))
    with pytest.raises(AttributeError):
        node.left = num(2)
    with pytest.raises(AttributeError):
        del node.right
    with pytest.raises(AttributeError):
        num(3).value = 4


def test_structural_equality_and_hash():
    first = sample_tree()
    second = sample_tree()
    assert first is not second
    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1
    assert add(var('x'), num(1)) != add(num(1), var('x'))


@pytest.mark.parametrize("value", [True, "3", None, [1]])
def test_number_node_rejects_non_numbers(value):
    with pytest.raises(TypeError):
        NumberNode(value)


def test_children_must_be_nodes():
    with pytest.raises(TypeError):
        BinaryOpNode('+', var('x'), 1)
    with pytest.raises(ValueError):
        BinaryOpNode('%', var('x'), num(1))


@pytest.mark.parametrize("tree, expected", [
    (sample_tree(), "2*x^2 + 3*x - 1"),
    (sub(var('a'), sub(var('b'), var('c'))), "a - (b - c)"),
    (sub(sub(var('a'), var('b')), var('c')), "a - b - c"),
    (div(var('a'), mul(var('b'), var('c'))), "a/(b*c)"),
    (mul(add(var('a'), var('b')), var('c')), "(a + b)*c"),
    (power(var('x'), add(var('n'), num(1))), "x^(n + 1)"),
    (power(neg(var('x')), num(2)), "(-x)^2"),
    (neg(power(var('x'), num(2))), "-x^2"),
    (neg(add(var('x'), num(1))), "-(x + 1)"),
    (power(num(2), power(num(3), num(2))), "2^(3^2)"),
    (call('f', var('x'), var('y')), "f(x, y)"),
    (num(2.5), "2.5"),
    (EquationNode(add(var('x'), num(1)), num(3)), "x + 1 = 3"),
    (AssignmentNode('y', mul(num(2), var('x'))), "y = 2*x"),
])
def test_display_form(tree, expected):
    assert tree.to_string() == expected
    assert str(tree) == expected


def test_size_and_depth():
    tree = sample_tree()
    assert tree.size() == 11
    assert calculate_tree_depth(tree) == 5


def test_with_children_reuses_unchanged_node():
    tree = add(var('x'), num(1))
    assert tree.with_children(tree.left, tree.right) is tree
    assert tree.with_children(var('y'), tree.right) == add(var('y'), num(1))


def test_variables_in_first_seen_order():
    tree = add(mul(var('y'), var('x')), add(var('pi'), var('y')))
    assert get_variables(tree) == ['y', 'x']
    assert get_variables(tree, include_constants=True) == ['y', 'x', 'pi']


def test_tree_queries():
    tree = add(call('sin', var('X')), call('integral', var('x'), var('x')))
    assert contains_variable(tree, 'x')
    assert not contains_variable(tree, 'y')
    assert contains_marker(tree)
    assert get_function_names(tree) == ['sin', 'integral']
    assert validate_tree_structure(tree)
    assert numeric_value(neg(num(4))) == -4.0
    assert numeric_value(var('x')) is None


def test_substitute_and_replace():
    tree = add(var('x'), mul(num(2), var('x')))
    assert substitute(tree, {'x': num(3)}) == add(num(3), mul(num(2), num(3)))
    replaced = replace_node_in_tree(tree, mul(num(2), var('x')), var('z'))
    assert replaced == add(var('x'), var('z'))
    assert tree == add(var('x'), mul(num(2), var('x')))


def test_to_latex():
    assert to_latex(power(var('x'), num(2))) == "x^{2}"
    assert "\\sin" in to_latex(call('sin', var('x')))


def test_are_equivalent():
    assert are_equivalent(mul(num(2), var('x')), add(var('x'), var('x')))
    assert are_equivalent(call('ln', call('abs', var('x'))), call('ln', call('abs', neg(var('x')))))
    assert not are_equivalent(power(var('x'), num(2)), power(var('x'), num(3)))


def test_unary_and_call_node_basics():
    node = UnaryMinusNode(var('x'))
    assert node.children() == (var('x'),)
    function = CallNode('SIN', [var('x')])
    assert function.lowered_name == 'sin'
    assert function.args == (var('x'),)
    assert VariableNode('PI').is_constant
    assert VariableNode('X').matches('x')
