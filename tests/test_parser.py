import pytest

from symbolic_calculus.errors import ParseError
from symbolic_calculus.expression_tree import (
    NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode, CallNode, EquationNode, AssignmentNode
)
from symbolic_calculus.parser import parse, parse_or_raise, tokenize


def parsed_tree(text):
    result = parse(text)
    assert result.ok, result.errors
    return result.tree


@pytest.mark.parametrize("text", [
    "2*x^2 + 3*x - 1",
    "a - (b - c)",
    "a/(b*c)",
    "(a + b)*c",
    "sin(x)^2 + cos(x)^2",
    "-x^2",
    "(-x)^2",
    "x^(n + 1)",
    "max(a, b, 3)",
    "y = 2*x + 1",
    "x^2 = 4",
    "ln(abs(x))",
])
def test_display_round_trip(text):
    tree = parsed_tree(text)
    assert tree.to_string() == text
    assert parsed_tree(tree.to_string()) == tree


def test_precedence_and_associativity():
    tree = parsed_tree("1 + 2*3^2")
    assert isinstance(tree, BinaryOpNode) and tree.operator == '+'
    assert tree.right.operator == '*'
    assert tree.right.right.operator == '^'

    left_assoc = parsed_tree("8 - 3 - 2")
    assert left_assoc.left == BinaryOpNode('-', NumberNode(8), NumberNode(3))

    right_assoc = parsed_tree("2^3^2")
    assert right_assoc.right == BinaryOpNode('^', NumberNode(3), NumberNode(2))
    assert right_assoc.to_string() == "2^(3^2)"


def test_unary_operators():
    assert parsed_tree("-x") == UnaryMinusNode(VariableNode('x'))
    assert parsed_tree("+x") == VariableNode('x')
    assert parsed_tree("--x") == UnaryMinusNode(UnaryMinusNode(VariableNode('x')))
    # Exponent binds tighter than unary minus
    assert parsed_tree("-x^2") == UnaryMinusNode(BinaryOpNode('^', VariableNode('x'), NumberNode(2)))
    assert parsed_tree("2^-1") == BinaryOpNode('^', NumberNode(2), UnaryMinusNode(NumberNode(1)))


@pytest.mark.parametrize("text, value", [("42", 42.0), ("3.25", 3.25), (".5", 0.5), ("7.", 7.0)])
def test_numbers(text, value):
    assert parsed_tree(text) == NumberNode(value)


def test_calls():
    assert parsed_tree("f()") == CallNode('f', [])
    tree = parsed_tree("npv(0.1, 100, -50)")
    assert isinstance(tree, CallNode)
    assert len(tree.args) == 3


def test_statements():
    assignment = parsed_tree("y = x + 1")
    assert isinstance(assignment, AssignmentNode)
    assert assignment.name == 'y'

    equation = parsed_tree("x + 1 = 3")
    assert isinstance(equation, EquationNode)

    # Constants cannot be assignment targets
    assert isinstance(parsed_tree("pi = 3"), EquationNode)


def test_variables_listed_in_order():
    assert parse("x*y + x + pi").variables == ('x', 'y')
    assert parse("y = a*x + e").variables == ('a', 'x')


def test_tokenize_positions():
    tokens, errors = tokenize("sin(x) + 2")
    assert errors == []
    assert [(t.kind, t.value, t.position) for t in tokens] == [
        ('IDENTIFIER', 'sin', 0), ('LPAREN', '(', 3), ('IDENTIFIER', 'x', 4),
        ('RPAREN', ')', 5), ('OPERATOR', '+', 7), ('NUMBER', '2', 9),
    ]


@pytest.mark.parametrize("text, message", [
    ("2 + $", "Unknown character '$' at position 4"),
    ("(1 + 2", "Unmatched '(' at position 0"),
    ("1 + 2)", "Unmatched ')' at position 5"),
    ("", "Cannot parse an empty expression."),
    ("   ", "Cannot parse an empty expression."),
    ("1 2", 'Unexpected token "2" at position 2 after parsing completed.'),
])
def test_error_messages(text, message):
    result = parse(text)
    assert not result.ok
    assert result.tree is None
    assert message in result.errors


@pytest.mark.parametrize("text", ["1 +", "2 * * 3", "f(1,", "x = = 2", "()"])
def test_malformed_input_never_raises(text):
    result = parse(text)
    assert not result.ok
    assert result.errors
    assert all("position" in message for message in result.errors)


def test_end_of_input_message():
    result = parse("1 +")
    assert result.errors[0].startswith("Unexpected end of input at position 3")


def test_all_lexical_errors_are_collected():
    result = parse("2 # 3 @ (")
    assert len(result.errors) == 3


def test_parse_or_raise():
    assert parse_or_raise("x + 1") == BinaryOpNode('+', VariableNode('x'), NumberNode(1))
    with pytest.raises(ParseError) as info:
        parse_or_raise("(x")
    assert info.value.messages == ["Unmatched '(' at position 0"]


@pytest.mark.parametrize("value, text", [
    (1e20, "100000000000000000000"),
    (1e-7, "0.0000001"),
    (123456.789, "123456.789"),
])
def test_number_display_parses_back(value, text):
    node = NumberNode(value)
    assert node.to_string() == text
    assert parsed_tree(node.to_string()) == node
