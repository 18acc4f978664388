"""
Expression parser.

Turns source text into an expression tree by precedence climbing:

    statement      -> additive ['=' additive]
    additive       -> multiplicative (('+'|'-') multiplicative)*
    multiplicative -> unary (('*'|'/') unary)*
    unary          -> ('-'|'+') unary | power
    power          -> factor ['^' unary]
    factor         -> number | '(' additive ')' | identifier ['(' args ')']

Malformed input never raises from ``parse``; problems are returned as
messages that carry the character position.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import ParseError
from .expression_tree.core.node import (
    Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
    CallNode, EquationNode, AssignmentNode
)
from .expression_tree.utils.tree_utils import get_variables
from .logging_system import log_debug

TOKEN_PATTERN = re.compile(r"""
    (?P<WHITESPACE>\s+)
  | (?P<NUMBER>\d+(?:\.\d*)?|\.\d+)
  | (?P<IDENTIFIER>[a-zA-Z_]\w*)
  | (?P<OPERATOR>[+\-*/^])
  | (?P<EQUALS>=)
  | (?P<LPAREN>\()
  | (?P<RPAREN>\))
  | (?P<COMMA>,)
""", re.VERBOSE)


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    position: int


@dataclass(frozen=True)
class ParseResult:
    tree: Optional[Node]
    variables: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors and self.tree is not None


class _GrammarError(Exception):
    pass


def tokenize(text: str) -> Tuple[List[Token], List[str]]:
    """Split text into tokens; unknown characters are reported and skipped"""
    tokens: List[Token] = []
    errors: List[str] = []
    position = 0

    while position < len(text):
        match = TOKEN_PATTERN.match(text, position)
        if match is None:
            errors.append(f"Unknown character '{text[position]}' at position {position}")
            position += 1
            continue
        kind = match.lastgroup
        if kind != 'WHITESPACE':
            tokens.append(Token(kind, match.group(), position))
        position = match.end()

    return tokens, errors


def _check_parentheses(tokens: List[Token]) -> List[str]:
    errors = []
    open_positions = []
    for token in tokens:
        if token.kind == 'LPAREN':
            open_positions.append(token.position)
        elif token.kind == 'RPAREN':
            if open_positions:
                open_positions.pop()
            else:
                errors.append(f"Unmatched ')' at position {token.position}")
    for position in open_positions:
        errors.append(f"Unmatched '(' at position {position}")
    return errors


class _Parser:
    def __init__(self, tokens: List[Token], text_length: int):
        self.tokens = tokens
        self.index = 0
        self.text_length = text_length

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def check(self, kind: str, value: Optional[str] = None) -> bool:
        token = self.peek()
        return token is not None and token.kind == kind and (value is None or token.value == value)

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        token = self.peek()
        expected = kind + (f" ('{value}')" if value else "")
        if token is None:
            raise _GrammarError(f"Unexpected end of input at position {self.text_length}. Expected {expected}.")
        if token.kind != kind or (value is not None and token.value != value):
            raise _GrammarError(f"Unexpected token \"{token.value}\" at position {token.position}. Expected {expected}.")
        return self.advance()

    def parse_statement(self) -> Node:
        left = self.parse_additive()
        if self.check('EQUALS'):
            self.advance()
            right = self.parse_additive()
            if isinstance(left, VariableNode) and not left.is_constant:
                left = AssignmentNode(left.name, right)
            else:
                left = EquationNode(left, right)

        token = self.peek()
        if token is not None:
            raise _GrammarError(f"Unexpected token \"{token.value}\" at position {token.position} after parsing completed.")
        return left

    def parse_additive(self) -> Node:
        node = self.parse_multiplicative()
        while self.check('OPERATOR', '+') or self.check('OPERATOR', '-'):
            operator = self.advance().value
            node = BinaryOpNode(operator, node, self.parse_multiplicative())
        return node

    def parse_multiplicative(self) -> Node:
        node = self.parse_unary()
        while self.check('OPERATOR', '*') or self.check('OPERATOR', '/'):
            operator = self.advance().value
            node = BinaryOpNode(operator, node, self.parse_unary())
        return node

    def parse_unary(self) -> Node:
        if self.check('OPERATOR', '-'):
            self.advance()
            return UnaryMinusNode(self.parse_unary())
        if self.check('OPERATOR', '+'):
            self.advance()
            return self.parse_unary()
        return self.parse_power()

    def parse_power(self) -> Node:
        base = self.parse_factor()
        if self.check('OPERATOR', '^'):
            self.advance()
            # Exponent goes back through unary so that 2^3^2 groups to the right
            return BinaryOpNode('^', base, self.parse_unary())
        return base

    def parse_factor(self) -> Node:
        token = self.peek()
        if token is None:
            raise _GrammarError(
                f"Unexpected end of input at position {self.text_length}, expected number, variable, or '('."
            )

        if token.kind == 'NUMBER':
            self.advance()
            return NumberNode(float(token.value))

        if token.kind == 'LPAREN':
            self.advance()
            inner = self.parse_additive()
            self.expect('RPAREN')
            return inner

        if token.kind == 'IDENTIFIER':
            self.advance()
            if self.check('LPAREN'):
                self.advance()
                return CallNode(token.value, self.parse_arguments())
            return VariableNode(token.value)

        raise _GrammarError(
            f"Unexpected token \"{token.value}\" at position {token.position}. Expected number, variable, or '('."
        )

    def parse_arguments(self) -> List[Node]:
        arguments: List[Node] = []
        if self.check('RPAREN'):
            self.advance()
            return arguments
        arguments.append(self.parse_additive())
        while self.check('COMMA'):
            self.advance()
            arguments.append(self.parse_additive())
        self.expect('RPAREN')
        return arguments


def parse(source_text: str) -> ParseResult:
    """
    Parse source text into an expression tree.

    Returns:
        ParseResult with the tree and the variables it references, or with
        ``tree=None`` and the collected error messages.
    """
    if not isinstance(source_text, str):
        return ParseResult(None, (), (f"Expected source text, got {type(source_text).__name__}",))

    tokens, errors = tokenize(source_text)
    errors.extend(_check_parentheses(tokens))
    if not errors and not tokens:
        errors.append("Cannot parse an empty expression.")
    if errors:
        log_debug(f"Parse of {source_text!r} failed: {'; '.join(errors)}")
        return ParseResult(None, (), tuple(errors))

    try:
        tree = _Parser(tokens, len(source_text)).parse_statement()
    except _GrammarError as e:
        log_debug(f"Parse of {source_text!r} failed: {e}")
        return ParseResult(None, (), (str(e),))

    return ParseResult(tree, tuple(get_variables(tree)), ())


def parse_or_raise(source_text: str) -> Node:
    result = parse(source_text)
    if not result.ok:
        raise ParseError(result.errors)
    return result.tree
