"""
Error taxonomy for the symbolic calculus engine.

Parse problems are collected and reported as lists, numeric anomalies other
than exact division by zero are values rather than errors, and the integrator
never raises for an unmatched shape (it returns the ``integral(...)`` marker).
"""

from typing import List, Sequence


class SymbolicError(Exception):
    """Base class for every error raised by the engine"""


class ParseError(SymbolicError):
    """Malformed source text; carries every message the parser collected"""

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages) if self.messages else "parse error")


class EvaluationError(SymbolicError):
    pass


class DivisionByZeroError(EvaluationError):
    def __init__(self, expression: str = ""):
        self.expression = expression
        message = "Division by zero"
        if expression:
            message += f" in {expression}"
        super().__init__(message)


class UnsupportedOperation(SymbolicError):
    pass


class UnsupportedFunction(UnsupportedOperation):
    """The differentiator has no rule for this function (or its arity)"""

    def __init__(self, function_name: str, reason: str = ""):
        self.function_name = function_name
        message = f"Unsupported function for differentiation: {function_name}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
