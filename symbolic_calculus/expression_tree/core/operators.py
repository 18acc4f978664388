import numpy as np
from enum import IntEnum


class NodeType(IntEnum):
  NUMBER = 0
  VARIABLE = 1
  BINARY_OP = 2
  UNARY_MINUS = 3
  CALL = 4
  EQUATION = 5
  ASSIGNMENT = 6


class OpType(IntEnum):
  ADD = 0
  SUB = 1
  MUL = 2
  DIV = 3
  POW = 4


BINARY_OP_MAP = {'+': OpType.ADD, '-': OpType.SUB, '*': OpType.MUL, '/': OpType.DIV, '^': OpType.POW}

# Binding strength used by the display form. Atoms bind tightest.
PRECEDENCE_ADDITIVE = 1
PRECEDENCE_MULTIPLICATIVE = 2
PRECEDENCE_UNARY = 3
PRECEDENCE_POWER = 4
PRECEDENCE_ATOM = 5

BINARY_PRECEDENCE = {
  '+': PRECEDENCE_ADDITIVE,
  '-': PRECEDENCE_ADDITIVE,
  '*': PRECEDENCE_MULTIPLICATIVE,
  '/': PRECEDENCE_MULTIPLICATIVE,
  '^': PRECEDENCE_POWER,
}

CONSTANTS = {
  'pi': float(np.pi),
  'e': float(np.e),
}


def apply_binary_op(left: float, right: float, operator: str) -> float:
  """Scalar float64 arithmetic; non-finite results are returned, not raised.

  Exact division by zero is screened by the caller before this is reached.
  """
  with np.errstate(all='ignore'):
    a = np.float64(left)
    b = np.float64(right)
    if operator == '+':
      return float(a + b)
    elif operator == '-':
      return float(a - b)
    elif operator == '*':
      return float(a * b)
    elif operator == '/':
      return float(np.divide(a, b))
    elif operator == '^':
      return float(np.power(a, b))
  raise ValueError(f"Unknown binary operator: {operator!r}")


def format_number(value: float) -> str:
  if np.isnan(value):
    return "nan"
  if np.isinf(value):
    return "inf" if value > 0 else "-inf"
  if value == int(value) and abs(value) < 1e15:
    return str(int(value))
  # Positional digits only: the parser has no exponent syntax
  return np.format_float_positional(value, precision=15, unique=False, fractional=False, trim='-')
