import sympy as sp
import numpy as np
from typing import Sequence

from ..core.node import Node

DEFAULT_SAMPLE_POINTS = (-2.7, -1.3, -0.4, 0.35, 0.9, 1.7, 3.1)


def to_latex(node: Node) -> str:
  """LaTeX rendering of an expression tree"""
  return sp.latex(node.to_sympy())


def are_equivalent(first: Node, second: Node,
                   sample_points: Sequence[float] = DEFAULT_SAMPLE_POINTS,
                   tolerance: float = 1e-8) -> bool:
  """
  Check that two trees denote the same function.

  SymPy simplification is tried first; when it cannot close the difference
  (abs and sign often defeat it) both sides are compared numerically at the
  sample points where both are finite.
  """
  a = first.to_sympy()
  b = second.to_sympy()
  difference = sp.simplify(a - b)
  if difference == 0:
    return True

  symbols = sorted(difference.free_symbols | a.free_symbols | b.free_symbols, key=lambda s: s.name)
  if not symbols:
    value = complex(sp.N(difference))
    return abs(value) < tolerance

  f_a = sp.lambdify(symbols, a, modules='numpy')
  f_b = sp.lambdify(symbols, b, modules='numpy')
  compared = 0
  with np.errstate(all='ignore'):
    for point in sample_points:
      args = [point] * len(symbols)
      value_a = complex(f_a(*args))
      value_b = complex(f_b(*args))
      if not (np.isfinite(value_a) and np.isfinite(value_b)):
        continue
      compared += 1
      if abs(value_a - value_b) > tolerance * max(1.0, abs(value_a)):
        return False
  return compared > 0
