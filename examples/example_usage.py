import sys
import os
# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import math

from symbolic_calculus import EngineConfig, LogLevel, SymbolicEngine, generate_proof


def show(result):
  """Print a result the way a worksheet would"""
  print("=" * 60)
  print(f"{result.operation}: {result.original}")
  print("=" * 60)
  print(generate_proof(result))
  if result.latex:
    print(f"LaTeX: {result.latex}")
  print()


def main():
  engine = SymbolicEngine(EngineConfig(log_level=LogLevel.MINIMAL))

  # Derivatives and antiderivatives with step-by-step explanations
  show(engine.differentiate("sin(x)^2 + x*exp(2*x)"))
  show(engine.differentiate("x^4 - 3*x^2", order=2))
  show(engine.integrate("3*x^2 + cos(x)"))

  # Falls back to quadrature when no closed form is found
  show(engine.definite_integral("x*sin(x)", 0, math.pi))

  # Simplification with the default trig and log/exp plugins
  show(engine.simplify("ln(exp(x)) + sin(x)^2 + cos(x)^2"))

  # Numeric evaluation, including the finance functions
  show(engine.evaluate("fv(1000, 0.05, 10)"))
  show(engine.evaluate("a*x^2 + b", {"a": 2, "x": 3, "b": 1}))

  # Limits and Taylor polynomials
  show(engine.limit("sin(x)/x", 0))
  show(engine.series("exp(x)", order=4))

  # Graph analysis
  analysis = engine.analyze("x^3 - 3*x", x_min=-3, x_max=3, include_derivative=True)
  print(analysis.final_answer)
  if analysis.ok and analysis.result.derivative is not None:
    print(f"Derivative zeros: {analysis.result.derivative.zeros}")


if __name__ == "__main__":
  main()
