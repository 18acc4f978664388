"""Symbolic Calculus Package

Parsing, evaluation, differentiation, integration, simplification and
numeric analysis of single-line mathematical expressions, with a step trace
for every rewrite.
"""

from .expression_tree import (
  Node, NumberNode, VariableNode, BinaryOpNode, UnaryMinusNode,
  CallNode, EquationNode, AssignmentNode, to_latex, are_equivalent
)
from .errors import (
  SymbolicError, ParseError, EvaluationError, DivisionByZeroError,
  UnsupportedOperation, UnsupportedFunction
)
from .config import EngineConfig, DEFAULT_CONFIG
from .logging_system import LogLevel, configure_logging, set_log_level, get_logger
from .parser import ParseResult, parse, parse_or_raise
from .evaluator import EvaluationScope, evaluate, evaluate_partial, evaluate_statement
from .step_tracker import RewriteStep, StepTracker, format_steps
from .differentiator import differentiate, differentiate_n, gradient
from .integrator import DefiniteIntegral, integrate, definite_integral, numeric_integral
from .simplifier import Simplifier, SimplificationReport, simplify, simplify_with_report
from .plugins import SimplificationPlugin, TRIG_PLUGIN, LOG_EXP_PLUGIN, DEFAULT_PLUGINS
from .numeric_analysis import FunctionAnalyzer, AnalysisResult, analyze_function
from .limits import LimitResult, numeric_limit
from .series import taylor_polynomial
from .engine import SymbolicEngine, SolutionResult, generate_proof

__version__ = "0.1.0"
__all__ = [
  "Node", "NumberNode", "VariableNode", "BinaryOpNode", "UnaryMinusNode",
  "CallNode", "EquationNode", "AssignmentNode", "to_latex", "are_equivalent",
  "SymbolicError", "ParseError", "EvaluationError", "DivisionByZeroError",
  "UnsupportedOperation", "UnsupportedFunction",
  "EngineConfig", "DEFAULT_CONFIG",
  "LogLevel", "configure_logging", "set_log_level", "get_logger",
  "ParseResult", "parse", "parse_or_raise",
  "EvaluationScope", "evaluate", "evaluate_partial", "evaluate_statement",
  "RewriteStep", "StepTracker", "format_steps",
  "differentiate", "differentiate_n", "gradient",
  "DefiniteIntegral", "integrate", "definite_integral", "numeric_integral",
  "Simplifier", "SimplificationReport", "simplify", "simplify_with_report",
  "SimplificationPlugin", "TRIG_PLUGIN", "LOG_EXP_PLUGIN", "DEFAULT_PLUGINS",
  "FunctionAnalyzer", "AnalysisResult", "analyze_function",
  "LimitResult", "numeric_limit",
  "taylor_polynomial",
  "SymbolicEngine", "SolutionResult", "generate_proof"
]
