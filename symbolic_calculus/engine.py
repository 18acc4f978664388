"""
Engine facade.

Runs any operation from source text and returns one result shape
(steps, final answer, confidence) whether the answer came from the local
rule engine or from an optional remote solver. Component errors never
escape: they become ``ok=False`` results.
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .config import EngineConfig, DEFAULT_CONFIG
from .differentiator import Differentiator
from .errors import SymbolicError, ParseError
from .evaluator import EvaluationScope, Evaluator
from .expression_tree.core.node import Node, NumberNode, num
from .expression_tree.core.operators import format_number
from .expression_tree.utils.sympy_utils import to_latex
from .integrator import DefiniteIntegral, definite_integral, numeric_integral, Integrator
from .limits import numeric_limit
from .logging_system import log_info, log_warning, log_milestone, set_log_level
from .numeric_analysis import AnalysisResult, FunctionAnalyzer
from .parser import parse, parse_or_raise
from .plugins import SimplificationPlugin, DEFAULT_PLUGINS
from .series import taylor_polynomial
from .simplifier import Simplifier
from .step_tracker import RewriteStep, StepTracker, format_steps

RemoteSolver = Callable[[str, str, Dict[str, Any]], Any]

NUMERIC_FALLBACK_CONFIDENCE = 0.9


@dataclass(frozen=True)
class SolutionResult:
    operation: str
    original: str
    ok: bool
    result: Any = None
    final_answer: str = ""
    latex: str = ""
    steps: Tuple[RewriteStep, ...] = ()
    confidence: float = 0.0
    errors: Tuple[str, ...] = ()
    source: str = 'local'


def _failure(operation: str, original: str, errors: Iterable[str], source: str = 'local') -> SolutionResult:
    return SolutionResult(operation, original, False, errors=tuple(errors), source=source)


def _latex(node: Node) -> str:
    try:
        return to_latex(node)
    except (TypeError, ValueError, AttributeError) as e:
        log_warning(f"LaTeX rendering failed for {node.to_string()}: {e}")
        return ""


def _format_value(value: Any) -> str:
    return format_number(value) if isinstance(value, float) else str(value)


class SymbolicEngine:
    """
    Text-in, SolutionResult-out entry point over the parser, evaluator,
    differentiator, integrator, simplifier and analyzers.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 plugins: Optional[Iterable[SimplificationPlugin]] = None,
                 remote_solver: Optional[RemoteSolver] = None):
        self.config = config or DEFAULT_CONFIG
        set_log_level(self.config.log_level)
        self.plugins = tuple(DEFAULT_PLUGINS if plugins is None else plugins)
        self.simplifier = Simplifier(self.plugins, self.config.max_simplify_passes)
        self.analyzer = FunctionAnalyzer(self.config)
        self.remote_solver = remote_solver
        self._operations: Dict[str, Callable[..., SolutionResult]] = {
            'evaluate': self.evaluate,
            'simplify': self.simplify,
            'differentiate': self.differentiate,
            'integrate': self.integrate,
            'definite_integral': self.definite_integral,
            'analyze': self.analyze,
            'limit': self.limit,
            'series': self.series,
        }

    @property
    def operations(self) -> Tuple[str, ...]:
        return tuple(self._operations)

    def _scope(self, variables: Optional[Mapping[str, float]] = None) -> EvaluationScope:
        return EvaluationScope(variables or {}, angle_mode=self.config.angle_mode,
                               precision=self.config.precision)

    def _run(self, operation: str, text: str, body: Callable[[Node, StepTracker], SolutionResult]) -> SolutionResult:
        parsed = parse(text)
        if not parsed.ok:
            return _failure(operation, text, parsed.errors)
        tracker = StepTracker()
        try:
            result = body(parsed.tree, tracker)
        except (SymbolicError, ValueError, ArithmeticError) as e:
            log_warning(f"{operation} of {text!r} failed: {e}")
            return SolutionResult(operation, text, False, steps=tracker.steps, errors=(str(e),))
        log_milestone(f"{operation}: {text} => {result.final_answer}")
        return result

    def _symbolic_result(self, operation: str, text: str, node: Node, tracker: StepTracker) -> SolutionResult:
        return SolutionResult(operation, text, True, result=node, final_answer=node.to_string(),
                              latex=_latex(node), steps=tracker.steps,
                              confidence=tracker.overall_confidence())

    # --- Operations ---

    def evaluate(self, text: str, variables: Optional[Mapping[str, float]] = None) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            evaluator = Evaluator(self._scope(variables))
            partial = evaluator.evaluate_partial(tree)
            value = evaluator.finalize(partial)
            after = num(value) if isinstance(value, float) else partial
            tracker.record('evaluation', tree, after, 'evaluation', "Evaluate with the current scope")
            return SolutionResult('evaluate', text, True, result=value, final_answer=_format_value(value),
                                  latex=_latex(after), steps=tracker.steps, confidence=1.0)

        return self._run('evaluate', text, body)

    def simplify(self, text: str) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            report = self.simplifier.simplify_with_report(tree, tracker)
            return self._symbolic_result('simplify', text, report.result, tracker)

        return self._run('simplify', text, body)

    def differentiate(self, text: str, variable: str = 'x', order: int = 1) -> SolutionResult:
        if not isinstance(order, int) or order < 1:
            return _failure('differentiate', text, ("order must be a positive integer",))

        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            differentiator = Differentiator(variable, tracker)
            current = tree
            for _ in range(order):
                current = self.simplifier.simplify(differentiator.differentiate(current), tracker)
            return self._symbolic_result('differentiate', text, current, tracker)

        return self._run('differentiate', text, body)

    def integrate(self, text: str, variable: str = 'x') -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            antiderivative = Integrator(variable, tracker).integrate(tree)
            simplified = self.simplifier.simplify(antiderivative, tracker)
            return self._symbolic_result('integrate', text, simplified, tracker)

        return self._run('integrate', text, body)

    def definite_integral(self, text: str, lower: float, upper: float, variable: str = 'x',
                          variables: Optional[Mapping[str, float]] = None) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            scope = self._scope(variables)
            outcome = definite_integral(tree, variable, lower, upper, scope, tracker)
            confidence = tracker.overall_confidence()

            if not outcome.computable and self.config.numeric_integration_fallback:
                log_warning(f"Falling back to quadrature for {text!r}: {outcome.message}")
                numeric = numeric_integral(tree, variable, lower, upper, scope)
                if numeric.computable:
                    tracker.record('definite_integration', tree, num(numeric.value), 'numeric_quadrature',
                                   numeric.message, NUMERIC_FALLBACK_CONFIDENCE)
                    outcome = replace(numeric, antiderivative=outcome.antiderivative)
                    confidence = NUMERIC_FALLBACK_CONFIDENCE

            if not outcome.computable:
                return SolutionResult('definite_integral', text, False, result=outcome,
                                      steps=tracker.steps, errors=(outcome.message,))
            return SolutionResult('definite_integral', text, True, result=outcome,
                                  final_answer=format_number(outcome.value),
                                  latex=_latex(NumberNode(outcome.value)),
                                  steps=tracker.steps, confidence=confidence)

        return self._run('definite_integral', text, body)

    def analyze(self, text: str, variable: str = 'x', x_min: float = -10.0, x_max: float = 10.0,
                resolution: Optional[int] = None, include_derivative: bool = False,
                variables: Optional[Mapping[str, float]] = None) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            analysis = self.analyzer.analyze(tree, variable, x_min, x_max, resolution,
                                             self._scope(variables), include_derivative)
            return SolutionResult('analyze', text, True, result=analysis,
                                  final_answer=_summarize_analysis(analysis),
                                  latex=_latex(tree), confidence=1.0)

        return self._run('analyze', text, body)

    def limit(self, text: str, approaching: float, variable: str = 'x',
              variables: Optional[Mapping[str, float]] = None) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            outcome = numeric_limit(tree, variable, approaching, self._scope(variables))
            latex = _latex(NumberNode(outcome.value)) if outcome.value is not None else ""
            return SolutionResult('limit', text, True, result=outcome, final_answer=outcome.message,
                                  latex=latex, confidence=1.0 if outcome.exists else 0.5)

        return self._run('limit', text, body)

    def series(self, text: str, variable: str = 'x', center: float = 0.0, order: int = 5) -> SolutionResult:
        def body(tree: Node, tracker: StepTracker) -> SolutionResult:
            polynomial = taylor_polynomial(tree, variable, center, order, tracker)
            return self._symbolic_result('series', text, polynomial, tracker)

        return self._run('series', text, body)

    # --- Dispatch with optional remote solver ---

    def solve(self, operation: str, text: str, **kwargs) -> SolutionResult:
        """
        Run ``operation`` on ``text``. When a remote solver is configured it is
        tried first with ``config.remote_timeout``; timeouts, exceptions and
        malformed answers fall back to the local engine.
        """
        handler = self._operations.get(operation)
        if handler is None:
            return _failure(operation, text, (f"Unknown operation: {operation}",))

        if self.remote_solver is not None:
            remote = self._try_remote(operation, text, kwargs)
            if remote is not None:
                return remote

        try:
            return handler(text, **kwargs)
        except TypeError as e:
            return _failure(operation, text, (f"Invalid arguments for {operation}: {e}",))

    def _try_remote(self, operation: str, text: str, options: Dict[str, Any]) -> Optional[SolutionResult]:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.remote_solver, operation, text, dict(options))
        try:
            answer = future.result(timeout=self.config.remote_timeout)
        except FuturesTimeout:
            log_warning(f"Remote solver timed out after {self.config.remote_timeout}s; using local engine")
            return None
        except Exception as e:
            log_warning(f"Remote solver failed ({type(e).__name__}: {e}); using local engine")
            return None
        finally:
            executor.shutdown(wait=False)

        result = _coerce_remote_answer(operation, text, answer)
        if result is None:
            log_warning("Remote solver returned a malformed answer; using local engine")
        else:
            log_info(f"Using remote answer for {operation} of {text!r}")
        return result


def _coerce_remote_answer(operation: str, text: str, answer: Any) -> Optional[SolutionResult]:
    """Accept a SolutionResult or a mapping with final_answer/steps/confidence"""
    if isinstance(answer, SolutionResult):
        return replace(answer, source='remote') if answer.ok else None
    if not isinstance(answer, Mapping):
        return None

    final_answer = answer.get('final_answer')
    confidence = answer.get('confidence', 1.0)
    if not isinstance(final_answer, str) or not final_answer:
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0.0 <= confidence <= 1.0:
        return None

    tracker = StepTracker()
    try:
        for step in answer.get('steps', ()):
            tracker.record(step.get('operation', operation), parse_or_raise(step['before']),
                           parse_or_raise(step['after']), step.get('rule', 'remote'),
                           step.get('explanation', ''), float(step.get('confidence', confidence)))
    except (ParseError, KeyError, TypeError, AttributeError, ValueError):
        return None

    parsed = parse(final_answer)
    latex = _latex(parsed.tree) if parsed.ok else ""
    return SolutionResult(operation, text, True, result=parsed.tree if parsed.ok else final_answer,
                          final_answer=final_answer, latex=latex, steps=tracker.steps,
                          confidence=float(confidence), source='remote')


def _summarize_analysis(analysis: AnalysisResult) -> str:
    parts = []
    if analysis.zeros:
        parts.append("zeros: " + ", ".join(f"{z:.6g}" for z in analysis.zeros))
    if analysis.critical_points:
        parts.append("; ".join(point.description for point in analysis.critical_points))
    if analysis.asymptotes:
        parts.append("asymptotes: " + ", ".join(a.equation for a in analysis.asymptotes))
    if analysis.extrema:
        parts.append("; ".join(e.description for e in analysis.extrema))
    return " | ".join(parts) if parts else "no features found"


def generate_proof(result: SolutionResult) -> str:
    """Human readable transcript of a result and its steps"""
    out = f"Original: {result.original}\n"
    if result.steps:
        out += "\n--- Step-by-step Explanation ---\n"
        out += format_steps(result.steps)
    else:
        out += "\n(No steps recorded)"
    if result.final_answer:
        out += f"\n\nFinal Result: {result.final_answer}"
    if isinstance(result.result, DefiniteIntegral) and result.result.value is not None:
        out += f"\n\nDefinite Integral ({result.result.method}): {format_number(result.result.value)}"
    if result.errors:
        out += "\n\nErrors:\n" + "\n".join(f"- {error}" for error in result.errors)
    out += f"\n\nConfidence: {result.confidence:.2f} (source: {result.source})"
    return out
