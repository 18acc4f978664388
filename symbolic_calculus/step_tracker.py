"""
Step tracking for rewrites.

A StepTracker is an append-only log owned by a single call: the
differentiator, integrator and simplifier record each rule application so the
facade can rebuild a human readable explanation afterwards. Trees are
immutable, so the before/after snapshots never alias later changes.
"""

from dataclasses import dataclass
from typing import List, Iterator, Tuple, Iterable

from .expression_tree.core.node import Node
from .logging_system import log_step


@dataclass(frozen=True)
class RewriteStep:
    sequence_number: int
    operation_kind: str     # 'differentiation', 'integration', 'simplification', ...
    before: Node
    after: Node
    rule_name: str
    explanation: str
    confidence: float = 1.0


class StepTracker:
    """Ordered log of RewriteSteps with strictly increasing sequence numbers"""

    def __init__(self):
        self._steps: List[RewriteStep] = []
        self._next_sequence = 1

    def record(self, operation_kind: str, before: Node, after: Node, rule_name: str,
               explanation: str, confidence: float = 1.0) -> RewriteStep:
        if not 0.0 <= confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")
        step = RewriteStep(self._next_sequence, operation_kind, before, after,
                           rule_name, explanation, confidence)
        self._next_sequence += 1
        self._steps.append(step)
        log_step(operation_kind, rule_name, before.to_string(), after.to_string())
        return step

    @property
    def steps(self) -> Tuple[RewriteStep, ...]:
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[RewriteStep]:
        return iter(tuple(self._steps))

    def clear(self):
        self._steps = []
        self._next_sequence = 1

    def overall_confidence(self) -> float:
        """Lowest confidence of any recorded step; 1.0 for an empty log"""
        return min((step.confidence for step in self._steps), default=1.0)

    def format_steps(self) -> str:
        return format_steps(self._steps)


def format_step(step: RewriteStep) -> str:
    return (f"Step {step.sequence_number}: [{step.operation_kind}]\n"
            f"{step.explanation}\n"
            f"From: {step.before.to_string()}\n"
            f"To: {step.after.to_string()}\n"
            f"Rule: {step.rule_name}\n")


def format_steps(steps: Iterable[RewriteStep]) -> str:
    return "\n".join(format_step(step) for step in steps)
