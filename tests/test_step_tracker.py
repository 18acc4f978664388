import pytest

from symbolic_calculus.parser import parse_or_raise
from symbolic_calculus.step_tracker import StepTracker, format_step, format_steps


def record_sample(tracker, confidence=1.0):
    return tracker.record('simplification', parse_or_raise("x + 0"), parse_or_raise("x"),
                          'additive_identity', "x + 0 = x", confidence)


def test_sequence_numbers_increase():
    tracker = StepTracker()
    for _ in range(3):
        record_sample(tracker)
    assert [step.sequence_number for step in tracker] == [1, 2, 3]
    assert len(tracker) == 3


def test_steps_are_snapshots():
    tracker = StepTracker()
    record_sample(tracker)
    steps = tracker.steps
    record_sample(tracker)
    assert len(steps) == 1
    assert len(tracker.steps) == 2


def test_overall_confidence_is_the_minimum():
    tracker = StepTracker()
    assert tracker.overall_confidence() == 1.0
    record_sample(tracker, 0.9)
    record_sample(tracker, 0.5)
    record_sample(tracker, 1.0)
    assert tracker.overall_confidence() == 0.5


@pytest.mark.parametrize("confidence", [-0.1, 1.5])
def test_confidence_must_be_a_probability(confidence):
    with pytest.raises(ValueError):
        record_sample(StepTracker(), confidence)


def test_clear_restarts_numbering():
    tracker = StepTracker()
    record_sample(tracker)
    tracker.clear()
    assert len(tracker) == 0
    assert record_sample(tracker).sequence_number == 1


def test_format_step():
    step = record_sample(StepTracker())
    assert format_step(step) == (
        "Step 1: [simplification]\n"
        "x + 0 = x\n"
        "From: x + 0\n"
        "To: x\n"
        "Rule: additive_identity\n"
    )


def test_format_steps_joins_with_blank_line():
    tracker = StepTracker()
    record_sample(tracker)
    record_sample(tracker)
    text = format_steps(tracker.steps)
    assert text == tracker.format_steps()
    assert "Rule: additive_identity\n\nStep 2: [simplification]" in text
