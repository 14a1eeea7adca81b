"""Tests for the completion policy and its priority order."""

import pytest

from roverloop.agent.completion import (
    CompletionEvaluator,
    FinalStepPolicy,
)
from roverloop.core.schema import (
    ExecutionRecord,
    PlanningDecision,
    PlanningSession,
    StopReason,
    ToolOutcome,
)


def _session(iterations: int = 1, start: float = 0.0) -> PlanningSession:
    return PlanningSession(objective="test", iteration_count=iterations, start_time=start)


def _decision(should_continue: bool = True, objective_complete: bool = False) -> PlanningDecision:
    return PlanningDecision(
        should_continue=should_continue,
        objective_complete=objective_complete,
        reasoning="because",
        next_context="ctx",
    )


def test_continue_when_nothing_stops() -> None:
    """An active, in-budget session keeps going."""

    verdict = CompletionEvaluator(max_iterations=5).evaluate(_decision(), _session(1), now=1.0)

    assert not verdict.should_stop
    assert verdict.reason is None


def test_completion_wins_over_should_continue_false() -> None:
    """objective_complete terminates as success even with should_continue=false."""

    verdict = CompletionEvaluator().evaluate(
        _decision(should_continue=False, objective_complete=True), _session(1), now=1.0
    )

    assert verdict.should_stop and verdict.success
    assert verdict.reason is StopReason.OBJECTIVE_COMPLETE
    assert verdict.final_result == "because Context: ctx"


def test_completion_wins_over_exhausted_budget() -> None:
    """Completing on the last allowed iteration is still a success."""

    verdict = CompletionEvaluator(max_iterations=3, timeout_s=1).evaluate(
        _decision(objective_complete=True), _session(3), now=50.0
    )

    assert verdict.success
    assert verdict.reason is StopReason.OBJECTIVE_COMPLETE


def test_iteration_budget_overrides_model() -> None:
    """The model cannot keep the loop alive past the iteration cap."""

    verdict = CompletionEvaluator(max_iterations=3).evaluate(_decision(), _session(3), now=1.0)

    assert verdict.should_stop and not verdict.success
    assert verdict.reason is StopReason.ITERATION_BUDGET
    assert "iteration budget exhausted" in verdict.final_result


def test_iteration_budget_checked_before_timeout() -> None:
    """When both limits are hit, the iteration budget is reported."""

    verdict = CompletionEvaluator(max_iterations=2, timeout_s=1).evaluate(
        _decision(), _session(2), now=10.0
    )

    assert verdict.reason is StopReason.ITERATION_BUDGET


def test_timeout_overrides_model() -> None:
    """Elapsed time beyond the budget stops the session."""

    verdict = CompletionEvaluator(timeout_s=30).evaluate(_decision(), _session(1, 0.0), now=30.5)

    assert verdict.should_stop and not verdict.success
    assert verdict.reason is StopReason.TIMEOUT


def test_model_stop_without_completion_is_failure() -> None:
    """should_continue=false without completion ends the session as non-success."""

    verdict = CompletionEvaluator().evaluate(_decision(should_continue=False), _session(2), 1.0)

    assert verdict.should_stop and not verdict.success
    assert verdict.reason is StopReason.MODEL_STOP


def test_implicit_success_policy_needs_clean_execution() -> None:
    """Under implicit_success a final step counts only when its calls ran without error."""

    evaluator = CompletionEvaluator(final_step_policy="implicit_success")
    decision = _decision(should_continue=False)
    clean = ExecutionRecord(outcomes=[ToolOutcome(tool="move_car", output="moved")])
    failed = ExecutionRecord(outcomes=[ToolOutcome(tool="move_car", output="Error", ok=False)])

    ok = evaluator.evaluate(decision, _session(2), 1.0, clean)
    assert ok.success and ok.reason is StopReason.FINAL_STEP_STOP

    assert evaluator.evaluate(decision, _session(2), 1.0, failed).reason is StopReason.MODEL_STOP
    assert evaluator.evaluate(decision, _session(2), 1.0, ExecutionRecord()).success is False
    assert evaluator.final_step_policy is FinalStepPolicy.IMPLICIT_SUCCESS


@pytest.mark.parametrize(
    "kwargs",
    [{"max_iterations": 0}, {"timeout_s": 0}, {"final_step_policy": "optimistic"}],
)
def test_rejects_bad_configuration(kwargs) -> None:
    """Nonsensical limits are refused up front."""

    with pytest.raises(ValueError):
        CompletionEvaluator(**kwargs)
