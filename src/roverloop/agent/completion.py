"""
Completion policy for planning sessions.

The evaluator is the only authority on whether another iteration runs.  Its rules, in priority
order:

1. the model declared the objective complete -> stop, success
2. the iteration budget is spent -> stop, failure
3. the wall-clock budget is spent -> stop, failure
4. the model asked to stop without declaring completion -> stop, failure (or success under the
   ``implicit_success`` final-step policy)
5. otherwise -> continue

Completion beats a stale ``should_continue=false`` in the same reply, and the hard limits beat the
model's wish to keep going.
"""

from enum import Enum

from roverloop.core.schema import (
    CompletionVerdict,
    ExecutionRecord,
    PlanningDecision,
    PlanningSession,
    StopReason,
)


class FinalStepPolicy(str, Enum):
    """How a ``should_continue=false, objective_complete=false`` reply is judged."""

    STRICT = "strict"
    IMPLICIT_SUCCESS = "implicit_success"


class CompletionEvaluator:
    """Combines the model's flags with the session's safety limits."""

    def __init__(
        self,
        max_iterations: int = 5,
        timeout_s: float = 120.0,
        final_step_policy: FinalStepPolicy | str = FinalStepPolicy.STRICT,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self.max_iterations = max_iterations
        self.timeout_s = timeout_s
        self.final_step_policy = FinalStepPolicy(final_step_policy)

    def evaluate(
        self,
        decision: PlanningDecision,
        session: PlanningSession,
        now: float,
        record: ExecutionRecord | None = None,
    ) -> CompletionVerdict:
        """
        Decide whether *session* stops after *decision*.

        *session* must already count the iteration that produced *decision*.  *record* is the
        execution log of that iteration; it only matters for the ``implicit_success`` policy.
        """
        summary = _summarize(decision)

        if decision.objective_complete:
            return CompletionVerdict(
                should_stop=True,
                success=True,
                reason=StopReason.OBJECTIVE_COMPLETE,
                final_result=summary,
            )

        if session.iteration_count >= self.max_iterations:
            return CompletionVerdict(
                should_stop=True,
                reason=StopReason.ITERATION_BUDGET,
                final_result=(
                    f"No progress: iteration budget exhausted after {session.iteration_count} "
                    f"iterations without completing the objective. {summary}"
                ).strip(),
            )

        elapsed = now - session.start_time
        if elapsed > self.timeout_s:
            return CompletionVerdict(
                should_stop=True,
                reason=StopReason.TIMEOUT,
                final_result=(
                    f"Timeout: planning exceeded {self.timeout_s:g}s "
                    f"(elapsed {elapsed:.1f}s). {summary}"
                ).strip(),
            )

        if not decision.should_continue:
            if self._counts_as_final_step(record):
                return CompletionVerdict(
                    should_stop=True,
                    success=True,
                    reason=StopReason.FINAL_STEP_STOP,
                    final_result=summary,
                )
            return CompletionVerdict(
                should_stop=True,
                reason=StopReason.MODEL_STOP,
                final_result=f"Model-elected stop without completion. {summary}".strip(),
            )

        return CompletionVerdict(should_stop=False)

    def _counts_as_final_step(self, record: ExecutionRecord | None) -> bool:
        if self.final_step_policy is not FinalStepPolicy.IMPLICIT_SUCCESS or record is None:
            return False
        return bool(record.outcomes) and not record.had_errors


def _summarize(decision: PlanningDecision) -> str:
    parts = [decision.reasoning.strip()]
    if decision.next_context:
        parts.append(f"Context: {decision.next_context.strip()}")
    return " ".join(part for part in parts if part)
