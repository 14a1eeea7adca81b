"""
Iterative planning loop.

One call to :meth:`PlanningLoop.run` carries an objective through repeated model round-trips:

    Idle -> Planning -> Executing -> Evaluating -> (Planning | Terminal)

Each iteration builds a prompt from the session, asks the model (or synthesises a fallback decision
when the model is unreachable), parses the reply, dispatches the valid tool calls, and lets the
:class:`CompletionEvaluator` decide whether to go round again.  Nothing raised inside an iteration
escapes ``run``: every failure ends the session with a non-success summary.
"""

from __future__ import annotations

import logging
import time
from typing import (
    Callable,
    List,
    Mapping,
)

from roverloop.agent.completion import CompletionEvaluator
from roverloop.agent.planner_interface import (
    BaseModelClient,
    ModelClientError,
    ModelUnavailableError,
    load_model_client,
)
from roverloop.agent.prompt_builder import (
    build_planning_prompt,
    build_single_shot_prompt,
)
from roverloop.agent.response_parser import (
    RawToolCall,
    gate_tool_calls,
    parse_command_reply,
    parse_error_decision,
    parse_planning_decision,
)
from roverloop.agent.tool_executor import dispatch_tool_calls
from roverloop.config import (
    Settings,
    settings,
)
from roverloop.core.schema import (
    CONFIDENCE_THRESHOLD,
    MAX_TOOL_CALLS_PER_ITERATION,
    MAX_TOOL_CALLS_SINGLE_SHOT,
    DecisionSource,
    LoopState,
    PlanningDecision,
    PlanningSession,
    SessionClosedError,
)
from roverloop.robot.driver import (
    LoggingPublisher,
    StatusPublisher,
)
from roverloop.tools import Tool
from roverloop.tools.robot_tools import build_default_catalog

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 1.0


def build_fallback_decision(
    catalog: Mapping[str, Tool],
    reason: str,
    threshold: float = CONFIDENCE_THRESHOLD,
) -> PlanningDecision:
    """
    Synthesise a decision for when the model cannot be reached.

    The robot is brought to a stop and the outage is reported, using whichever of ``move_car`` and
    ``send_mqtt_message`` the catalog offers.  The calls go through the same gate as model calls.
    """
    raw_calls: List[RawToolCall] = []
    if "move_car" in catalog:
        raw_calls.append(
            RawToolCall(tool="move_car", params="stop", confidence=FALLBACK_CONFIDENCE)
        )
    if "send_mqtt_message" in catalog:
        raw_calls.append(
            RawToolCall(
                tool="send_mqtt_message",
                params=f"Model endpoint unavailable, planning stopped: {reason}",
                confidence=FALLBACK_CONFIDENCE,
            )
        )

    calls, _ = gate_tool_calls(raw_calls, catalog, threshold, MAX_TOOL_CALLS_PER_ITERATION)
    return PlanningDecision(
        tool_calls=calls,
        should_continue=False,
        objective_complete=False,
        reasoning=f"Fallback decision: model endpoint unavailable ({reason}).",
        source=DecisionSource.FALLBACK,
    )


class PlanningLoop:
    """Owns one planning session at a time and drives it to termination."""

    def __init__(
        self,
        client: BaseModelClient,
        catalog: Mapping[str, Tool],
        evaluator: CompletionEvaluator | None = None,
        publisher: StatusPublisher | None = None,
        *,
        threshold: float = CONFIDENCE_THRESHOLD,
        max_calls: int = MAX_TOOL_CALLS_PER_ITERATION,
        iteration_delay_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not 0 < max_calls <= MAX_TOOL_CALLS_PER_ITERATION:
            raise ValueError(
                f"max_calls must be between 1 and {MAX_TOOL_CALLS_PER_ITERATION}, got {max_calls}"
            )
        self.client = client
        self.catalog = catalog
        self.evaluator = evaluator or CompletionEvaluator()
        self.publisher = publisher
        self.threshold = threshold
        self.max_calls = max_calls
        self.iteration_delay_s = iteration_delay_s
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start_session(self, objective: str) -> PlanningSession:
        """Create a fresh session in the ``Idle`` state."""
        now = self._clock()
        return PlanningSession(
            objective=objective,
            current_context="Starting objective",
            start_time=now,
            last_iteration_time=now,
        )

    def run(self, objective: str) -> str:
        """Drive a new session for *objective* to termination and return its transcript."""
        session = self.start_session(objective)
        logger.info("Planning started: %s", objective)
        self._publish(f"Planning started: {objective}")

        trace: List[str] = []
        while not session.is_complete:
            trace.append(self.step(session))

        logger.info(
            "Planning finished after %d iterations (success=%s, reason=%s)",
            session.iteration_count,
            session.succeeded,
            session.stop_reason.value if session.stop_reason else None,
        )
        self._publish(
            f"Planning {'complete' if session.succeeded else 'stopped'}: {session.final_result}"
        )
        return render_transcript(session, trace)

    def step(self, session: PlanningSession) -> str:
        """
        Run exactly one iteration on *session* and return a short summary of it.

        Raises
        ------
        SessionClosedError
            If *session* is already terminal.
        """
        if session.is_complete:
            raise SessionClosedError("Planning session is already complete.")

        self._pace(session)

        session.state = LoopState.PLANNING
        decision = self._plan(session)

        session.state = LoopState.EXECUTING
        record = dispatch_tool_calls(decision.tool_calls, self.catalog)

        session.state = LoopState.EVALUATING
        now = self._clock()
        session.record_iteration(record, decision.next_context, now)
        self._publish(
            f"Iteration {session.iteration_count}: dispatched {len(record.outcomes)} "
            f"tool call(s) | {decision.reasoning or '-'}"
        )
        verdict = self.evaluator.evaluate(decision, session, now, record)

        if verdict.should_stop:
            session.complete(verdict)
        else:
            session.state = LoopState.PLANNING

        summary = (
            f"{session.iteration_count}. [{decision.source.value}] "
            f"dispatched {len(record.outcomes)}/{len(decision.tool_calls)} "
            f"| {decision.reasoning or '-'}"
        )
        if record.outcomes:
            summary += "\n   " + record.text.replace("\n", "\n   ")
        logger.debug("Iteration summary: %s", summary)
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _plan(self, session: PlanningSession) -> PlanningDecision:
        try:
            available = self.client.is_available()
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Model availability check failed")
            return build_fallback_decision(
                self.catalog, f"availability check failed: {exc}", self.threshold
            )
        if not available:
            logger.warning("Model endpoint unavailable, using fallback decision")
            return build_fallback_decision(self.catalog, "no connectivity", self.threshold)

        prompt = build_planning_prompt(
            session.objective,
            session.current_context,
            session.execution_history,
            tools=self.catalog,
        )
        logger.debug("Planning prompt for iteration %d:\n%s", session.iteration_count + 1, prompt)

        try:
            reply = self.client.complete(prompt)
        except ModelUnavailableError as exc:
            logger.warning("Model endpoint unreachable, using fallback decision: %s", exc)
            return build_fallback_decision(self.catalog, str(exc), self.threshold)
        except ModelClientError as exc:
            return parse_error_decision(f"Model call failed: {exc}")
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error from model client")
            return parse_error_decision(f"Model call failed: {exc}")

        return parse_planning_decision(
            reply, self.catalog, threshold=self.threshold, max_calls=self.max_calls
        )

    def _pace(self, session: PlanningSession) -> None:
        if session.iteration_count == 0 or self.iteration_delay_s <= 0:
            return
        wait = self.iteration_delay_s - (self._clock() - session.last_iteration_time)
        if wait > 0:
            self._sleep(wait)

    def _publish(self, message: str) -> None:
        if self.publisher is None:
            return
        try:
            self.publisher.publish(message)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Status publisher failed on: %s", message)


def render_transcript(session: PlanningSession, trace: List[str]) -> str:
    """Summarise a finished session as plain text."""
    outcome = "SUCCESS" if session.succeeded else "FAILED"
    reason = session.stop_reason.value if session.stop_reason else "unknown"
    lines = [
        f"Objective: {session.objective}",
        f"Outcome: {outcome} ({reason})",
        f"Iterations: {session.iteration_count}",
        f"Final context: {session.current_context}",
        f"Result: {session.final_result or ''}",
    ]
    if trace:
        lines.append("Iteration log:")
        lines.extend(trace)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Single-shot command mode
# ---------------------------------------------------------------------------
def run_single_shot(
    command: str,
    client: BaseModelClient,
    catalog: Mapping[str, Tool],
    *,
    threshold: float = CONFIDENCE_THRESHOLD,
    max_calls: int = MAX_TOOL_CALLS_SINGLE_SHOT,
    delay_s: float = 0.0,
) -> str:
    """
    Translate *command* into tool calls with one model round-trip and run them.

    There is no iteration and no completion check; the outcome log is returned as-is.
    """
    try:
        if not client.is_available():
            return "Error: model endpoint unavailable"
        reply = client.complete(build_single_shot_prompt(command, tools=catalog))
    except ModelClientError as exc:
        return f"Error: {exc}"
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Unexpected error from model client")
        return f"Error: {exc}"

    interpretation = parse_command_reply(
        reply, catalog, threshold=threshold, max_calls=max_calls
    )
    if not interpretation.success:
        return interpretation.error

    record = dispatch_tool_calls(interpretation.tool_calls, catalog, delay_s=delay_s)
    lines = [record.text] if record.outcomes else ["No tool calls executed"]
    if interpretation.unknown_commands:
        lines.append(f"Unknown commands: {interpretation.unknown_commands}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry points wired from settings
# ---------------------------------------------------------------------------
def build_planning_loop(
    config: Settings | None = None,
    client: BaseModelClient | None = None,
    catalog: Mapping[str, Tool] | None = None,
    publisher: StatusPublisher | None = None,
) -> PlanningLoop:
    """Assemble a :class:`PlanningLoop` from settings, with optional overrides."""
    config = config or settings
    evaluator = CompletionEvaluator(
        max_iterations=config.MAX_ITERATIONS,
        timeout_s=config.PLANNING_TIMEOUT_S,
        final_step_policy=config.FINAL_STEP_POLICY,
    )
    return PlanningLoop(
        client or load_model_client(config=config),
        catalog if catalog is not None else build_default_catalog(config),
        evaluator,
        publisher or LoggingPublisher(),
        threshold=config.CONFIDENCE_THRESHOLD,
        max_calls=config.MAX_TOOL_CALLS_PER_ITERATION,
        iteration_delay_s=config.ITERATION_DELAY_S,
    )


def run_planning(objective: str, config: Settings | None = None) -> str:
    """Run *objective* to termination with the configured model and robot."""
    return build_planning_loop(config).run(objective)
