"""
Schema definitions for planner <-> loop <-> tool messages.

These data models serve as the contract between the language model, the planning loop, and the
robot tools.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from enum import Enum
from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

MAX_TOOL_CALLS_PER_ITERATION = 5
"""Upper bound on calls dispatched in one planning iteration."""

MAX_TOOL_CALLS_SINGLE_SHOT = 10
"""Upper bound on calls dispatched by a single-shot command."""

CONFIDENCE_THRESHOLD = 0.9
"""A call is dispatched only when its confidence is strictly greater than this."""


class SessionClosedError(RuntimeError):
    """Raised when a terminal planning session is asked to change."""


class LoopState(str, Enum):
    """States of the planning loop state machine."""

    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    EVALUATING = "evaluating"
    TERMINAL = "terminal"


class DecisionSource(str, Enum):
    """Where a :class:`PlanningDecision` came from."""

    MODEL = "model"
    FALLBACK = "fallback"
    PARSE_ERROR = "parse_error"


class StopReason(str, Enum):
    """Why a planning session ended."""

    OBJECTIVE_COMPLETE = "objective_complete"
    ITERATION_BUDGET = "iteration_budget"
    TIMEOUT = "timeout"
    MODEL_STOP = "model_stop"
    FINAL_STEP_STOP = "final_step_stop"


class ToolCall(BaseModel):
    """A call that the model wants the robot to execute."""

    model_config = ConfigDict(frozen=True)

    tool: str = Field(..., description="Tool name, must exist in the catalog to be dispatched")
    params: str = Field("", description="Opaque parameter string passed to the tool")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence declared by the model")
    is_valid: bool = Field(False, description="Passed the confidence gate and resolves by name")


class PlanningDecision(BaseModel):
    """One model decision, produced once per iteration and consumed once by the loop."""

    model_config = ConfigDict(frozen=True)

    tool_calls: List[ToolCall] = Field(default_factory=list, max_length=MAX_TOOL_CALLS_SINGLE_SHOT)
    should_continue: bool = False
    objective_complete: bool = False
    reasoning: str = ""
    next_context: Optional[str] = None  # None keeps the current context
    source: DecisionSource = DecisionSource.MODEL

    @property
    def valid_calls(self) -> List[ToolCall]:
        """Calls that will be dispatched."""
        return [call for call in self.tool_calls if call.is_valid]

    @property
    def rejected_calls(self) -> List[ToolCall]:
        """Calls excluded from dispatch (low confidence or unknown tool)."""
        return [call for call in self.tool_calls if not call.is_valid]


class CommandInterpretation(BaseModel):
    """Parsed reply of a single-shot command (no iteration)."""

    model_config = ConfigDict(frozen=True)

    tool_calls: List[ToolCall] = Field(default_factory=list, max_length=MAX_TOOL_CALLS_SINGLE_SHOT)
    unknown_commands: str = ""
    success: bool = True
    error: str = ""

    @property
    def valid_calls(self) -> List[ToolCall]:
        """Calls that will be dispatched."""
        return [call for call in self.tool_calls if call.is_valid]


class ToolOutcome(BaseModel):
    """Result of dispatching a single tool call."""

    tool: str
    params: str = ""
    output: str
    ok: bool = True

    def render(self) -> str:
        """Render as one line of the execution log."""
        label = f"{self.tool} {self.params}".strip()
        return f"[{label}] {self.output}"


class ExecutionRecord(BaseModel):
    """Outcome log of one iteration's dispatched calls, in call order."""

    outcomes: List[ToolOutcome] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Concatenated textual outcome, as fed back to the next prompt."""
        return "\n".join(outcome.render() for outcome in self.outcomes)

    @property
    def had_errors(self) -> bool:
        """True when at least one dispatched call failed."""
        return any(not outcome.ok for outcome in self.outcomes)


class CompletionVerdict(BaseModel):
    """Authoritative continue/stop decision for one iteration."""

    should_stop: bool
    success: bool = False
    reason: Optional[StopReason] = None
    final_result: str = ""


class PlanningSession(BaseModel):
    """
    Mutable state carried across iterations for one objective.

    Only the planning loop mutates a session.  ``execution_history`` grows without bound for the
    life of the session, which is bounded itself by the iteration budget.
    """

    objective: str = Field(..., frozen=True)
    current_context: str = ""
    execution_history: List[str] = Field(default_factory=list)
    iteration_count: int = 0
    is_complete: bool = False
    succeeded: bool = False
    stop_reason: Optional[StopReason] = None
    final_result: Optional[str] = None
    start_time: float = 0.0
    last_iteration_time: float = 0.0
    state: LoopState = LoopState.IDLE

    def record_iteration(
        self, record: ExecutionRecord, next_context: Optional[str], now: float
    ) -> None:
        """Fold one completed round-trip into the session."""
        if self.is_complete:
            raise SessionClosedError("Cannot record an iteration on a completed session.")
        self.iteration_count += 1
        if record.outcomes:
            self.execution_history.append(f"Iteration {self.iteration_count}:\n{record.text}")
        if next_context is not None:
            self.current_context = next_context
        self.last_iteration_time = now

    def complete(self, verdict: CompletionVerdict) -> None:
        """Mark the session terminal.  May only happen once."""
        if self.is_complete:
            raise SessionClosedError("Planning session is already complete.")
        self.is_complete = True
        self.succeeded = verdict.success
        self.stop_reason = verdict.reason
        self.final_result = verdict.final_result
        self.state = LoopState.TERMINAL
