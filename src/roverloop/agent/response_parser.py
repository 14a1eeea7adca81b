"""
Turns raw model replies into validated decisions.

Parsing never raises: a reply that cannot be decoded becomes an empty, non-continuing decision
carrying a diagnostic in ``reasoning``.  Decoded calls are capped (excess calls are dropped) and
gated on confidence; a call at exactly the threshold is excluded.
"""

import json
import logging
import re
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Tuple,
)

from pydantic import (
    BaseModel,
    Field,
    StrictBool,
    StrictFloat,
    ValidationError,
    field_validator,
)

from roverloop.core.schema import (
    CONFIDENCE_THRESHOLD,
    MAX_TOOL_CALLS_PER_ITERATION,
    MAX_TOOL_CALLS_SINGLE_SHOT,
    CommandInterpretation,
    DecisionSource,
    PlanningDecision,
    ToolCall,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic models for reply validation
# ---------------------------------------------------------------------------
class RawToolCall(BaseModel):
    """One entry of ``tool_calls`` as the model wrote it."""

    tool: str
    params: str = ""
    confidence: StrictFloat

    @field_validator("params", mode="before")
    @classmethod
    def _params_as_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence_is_number(cls, value: Any) -> Any:
        # bool is an int subclass; true/false is not a confidence
        if isinstance(value, bool):
            raise ValueError("confidence must be a number, not a boolean")
        return value


class PlanningReply(BaseModel):
    """Validates the iterative planning reply."""

    tool_calls: List[RawToolCall]
    should_continue: StrictBool
    objective_complete: StrictBool
    reasoning: str = ""
    next_context: str | None = None


class CommandReply(BaseModel):
    """Validates the single-shot command reply."""

    tool_calls: List[RawToolCall] = Field(default_factory=list)
    unknown_commands: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def sanitize_json_string(content: str) -> str:
    """Clean up JSON strings returned by LLMs."""
    # Strip markdown code blocks if present
    if "```" in content:
        match = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
        if match:
            content = match.group(1).strip()

    # Remove control characters except whitespace
    content = "".join(ch for ch in content if ch >= " " or ch in "\n\r\t")

    # Find the outermost matching braces, ignoring braces inside strings
    open_idx = content.find("{")
    if open_idx < 0:
        return content

    depth = 0
    in_string = False
    escaped = False
    for i in range(open_idx, len(content)):
        ch = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return content[open_idx : i + 1]
    return content


def _load_object(raw: str) -> Dict[str, Any]:
    data = json.loads(sanitize_json_string(raw or ""))
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def gate_tool_calls(
    raw_calls: List[RawToolCall],
    catalog: Mapping[str, Any] | None,
    threshold: float,
    max_calls: int,
) -> Tuple[List[ToolCall], int]:
    """
    Cap *raw_calls* at *max_calls* and compute ``is_valid`` for each.

    Returns the calls and the number dropped by the cap.
    """
    kept = raw_calls[:max_calls]
    dropped = len(raw_calls) - len(kept)
    if dropped:
        logger.debug("Dropping %d tool calls beyond the cap of %d", dropped, max_calls)

    calls: List[ToolCall] = []
    for raw in kept:
        resolves = catalog is None or raw.tool in catalog
        valid = raw.confidence > threshold and resolves
        if not valid:
            logger.info(
                "Excluding tool call '%s' (confidence=%.2f, known=%s)",
                raw.tool,
                raw.confidence,
                resolves,
            )
        calls.append(
            ToolCall(tool=raw.tool, params=raw.params, confidence=raw.confidence, is_valid=valid)
        )
    return calls, dropped


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def parse_error_decision(message: str) -> PlanningDecision:
    """Decision used when a reply cannot be decoded."""
    return PlanningDecision(
        tool_calls=[],
        should_continue=False,
        objective_complete=False,
        reasoning=message,
        source=DecisionSource.PARSE_ERROR,
    )


def parse_planning_decision(
    raw: str,
    catalog: Mapping[str, Any] | None = None,
    *,
    threshold: float = CONFIDENCE_THRESHOLD,
    max_calls: int = MAX_TOOL_CALLS_PER_ITERATION,
    source: DecisionSource = DecisionSource.MODEL,
) -> PlanningDecision:
    """
    Decode a planning reply into a :class:`PlanningDecision`.

    Parameters
    ----------
    raw:
        The model's raw text.  Code fences and surrounding prose are tolerated.
    catalog:
        When given, calls naming a tool outside the catalog are marked invalid.
    threshold:
        Confidence must be strictly greater than this for a call to be valid.
    max_calls:
        Calls beyond this many are dropped silently.
    """
    try:
        reply = PlanningReply.model_validate(_load_object(raw))
        calls, _ = gate_tool_calls(reply.tool_calls, catalog, threshold, max_calls)
        return PlanningDecision(
            tool_calls=calls,
            should_continue=reply.should_continue,
            objective_complete=reply.objective_complete,
            reasoning=reply.reasoning,
            next_context=reply.next_context,
            source=source,
        )
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error("Failed to parse planning reply: %s", e)
        return parse_error_decision(f"Error parsing model response: {e}")


def parse_command_reply(
    raw: str,
    catalog: Mapping[str, Any] | None = None,
    *,
    threshold: float = CONFIDENCE_THRESHOLD,
    max_calls: int = MAX_TOOL_CALLS_SINGLE_SHOT,
) -> CommandInterpretation:
    """Decode a single-shot command reply.  Never raises."""
    # The interpretation model holds at most MAX_TOOL_CALLS_SINGLE_SHOT calls
    max_calls = min(max_calls, MAX_TOOL_CALLS_SINGLE_SHOT)
    try:
        reply = CommandReply.model_validate(_load_object(raw))
        calls, _ = gate_tool_calls(reply.tool_calls, catalog, threshold, max_calls)
        return CommandInterpretation(tool_calls=calls, unknown_commands=reply.unknown_commands)
    except (ValueError, ValidationError) as e:
        logger.error("Failed to parse command reply: %s", e)
        return CommandInterpretation(success=False, error=f"Error parsing model response: {e}")
