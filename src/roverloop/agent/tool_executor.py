"""Dispatches tool calls against a ``ToolCatalog`` and wraps errors."""

import logging
import time
from typing import (
    Mapping,
    Sequence,
)

from roverloop.core.schema import (
    ExecutionRecord,
    ToolCall,
    ToolOutcome,
)
from roverloop.tools import Tool

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


def execute_tool(catalog: Mapping[str, Tool], name: str, params: str = "") -> str:
    """
    Look up *name* in *catalog* and invoke it with *params*.

    Parameters
    ----------
    catalog:
        The tools available to this call.
    name:
        The registered tool name.
    params:
        Opaque parameter string passed verbatim to the tool.

    Returns
    -------
    str
        Whatever the tool returns, as text.

    Raises
    ------
    ToolExecutionError
        If the tool is missing or its invocation raises an exception.
    """

    tool = catalog.get(name)
    if tool is None:
        raise ToolExecutionError(f"Tool '{name}' is not registered.")

    try:
        logger.debug("Executing tool '%s' with params=%r", name, params)
        return str(tool.execute(params))
    except ValueError as exc:
        # Bad parameters - give the caller a clean exception.
        logger.warning("Parameter error while executing tool '%s': %s", name, exc)
        raise ToolExecutionError(f"Invalid parameters for tool '{name}': {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", name)
        raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc


def dispatch_tool_calls(
    calls: Sequence[ToolCall],
    catalog: Mapping[str, Tool],
    delay_s: float = 0.0,
) -> ExecutionRecord:
    """
    Execute the valid calls of *calls* in order, one at a time.

    Invalid calls are skipped.  A failing call is recorded as an error note and does not stop the
    calls after it; nothing is retried.  *delay_s* is slept between consecutive calls.
    """
    record = ExecutionRecord()
    valid = [call for call in calls if call.is_valid]

    for index, call in enumerate(valid):
        if index and delay_s > 0:
            time.sleep(delay_s)
        try:
            result = execute_tool(catalog, call.tool, call.params)
            record.outcomes.append(ToolOutcome(tool=call.tool, params=call.params, output=result))
            logger.info("Tool '%s' returned: %s", call.tool, result)
        except ToolExecutionError as exc:
            record.outcomes.append(
                ToolOutcome(tool=call.tool, params=call.params, output=f"Error: {exc}", ok=False)
            )

    return record
