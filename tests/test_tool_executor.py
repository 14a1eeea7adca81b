"""
Sanity tests for the tool dispatcher.

Run with:
$ pytest -q
"""

from roverloop.agent.tool_executor import (
    ToolExecutionError,
    dispatch_tool_calls,
    execute_tool,
)
from roverloop.core.schema import ToolCall
from roverloop.tools import (
    Tool,
    ToolCatalog,
)


def _strict_move(params: str) -> str:
    """Reject anything that is not a forward move (used only for tests)."""
    if not params.startswith("forward"):
        raise ValueError("only forward is allowed")
    return f"ok {params}"


def _valid(tool: str, params: str = "") -> ToolCall:
    return ToolCall(tool=tool, params=params, confidence=0.95, is_valid=True)


def test_execute_tool_success(catalog: ToolCatalog) -> None:
    """Executor should return the tool's text when the tool is registered."""

    assert execute_tool(catalog, "get_sonar_distance") == "Distance: 42 cm"


def test_execute_tool_missing(catalog: ToolCatalog) -> None:
    """Executor should raise *ToolExecutionError* for an unknown tool."""

    try:
        execute_tool(catalog, "not_a_tool")
    except ToolExecutionError as exc:
        assert "not_a_tool" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolExecutionError was not raised")


def test_execute_tool_bad_params() -> None:
    """Executor should raise *ToolExecutionError* for parameters the tool rejects."""

    catalog = ToolCatalog([Tool("move", "strict mover", _strict_move)])
    try:
        execute_tool(catalog, "move", "sideways 100")
    except ToolExecutionError as exc:
        assert "Invalid parameters" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolExecutionError was not raised")


def test_dispatch_runs_only_valid_calls_in_order(tools, catalog) -> None:
    """Invalid calls are skipped; valid calls run in declaration order."""

    calls = [
        _valid("move_car", "forward 1000"),
        ToolCall(tool="move_car", params="left 570", confidence=0.5, is_valid=False),
        _valid("get_sonar_distance"),
    ]
    record = dispatch_tool_calls(calls, catalog)

    assert tools.calls == ["move_car forward 1000", "get_sonar_distance"]
    assert record.text == "[move_car forward 1000] moved\n[get_sonar_distance] Distance: 42 cm"
    assert not record.had_errors


def test_dispatch_isolates_failing_calls(tools, catalog) -> None:
    """A failing or unknown tool is noted and the remaining calls still run."""

    calls = [_valid("broken_tool"), _valid("warp_drive", "9"), _valid("send_mqtt_message", "hi")]
    record = dispatch_tool_calls(calls, catalog)

    assert [o.ok for o in record.outcomes] == [False, False, True]
    assert "sensor unplugged" in record.outcomes[0].output
    assert "'warp_drive' is not registered" in record.outcomes[1].output
    assert tools.calls == ["broken_tool", "send_mqtt_message hi"]
    assert record.had_errors


def test_dispatch_pauses_between_calls(monkeypatch, catalog) -> None:
    """*delay_s* is slept between consecutive calls, not before the first."""

    sleeps = []
    monkeypatch.setattr("roverloop.agent.tool_executor.time.sleep", sleeps.append)
    dispatch_tool_calls([_valid("move_car", "forward 1"), _valid("move_car", "stop")], catalog, 0.5)

    assert sleeps == [0.5]
