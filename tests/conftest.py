"""Shared fixtures: a scripted model client, a recording tool catalog and a fake clock."""

import json
from typing import (
    Any,
    Dict,
    List,
    Sequence,
)

import pytest

from roverloop.agent.planner_interface import BaseModelClient
from roverloop.tools import (
    Tool,
    ToolCatalog,
)


def reply(
    calls: Sequence[Dict[str, Any]] = (),
    should_continue: bool = True,
    objective_complete: bool = False,
    reasoning: str = "thinking",
    next_context: str = "context",
) -> str:
    """Render a planning reply the way a model would."""
    return json.dumps(
        {
            "tool_calls": list(calls),
            "should_continue": should_continue,
            "objective_complete": objective_complete,
            "reasoning": reasoning,
            "next_context": next_context,
        }
    )


def call(tool: str, params: str = "", confidence: float = 0.95) -> Dict[str, Any]:
    """One ``tool_calls`` entry."""
    return {"tool": tool, "params": params, "confidence": confidence}


class ScriptedClient(BaseModelClient):
    """Model client that replays canned replies (or raises canned exceptions)."""

    def __init__(self, replies: Sequence[Any] = (), available: bool = True) -> None:
        super().__init__()
        self.replies = list(replies)
        self.available = available
        self.prompts: List[str] = []

    def is_available(self) -> bool:
        return self.available

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("ScriptedClient ran out of replies")
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingTools:
    """Builds a catalog of fake robot tools that remember how they were called."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def _tool(self, name: str, result: str) -> Tool:
        def execute(params: str) -> str:
            self.calls.append(f"{name} {params}".strip())
            return result

        return Tool(name, f"fake {name}", execute)

    def catalog(self) -> ToolCatalog:
        def broken(params: str) -> str:
            self.calls.append(f"broken_tool {params}".strip())
            raise RuntimeError("sensor unplugged")

        return ToolCatalog(
            [
                self._tool("move_car", "moved"),
                self._tool("get_sonar_distance", "Distance: 42 cm"),
                self._tool("send_mqtt_message", "published"),
                Tool("broken_tool", "always fails", broken),
            ]
        )


class FakeClock:
    """Monotonic clock that advances by *step* seconds on every read."""

    def __init__(self, start: float = 100.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def tools() -> RecordingTools:
    """Fresh recording tool set."""
    return RecordingTools()


@pytest.fixture
def catalog(tools: RecordingTools) -> ToolCatalog:
    """Catalog of recording tools."""
    return tools.catalog()


@pytest.fixture
def clock() -> FakeClock:
    """A clock that stands still unless told otherwise."""
    return FakeClock()
