"""Tests for the REST API, with the planning loop swapped for a scripted one."""

import pytest
from conftest import (
    FakeClock,
    ScriptedClient,
    call,
    reply,
)
from fastapi.testclient import TestClient

import roverloop.api.app as app_module
from roverloop.agent.planning_loop import PlanningLoop


@pytest.fixture
def scripted(monkeypatch, catalog):
    """Install a planning loop whose model replies are scripted by the test."""

    def install(*replies, available: bool = True) -> ScriptedClient:
        client = ScriptedClient(replies, available=available)
        clock = FakeClock()
        loop = PlanningLoop(client, catalog, clock=clock, sleep=clock.sleep)
        monkeypatch.setattr(app_module, "planning_loop", loop)
        monkeypatch.setattr(app_module.settings, "TOOL_CALL_DELAY_S", 0.0)
        return client

    return install


@pytest.fixture
def http() -> TestClient:
    """HTTP client for the app."""
    return TestClient(app_module.app)


def test_health(http) -> None:
    """Liveness probe answers ok."""

    assert http.get("/health").json() == {"status": "ok"}


def test_tools_listing(http, scripted) -> None:
    """The catalog is exposed with descriptions."""

    scripted()
    names = [tool["name"] for tool in http.get("/tools").json()["tools"]]

    assert names == ["move_car", "get_sonar_distance", "send_mqtt_message", "broken_tool"]


def test_plan_returns_transcript(http, scripted, tools) -> None:
    """POST /plan runs the loop to completion."""

    scripted(
        reply([call("get_sonar_distance", "", 0.98)]),
        reply(should_continue=False, objective_complete=True, reasoning="Found it"),
    )
    resp = http.post("/plan", json={"objective": "find the nearest obstacle"})

    assert resp.status_code == 200
    transcript = resp.json()["transcript"]
    assert "Outcome: SUCCESS (objective_complete)" in transcript
    assert "Iterations: 2" in transcript
    assert tools.calls == ["get_sonar_distance"]


def test_plan_requires_objective(http, scripted) -> None:
    """An empty objective is a validation error."""

    scripted()
    assert http.post("/plan", json={"objective": ""}).status_code == 422


def test_command_single_shot(http, scripted, tools) -> None:
    """POST /command runs the single-shot path."""

    scripted('{"tool_calls": [{"tool": "move_car", "params": "stop", "confidence": 0.99}]}')
    resp = http.post("/command", json={"command": "stop"})

    assert resp.status_code == 200
    assert resp.json()["result"] == "[move_car stop] moved"
    assert tools.calls == ["move_car stop"]
