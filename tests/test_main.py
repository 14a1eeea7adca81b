"""Tests for the command-line entry point."""

import pytest

from roverloop import main as main_module


def test_objective_runs_in_process(monkeypatch, capsys) -> None:
    """--objective plans in-process and prints the transcript."""

    monkeypatch.setattr(main_module.settings, "PLANNER", "offline")
    monkeypatch.setattr(main_module.settings, "LOG_LEVEL", main_module.settings.LOG_LEVEL)
    main_module.main(["--objective", "drive to the wall", "--log-level", "warning"])

    out = capsys.readouterr().out
    assert "Objective: drive to the wall" in out
    assert "Outcome: FAILED" in out


def test_single_shot_needs_objective() -> None:
    """--single-shot alone is a usage error."""

    with pytest.raises(SystemExit):
        main_module.main(["--single-shot"])
