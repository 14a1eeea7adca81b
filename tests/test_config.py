"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from roverloop.config import Settings


def test_defaults_match_the_loop_limits() -> None:
    """Out of the box the caps are five per iteration and ten per single-shot command."""

    config = Settings()
    assert config.MAX_TOOL_CALLS_PER_ITERATION == 5
    assert config.MAX_TOOL_CALLS_SINGLE_SHOT == 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"MAX_TOOL_CALLS_SINGLE_SHOT": 12},
        {"MAX_TOOL_CALLS_SINGLE_SHOT": 0},
        {"MAX_TOOL_CALLS_PER_ITERATION": 6},
    ],
)
def test_call_caps_cannot_exceed_their_limits(overrides) -> None:
    """A cap outside its hard limit is rejected when settings load."""

    with pytest.raises(ValidationError):
        Settings(**overrides)
