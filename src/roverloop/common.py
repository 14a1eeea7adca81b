"""Terminal helpers shared by the API launcher and the CLI client."""

from enum import Enum
from typing import Any

ANSI_RESET = "\033[0m"


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}{ANSI_RESET}", *args, **kwargs)


def outcome_color(transcript: str) -> AnsiColors:
    """Pick a color for a planning transcript: green on success, red otherwise."""
    return AnsiColors.GREEN if "Outcome: SUCCESS" in transcript else AnsiColors.RED
