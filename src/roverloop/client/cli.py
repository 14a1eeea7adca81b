"""CLI client for the roverloop API."""

from __future__ import annotations

import logging
import time
from typing import (
    Any,
    Dict,
    Tuple,
    cast,
)

import httpx

from roverloop.common import (
    AnsiColors,
    colored_print,
    outcome_color,
)
from roverloop.config import settings

logger = logging.getLogger(__name__)

# Planning sessions block for as long as the robot moves, so allow plenty of time.
REQUEST_TIMEOUT_S = 300.0


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def call_api(endpoint: str, data: Dict[str, Any], max_retries: int = 5) -> Dict[str, Any]:
    """Make a POST request to the API and return the response with retries."""
    api_url = f"http://localhost:{settings.API_PORT}{endpoint}"

    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=REQUEST_TIMEOUT_S) as client:
                response = client.post(api_url, json=data)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.ConnectError as e:
            # On connection refused, retry with exponential backoff
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            logger.error("API connection error: %s", str(e))
            return {"error": f"Error connecting to API: {str(e)}"}
        except httpx.HTTPStatusError as e:
            logger.error("API request error: %s", str(e))
            try:
                detail = e.response.json().get("detail", str(e))
            except ValueError:
                detail = str(e)
            return {"error": f"API error: {detail}"}
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            return {"error": f"Error connecting to API: {str(e)}"}

    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def handle_line(line: str) -> None:
    """
    Send one line of operator input to the API and print the answer.

    Lines starting with ``!`` are sent as single-shot commands; everything else is an objective.
    """
    if line.startswith("!"):
        response = call_api("/command", {"command": line[1:].strip()})
        if "error" in response:
            colored_print(response["error"], AnsiColors.RED)
        else:
            colored_print(response.get("result", ""), AnsiColors.YELLOW)
        return

    response = call_api("/plan", {"objective": line})
    if "error" in response:
        colored_print(response["error"], AnsiColors.RED)
        return
    transcript = response.get("transcript", "")
    colored_print(transcript, outcome_color(transcript))


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    colored_print(
        "\nroverloop shell - type an objective, '!command' for single-shot mode, "
        "'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.GREEN,
    )
    while True:
        colored_print("\nObjective: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if user_msg:
            handle_line(user_msg)


if __name__ == "__main__":
    run_cli()
