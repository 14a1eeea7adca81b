"""
roverloop entry point.

This file handles startup concerns (arg-parsing, logging) and either runs one objective directly or
launches the appropriate interface (API or CLI).
"""

import argparse
import logging
import sys

from roverloop.common import (
    AnsiColors,
    colored_print,
    outcome_color,
)
from roverloop.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep HTTP client chatter out of the planning log
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _run_once(text: str, single_shot: bool) -> None:
    # Lazy import so that `--mode api` does not build a second robot
    from roverloop.agent.planning_loop import (  # pylint: disable=import-outside-toplevel
        build_planning_loop,
        run_single_shot,
    )

    loop = build_planning_loop(settings)
    if single_shot:
        result = run_single_shot(
            text,
            loop.client,
            loop.catalog,
            threshold=settings.CONFIDENCE_THRESHOLD,
            max_calls=settings.MAX_TOOL_CALLS_SINGLE_SHOT,
            delay_s=settings.TOOL_CALL_DELAY_S,
        )
        colored_print(result, AnsiColors.YELLOW)
        return

    transcript = loop.run(text)
    colored_print(transcript, outcome_color(transcript))


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the roverloop application.

    With ``--objective`` the objective is planned and executed in-process and the transcript is
    printed.  Otherwise the REST API is started, optionally with the interactive CLI in front.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the roverloop robot planner")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Launch the REST API, or the API plus an interactive CLI (default: api)",
    )
    parser.add_argument(
        "--objective",
        help="Plan and execute this objective in-process, print the transcript and exit",
    )
    parser.add_argument(
        "--single-shot",
        action="store_true",
        help="With --objective: translate it into tool calls once, without iterating",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    if args.single_shot and not args.objective:
        parser.error("--single-shot requires --objective")

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)
    logger.debug("Settings: %s", settings.model_dump())

    if args.objective:
        _run_once(args.objective, args.single_shot)
        return

    logger.info("Starting roverloop [%s mode]", args.mode)

    # Lazy import to avoid building the robot before logging is configured
    from roverloop.api.app import run_api  # pylint: disable=import-outside-toplevel

    if args.mode == "api":
        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
        return

    import threading  # pylint: disable=import-outside-toplevel

    # Start API server in a separate thread
    api_thread = threading.Thread(
        target=run_api,
        kwargs={
            "host": "0.0.0.0",
            "port": settings.API_PORT,
            "reload": False,  # Reload doesn't work well with threading
            "log_level": "warning",
        },
        daemon=True,
    )
    api_thread.start()

    from roverloop.client.cli import run_cli  # pylint: disable=import-outside-toplevel

    run_cli()


if __name__ == "__main__":
    main()
