"""
API backend for roverloop.

It exposes the following endpoints:
- **GET /health**   - liveness probe for health checks.
- **GET /tools**    - list the robot tools available to the planner.
- **POST /plan**    - run an objective to termination: {"objective": "..."}
- **POST /command** - single-shot command, no iteration: {"command": "..."}

Requests are served one at a time: there is a single robot, and a planning session must finish
before the next one starts.
"""

import logging
import threading

from fastapi import FastAPI

from roverloop.agent.planning_loop import (
    build_planning_loop,
    run_single_shot,
)
from roverloop.api.models import (
    CommandRequest,
    CommandResponse,
    PlanRequest,
    PlanResponse,
    ToolInfo,
    ToolListResponse,
)
from roverloop.common import (
    AnsiColors,
    colored_print,
)
from roverloop.config import settings

logger = logging.getLogger(__name__)

# One loop (and therefore one robot) per process
planning_loop = build_planning_loop(settings)
_robot_lock = threading.Lock()

app = FastAPI(
    title="roverloop API", version="0.1.0", description="LLM planning loop for a robot car"
)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/tools", response_model=ToolListResponse, summary="List robot tools")
def list_tools() -> ToolListResponse:
    """List every tool in the catalog."""
    return ToolListResponse(
        tools=[
            ToolInfo(name=tool.name, description=tool.description)
            for tool in planning_loop.catalog.values()
        ]
    )


@app.post("/plan", response_model=PlanResponse, summary="Plan and execute an objective")
def plan(req: PlanRequest) -> PlanResponse:
    """Run the iterative planning loop for an objective."""
    logger.debug("Plan request: %s", req.objective)
    with _robot_lock:
        transcript = planning_loop.run(req.objective)
    return PlanResponse(transcript=transcript)


@app.post("/command", response_model=CommandResponse, summary="Execute a single-shot command")
def command(req: CommandRequest) -> CommandResponse:
    """Translate a command into tool calls once and run them."""
    logger.debug("Command request: %s", req.command)
    with _robot_lock:
        result = run_single_shot(
            req.command,
            planning_loop.client,
            planning_loop.catalog,
            threshold=settings.CONFIDENCE_THRESHOLD,
            max_calls=settings.MAX_TOOL_CALLS_SINGLE_SHOT,
            delay_s=settings.TOOL_CALL_DELAY_S,
        )
    return CommandResponse(result=result)


@app.get("/", summary="API root")
def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Welcome to the roverloop API! Use /docs for API documentation."}


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting roverloop API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug("API settings: %s", settings.model_dump())

    colored_print(f"roverloop API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "roverloop.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m roverloop.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
