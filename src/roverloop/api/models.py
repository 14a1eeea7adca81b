"""
Pydantic models for roverloop API requests and responses.
This module defines the request and response schemas used by the roverloop API.
"""

from typing import List

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class PlanRequest(BaseModel):
    """Objective to plan and execute."""

    objective: str = Field(..., min_length=1, description="Natural-language objective")


class PlanResponse(BaseModel):
    """Transcript of a finished planning session."""

    transcript: str


class CommandRequest(BaseModel):
    """Single-shot command."""

    command: str = Field(..., min_length=1, description="Natural-language command")


class CommandResponse(BaseModel):
    """Outcome log of a single-shot command."""

    result: str


class ToolInfo(BaseModel):
    """A catalog entry as shown to API clients."""

    name: str
    description: str


class ToolListResponse(BaseModel):
    """Every tool available to the planner."""

    tools: List[ToolInfo]
