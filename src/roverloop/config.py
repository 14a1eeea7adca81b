"""Configuration settings for the application."""

from pydantic import field_validator
from pydantic_settings import BaseSettings

from roverloop.core.schema import (
    MAX_TOOL_CALLS_PER_ITERATION,
    MAX_TOOL_CALLS_SINGLE_SHOT,
)


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = True
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    PLANNER: str = "openai"  # Options: openai, anthropic, tgi, offline
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    TGI_ENDPOINT: str = "http://tgi:8080/generate"
    MODEL_TIMEOUT_S: float = 30.0

    # Planning loop limits
    MAX_ITERATIONS: int = 5
    PLANNING_TIMEOUT_S: float = 120.0
    CONFIDENCE_THRESHOLD: float = 0.9
    MAX_TOOL_CALLS_PER_ITERATION: int = 5
    MAX_TOOL_CALLS_SINGLE_SHOT: int = 10
    ITERATION_DELAY_S: float = 0.0
    TOOL_CALL_DELAY_S: float = 0.5  # pause between single-shot calls
    FINAL_STEP_POLICY: str = "strict"  # Options: strict, implicit_success

    # Robot
    ROBOT_DRIVER: str = "simulated"  # Options: simulated
    ROBOT_ID: str = "arduino_car"
    SIMULATED_OBSTACLE_CM: float = 150.0
    SIMULATE_REAL_TIME: bool = False
    STATUS_WEBHOOK_URL: str | None = None

    @field_validator("MAX_TOOL_CALLS_PER_ITERATION")
    @classmethod
    def _iteration_cap_in_range(cls, value: int) -> int:
        if not 0 < value <= MAX_TOOL_CALLS_PER_ITERATION:
            raise ValueError(f"must be between 1 and {MAX_TOOL_CALLS_PER_ITERATION}")
        return value

    @field_validator("MAX_TOOL_CALLS_SINGLE_SHOT")
    @classmethod
    def _single_shot_cap_in_range(cls, value: int) -> int:
        if not 0 < value <= MAX_TOOL_CALLS_SINGLE_SHOT:
            raise ValueError(f"must be between 1 and {MAX_TOOL_CALLS_SINGLE_SHOT}")
        return value

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
