"""Tests for the model client registry and transport error mapping."""

import pytest

from roverloop.agent.planner_interface import (
    AnthropicClient,
    ModelUnavailableError,
    OfflineClient,
    OpenAIClient,
    TGIClient,
    load_model_client,
)
from roverloop.config import Settings


def test_registry_resolves_each_backend() -> None:
    """Every built-in back-end is registered under its settings name."""

    config = Settings()
    assert isinstance(load_model_client("openai", config), OpenAIClient)
    assert isinstance(load_model_client("Anthropic", config), AnthropicClient)
    assert isinstance(load_model_client("tgi", config), TGIClient)
    assert isinstance(load_model_client(config=Settings(PLANNER="offline")), OfflineClient)


def test_unknown_backend_is_rejected() -> None:
    """Unregistered names raise ValueError."""

    with pytest.raises(ValueError):
        load_model_client("carrier-pigeon", Settings())


def test_availability_follows_api_keys() -> None:
    """Hosted back-ends are only available with a key; offline never is."""

    assert not OpenAIClient(Settings(OPENAI_API_KEY=None)).is_available()
    assert OpenAIClient(Settings(OPENAI_API_KEY="sk-test")).is_available()
    assert not AnthropicClient(Settings(ANTHROPIC_API_KEY=None)).is_available()
    assert not OfflineClient(Settings()).is_available()
    with pytest.raises(ModelUnavailableError):
        OfflineClient(Settings()).complete("hello")


def test_unreachable_tgi_maps_to_unavailable() -> None:
    """A refused connection becomes ModelUnavailableError, which the loop treats as offline."""

    client = TGIClient(Settings(TGI_ENDPOINT="http://127.0.0.1:9/generate", MODEL_TIMEOUT_S=2.0))
    with pytest.raises(ModelUnavailableError):
        client.complete("prompt")
