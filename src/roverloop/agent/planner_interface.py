"""
Model clients for roverloop.

This module is the only place that *directly* calls an LLM.  Everything else (planning loop, tools,
parser) stays model-agnostic and only sees ``complete(prompt) -> str``.

We support these back-ends out of the box:

1. **OpenAI / Anthropic** via their SDKs (requires env keys).
2. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models.
3. **offline**, which never reaches a network so the loop always uses its fallback decision.

Additional providers can be added by subclassing :class:`BaseModelClient` and registering via
:func:`register_client`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Callable,
    Type,
)

import httpx

from roverloop.config import (
    Settings,
    settings,
)

logger = logging.getLogger(__name__)


class ModelClientError(RuntimeError):
    """Raised when the model endpoint answers with an error."""


class ModelUnavailableError(ModelClientError):
    """Raised when the model endpoint cannot be reached at all."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: dict[str, Type["BaseModelClient"]] = {}


def register_client(name: str) -> Callable:
    """Decorator to register a model client class under *name*."""

    def wrapper(cls: Type["BaseModelClient"]) -> Type["BaseModelClient"]:
        _CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_model_client(
    name: str | None = None, config: Settings | None = None
) -> "BaseModelClient":
    """
    Factory that returns an instantiated model client.

    Fallback order:
    1. *name* arg
    2. ``settings.PLANNER`` env option
    """

    config = config or settings
    target = name or config.PLANNER
    cls = _CLIENT_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Model client '{target}' is not registered.")
    return cls(config)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseModelClient(ABC):
    """Abstract client that sends one prompt and returns the raw reply text."""

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    def is_available(self) -> bool:
        """Return ``False`` when the endpoint is known to be unreachable without trying it."""
        return True

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """
        Send *prompt* and return the reply text.

        Raises
        ------
        ModelUnavailableError
            The endpoint could not be reached (connection refused, DNS, timeout).
        ModelClientError
            The endpoint answered with an error.
        """


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_client("tgi")
class TGIClient(BaseModelClient):
    """TGI-based client with an httpx transport."""

    def complete(self, prompt: str) -> str:
        payload = {
            "inputs": prompt,
            "parameters": {"max_new_tokens": 512, "temperature": 0.2, "stop": ["</s>"]},
        }

        try:
            with httpx.Client(timeout=self.config.MODEL_TIMEOUT_S) as client:
                resp = client.post(self.config.TGI_ENDPOINT, json=payload)
                resp.raise_for_status()
                content = resp.json()["generated_text"]
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error("TGI endpoint unreachable: %s", str(e))
            raise ModelUnavailableError(f"TGI endpoint unreachable: {e}") from e
        except httpx.HTTPError as e:
            logger.error("TGI request error: %s", str(e))
            raise ModelClientError(f"Error calling TGI endpoint: {e}") from e
        except (KeyError, ValueError) as e:
            logger.error("TGI returned an unexpected payload: %s", str(e))
            raise ModelClientError(f"Error processing TGI response: {e}") from e

        logger.debug("TGI response: %s", content)
        return content


@register_client("openai")
class OpenAIClient(BaseModelClient):
    """OpenAI chat-completions client in JSON mode."""

    def is_available(self) -> bool:
        return bool(self.config.OPENAI_API_KEY)

    def complete(self, prompt: str) -> str:
        import openai  # pylint: disable=import-outside-toplevel

        client = openai.OpenAI(
            api_key=self.config.OPENAI_API_KEY, timeout=self.config.MODEL_TIMEOUT_S
        )

        try:
            resp = client.chat.completions.create(
                model=self.config.OPENAI_MODEL,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except openai.APIConnectionError as e:
            logger.error("OpenAI endpoint unreachable: %s", str(e))
            raise ModelUnavailableError(f"OpenAI endpoint unreachable: {e}") from e
        except openai.OpenAIError as e:
            logger.error("OpenAI client error: %s", str(e))
            raise ModelClientError(f"Error calling OpenAI: {e}") from e

        content = resp.choices[0].message.content
        if not content:
            logger.error("OpenAI returned empty response")
            raise ModelClientError("Error: Empty response from OpenAI")

        logger.debug("OpenAI response: %s", content)
        return content


@register_client("anthropic")
class AnthropicClient(BaseModelClient):
    """Anthropic Claude client."""

    def is_available(self) -> bool:
        return bool(self.config.ANTHROPIC_API_KEY)

    def complete(self, prompt: str) -> str:
        import anthropic  # pylint: disable=import-outside-toplevel

        client = anthropic.Anthropic(
            api_key=self.config.ANTHROPIC_API_KEY, timeout=self.config.MODEL_TIMEOUT_S
        )

        try:
            response = client.messages.create(
                model=self.config.ANTHROPIC_MODEL,
                max_tokens=1024,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.2,
            )
        except anthropic.APIConnectionError as e:
            logger.error("Anthropic endpoint unreachable: %s", str(e))
            raise ModelUnavailableError(f"Anthropic endpoint unreachable: {e}") from e
        except anthropic.AnthropicError as e:
            logger.error("Anthropic client error: %s", str(e))
            raise ModelClientError(f"Error calling Anthropic: {e}") from e

        # Handle different content block types from Anthropic API
        if response.content and response.content[0].type == "text":
            content = response.content[0].text
        else:
            # For non-text blocks, convert the block to a string representation
            content = str(response.content[0]) if response.content else ""

        logger.debug("Anthropic response: %s", content)
        return content


@register_client("offline")
class OfflineClient(BaseModelClient):
    """Client for robots with no model connectivity; the loop always falls back."""

    def is_available(self) -> bool:
        return False

    def complete(self, prompt: str) -> str:
        raise ModelUnavailableError("Offline mode: no model endpoint configured")
