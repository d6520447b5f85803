"""LLM client module for Claude API interactions.

Calls the Anthropic Messages API directly with an explicit timeout, one
bounded retry for transient failures and a circuit breaker. Failures come
out as the chat error taxonomy: ``ConfigError``, ``TransportError`` or
``ResponseParseError``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import anthropic

from scribe_chat.core.config import settings
from scribe_chat.core.exceptions import ConfigError, ResponseParseError, TransportError
from scribe_chat.core.resilience import (
    CircuitBreaker,
    CircuitBreakerOpen,
    model_circuit_breaker,
    retry,
)

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    """Text-in, text-out model transport."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str: ...

    @property
    def configured(self) -> bool: ...


def is_transient(exc: BaseException) -> bool:
    """Timeouts, connection failures, 429 and 5xx are worth one more try."""
    if isinstance(exc, anthropic.APIConnectionError):
        return True
    if isinstance(exc, anthropic.APIStatusError):
        return exc.status_code == 429 or exc.status_code >= 500
    return False


class LLMClient:
    """Async client for Claude API interactions."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        """Initialize LLM client.

        Args:
            model: Claude model to use for generation.
            api_key: Overrides ``ANTHROPIC_API_KEY``.
            circuit_breaker: Overrides the shared model circuit breaker.
            client: Preconfigured SDK client (tests).
        """
        self._api_key = (
            api_key if api_key is not None else settings.ANTHROPIC_API_KEY.get_secret_value()
        )
        self._model = model or settings.CHAT_MODEL
        self._breaker = circuit_breaker or model_circuit_breaker
        # Retries are ours (bounded, logged); the SDK's own retries stay off
        self._client = client or anthropic.AsyncAnthropic(
            api_key=self._api_key or "unset",
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @retry(max_retries=settings.LLM_MAX_RETRIES, retry_on=is_transient)
    async def _create(self, **kwargs: Any) -> Any:
        return await self._breaker.call(self._client.messages.create, **kwargs)

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send ordered ``{role, content}`` turns and return the reply text.

        Args:
            messages: Conversation turns, alternating user/assistant.
            max_tokens: Maximum tokens in the reply.
            temperature: Sampling temperature.

        Returns:
            The concatenated text blocks of the reply.

        Raises:
            ConfigError: If no API key is configured.
            TransportError: If the API failed, timed out or the circuit is open.
            ResponseParseError: If the reply carried no text.
        """
        if not self.configured:
            raise ConfigError("Anthropic API key is missing")

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens or settings.CHAT_MAX_TOKENS,
            "messages": messages,
            "temperature": settings.CHAT_TEMPERATURE if temperature is None else temperature,
        }

        logger.debug(
            "Calling Claude API",
            extra={"model": self._model, "message_count": len(messages)},
        )
        start = time.time()
        try:
            response = await self._create(**kwargs)
        except CircuitBreakerOpen as e:
            logger.warning("Claude API circuit breaker open")
            raise TransportError("Model circuit breaker is open", status=503) from e
        except anthropic.APIStatusError as e:
            if e.status_code == 429:
                logger.warning("Claude API rate limited")
            else:
                logger.error("Claude API error: status=%s", e.status_code)
            raise TransportError(f"Model API error: {e.status_code}", status=e.status_code) from e
        except anthropic.APIConnectionError as e:
            logger.error("Claude API connection error: %s", str(e))
            raise TransportError(f"Failed to reach model API: {e}") from e
        except anthropic.APIResponseValidationError as e:
            logger.error("Claude API returned a malformed response")
            raise ResponseParseError(f"Malformed model response: {e}") from e
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", type(e).__name__)
            raise TransportError(f"Model API error: {e}") from e

        text_parts = [
            getattr(block, "text", "")
            for block in getattr(response, "content", None) or []
            if getattr(block, "type", None) == "text"
        ]
        text = "\n".join(part for part in text_parts if part)
        if not text:
            raise ResponseParseError()

        logger.debug(
            "Claude API response received",
            extra={
                "response_length": len(text),
                "latency_ms": int((time.time() - start) * 1000),
            },
        )
        return text
