"""Completion endpoint client.

Wraps an OpenAI-compatible chat completions API (Groq by default) and turns
each response into a CompletionTurn: either text content or a batch of tool
call requests. SDK exceptions are translated into CompletionEndpointError with
a category callers can branch on.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

import openai
from openai import AsyncOpenAI

from spendsense.config import Settings, settings as default_settings
from spendsense.assistant.errors import (
    CompletionEndpointError,
    CompletionErrorCategory,
    MissingCredentialError,
)
from spendsense.assistant.schemas import CompletionTurn, ToolCallRequest

logger = logging.getLogger(__name__)


class CompletionEndpoint(Protocol):
    """Anything that can answer a transcript with one assistant turn."""

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> CompletionTurn:
        ...


def is_completion_configured(config: Settings = default_settings) -> bool:
    """True when a non-empty completion API key is set."""
    return bool(config.GROQ_API_KEY and config.GROQ_API_KEY.strip())


def classify_error(error: Exception) -> CompletionEndpointError:
    """Map an SDK exception to a categorized CompletionEndpointError."""
    if isinstance(error, openai.RateLimitError):
        category = CompletionErrorCategory.RATE_LIMIT
    elif isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        category = CompletionErrorCategory.AUTHENTICATION
    elif isinstance(error, openai.APITimeoutError):
        # Must be checked before APIConnectionError, its parent class
        category = CompletionErrorCategory.TIMEOUT
    elif isinstance(error, openai.APIConnectionError):
        category = CompletionErrorCategory.CONNECTION
    else:
        category = CompletionErrorCategory.GENERIC

    return CompletionEndpointError(category, str(error) or error.__class__.__name__)


def parse_completion_message(message: Any) -> CompletionTurn:
    """Normalize one response message from the SDK."""
    tool_calls = []
    for tc in getattr(message, "tool_calls", None) or []:
        function = getattr(tc, "function", None)
        if getattr(tc, "type", "function") != "function" or function is None:
            continue
        tool_calls.append(ToolCallRequest(
            id=tc.id,
            tool_name=function.name,
            arguments_json=function.arguments or "{}",
        ))

    # Only echo the calls that will be answered with a tool message
    raw_message = message.model_dump(exclude_none=True)
    answered = {call.id for call in tool_calls}
    echoed = [tc for tc in raw_message.pop("tool_calls", None) or [] if tc.get("id") in answered]
    if echoed:
        raw_message["tool_calls"] = echoed

    return CompletionTurn(
        content=message.content,
        tool_calls=tool_calls,
        raw_message=raw_message,
    )


class GroqCompletionClient:
    """CompletionEndpoint backed by the OpenAI SDK pointed at Groq."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "GroqCompletionClient":
        """
        Build a client from application settings.

        Raises MissingCredentialError, without touching the network, if the
        API key is absent.
        """
        config = config or default_settings
        if not is_completion_configured(config):
            raise MissingCredentialError("GROQ_API_KEY")

        client = AsyncOpenAI(
            api_key=config.GROQ_API_KEY,
            base_url=config.GROQ_BASE_URL,
        )
        return cls(
            client=client,
            model=config.GROQ_MODEL,
            temperature=config.GROQ_TEMPERATURE,
            max_tokens=config.GROQ_MAX_TOKENS,
        )

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> CompletionTurn:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            error = classify_error(e)
            logger.error(f"Completion request failed: {error}")
            raise error from e

        if not response.choices:
            raise CompletionEndpointError(
                CompletionErrorCategory.BAD_RESPONSE,
                "Completion response contained no choices",
            )

        return parse_completion_message(response.choices[0].message)
