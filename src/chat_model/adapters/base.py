"""Base classes for model adapters."""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional, Sequence, TypeVar

from ..config import AdapterConfig, ConfigurationError
from ..models.turn import ConversationTurn

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOCKED_CONTENT_MESSAGE = (
    "Sorry, your request triggered the content safety policy and I cannot provide that content."
)

TIMEOUT_MESSAGE = "Request timed out, please try again later"
RATE_LIMIT_MESSAGE = "Too many requests, please try again later"
AUTH_MESSAGE = "API key is invalid or expired"
QUOTA_MESSAGE = "API quota exhausted"
INVALID_RESPONSE_MESSAGE = "Received an invalid API response"

_QUOTA_EXHAUSTED_MARKERS = ("insufficient_quota", "exceeded your current quota")

# Prefix the openai and anthropic SDKs put in front of every status error message.
_SDK_STATUS_PREFIX = re.compile(r"^Error code: \d+(?: - )?")


class AdapterError(Exception):
    """Base exception for model adapter errors."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        model: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class ResponseTimeoutError(AdapterError):
    """Raised when the provider does not answer in time."""


class RateLimitError(AdapterError):
    """Raised when rate limited by the provider (HTTP 429)."""


class AuthenticationError(AdapterError):
    """Raised when the API key is rejected."""


class QuotaExceededError(AdapterError):
    """Raised when the account has run out of quota."""


class InvalidResponseError(AdapterError):
    """Raised when the provider payload does not have the expected shape."""


class ProviderError(AdapterError):
    """Any other provider failure."""


def classify_error(
    status_code: Optional[int],
    detail: str,
    provider: str = "",
    model: str = "",
) -> AdapterError:
    """Map an HTTP status and provider error text onto the adapter taxonomy.

    A 429 is a rate limit unless the payload carries an explicit exhausted
    quota marker (OpenAI's ``insufficient_quota``). Gemini words ordinary
    rate limits as "Resource has been exhausted (e.g. check quota)", so a
    bare mention of quota is only trusted for other statuses.
    """
    lowered = detail.lower()
    if any(marker in lowered for marker in _QUOTA_EXHAUSTED_MARKERS):
        return QuotaExceededError(QUOTA_MESSAGE, provider, model, status_code)
    if status_code == 429:
        return RateLimitError(RATE_LIMIT_MESSAGE, provider, model, status_code)
    if "quota" in lowered:
        return QuotaExceededError(QUOTA_MESSAGE, provider, model, status_code)
    if status_code in (401, 403) or "api key not valid" in lowered or "invalid api key" in lowered:
        return AuthenticationError(AUTH_MESSAGE, provider, model, status_code)

    message = "API request failed"
    if status_code is not None:
        message = f"{message}: {status_code}"
    if detail:
        message = f"{message}: {detail}"
    return ProviderError(message, provider, model, status_code)


class ModelAdapter(ABC):
    """Abstract base class for model adapters.

    An adapter is constructed once per plugin lifecycle from an immutable
    :class:`AdapterConfig` and translates the canonical turn sequence into one
    provider request.
    """

    provider_name: str = ""
    default_model: str = ""

    def __init__(self, config: AdapterConfig):
        if not config.api_key:
            logger.error(f"{self.display_name} API key is not set")
            raise ConfigurationError(f"{self.display_name} API key is not set")
        self.config = config
        self.model_name = self.resolve_model_name(config.model_name)
        logger.info(f"{self.display_name} adapter initialized with model: {self.model_name}")

    @property
    def display_name(self) -> str:
        return self.provider_name or type(self).__name__

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self.config.timeout_ms / 1000

    def resolve_model_name(self, model_name: Optional[str]) -> str:
        return model_name or self.default_model

    @abstractmethod
    async def generate_response(
        self, turns: Sequence[ConversationTurn], caller_id: str = ""
    ) -> str:
        """Generate a reply for the conversation.

        Args:
            turns: Conversation history, system turn first.
            caller_id: Identity of the requesting user, forwarded to providers
                that accept an end-user identifier.

        Returns:
            The trimmed reply text.

        Raises:
            AdapterError: If the request fails.
        """
        ...

    async def _with_timeout(self, request: Awaitable[T]) -> T:
        """Await a provider request, cancelling it once the timeout elapses."""
        try:
            return await asyncio.wait_for(request, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{self.display_name} request timed out after {self.timeout}s")
            raise ResponseTimeoutError(
                TIMEOUT_MESSAGE, provider=self.provider_name, model=self.model_name
            ) from e

    async def dispose(self) -> None:
        """Release held resources."""
        logger.debug(f"{self.display_name} adapter resources released")

    def _invalid_response(self, payload: Any) -> InvalidResponseError:
        logger.error(f"{self.display_name} returned an invalid response: {payload!r}")
        return InvalidResponseError(
            INVALID_RESPONSE_MESSAGE, provider=self.provider_name, model=self.model_name
        )


def error_detail(body: Any, message: str = "") -> str:
    """Pull the provider's own error text out of an SDK status error.

    Reads ``code``/``type`` and ``message`` from the JSON error body (with or
    without the ``{"error": {...}}`` envelope) and falls back to ``message``
    minus the SDK's ``Error code: NNN`` prefix, which the caller reports
    separately as the status code.
    """
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            code = error.get("code") or error.get("type") or ""
            text = error.get("message") or ""
            if code and text:
                return f"{code}: {text}"
            if code or text:
                return str(code or text)
        elif error:
            return str(error)
    elif isinstance(body, str) and body:
        return body
    return _SDK_STATUS_PREFIX.sub("", message or "")
