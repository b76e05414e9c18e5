"""Anthropic Messages API adapter."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import anthropic
from anthropic import AsyncAnthropic

from ..config import AdapterConfig
from ..models.turn import ASSISTANT, SYSTEM, USER, ConversationTurn
from .base import (
    BLOCKED_CONTENT_MESSAGE,
    TIMEOUT_MESSAGE,
    ModelAdapter,
    ProviderError,
    ResponseTimeoutError,
    classify_error,
    error_detail,
)

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
MAX_TOKENS = 4000

MODEL_ALIASES = {
    "claude-3-opus": "claude-3-opus-20240229",
    "claude-3-sonnet": "claude-3-sonnet-20240229",
    "claude-3-haiku": "claude-3-haiku-20240307",
    "claude-2": "claude-2.0",
    "claude-instant": "claude-instant-1.2",
}


class ClaudeAdapter(ModelAdapter):
    """Adapter for Anthropic's Messages API."""

    provider_name = "Claude"
    default_model = "claude-3-sonnet-20240229"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        endpoint = (config.api_endpoint or ANTHROPIC_BASE_URL).rstrip("/")
        # The SDK appends /v1/messages itself.
        if endpoint.endswith("/v1"):
            endpoint = endpoint[: -len("/v1")]
        self.api_endpoint = endpoint
        self._client: Optional[AsyncAnthropic] = None

    def resolve_model_name(self, model_name: Optional[str]) -> str:
        if not model_name:
            return self.default_model
        return MODEL_ALIASES.get(model_name, model_name)

    @property
    def client(self) -> AsyncAnthropic:
        """Get or create the async Anthropic client."""
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.api_endpoint,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def format_messages(
        self, turns: Sequence[ConversationTurn]
    ) -> Tuple[str, List[Dict[str, str]]]:
        """Split off the system prompt and fold the rest into user/assistant turns.

        Consecutive turns with the same role (an unanswered user turn kept
        after a failed call) are joined into one message.
        """
        system = next((turn.content for turn in turns if turn.role == SYSTEM), "")
        messages: List[Dict[str, str]] = []
        for turn in turns:
            if turn.role == SYSTEM:
                continue
            role = ASSISTANT if turn.role == ASSISTANT else USER
            if messages and messages[-1]["role"] == role:
                messages[-1]["content"] = f"{messages[-1]['content']}\n\n{turn.content}"
            else:
                messages.append({"role": role, "content": turn.content})
        return system, messages

    async def generate_response(
        self, turns: Sequence[ConversationTurn], caller_id: str = ""
    ) -> str:
        logger.debug(f"Sending request to Claude, message count: {len(turns)}")
        system, messages = self.format_messages(turns)

        request: Dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": MAX_TOKENS,
        }
        if system:
            request["system"] = system
        if caller_id:
            request["metadata"] = {"user_id": caller_id}

        try:
            response = await self._with_timeout(self.client.messages.create(**request))
        except anthropic.APITimeoutError as e:
            logger.error(f"Claude request timed out: {e}")
            raise ResponseTimeoutError(
                TIMEOUT_MESSAGE, provider=self.provider_name, model=self.model_name
            ) from e
        except anthropic.APIStatusError as e:
            logger.error(f"Claude API request failed: {e.status_code} {e.body!r}")
            raise classify_error(
                e.status_code,
                error_detail(e.body, e.message),
                provider=self.provider_name,
                model=self.model_name,
            ) from e
        except anthropic.APIError as e:
            logger.error(f"Claude request failed: {e}")
            raise ProviderError(str(e), provider=self.provider_name, model=self.model_name) from e

        if getattr(response, "stop_reason", None) == "refusal":
            logger.warning("Claude declined the request")
            return BLOCKED_CONTENT_MESSAGE

        blocks = getattr(response, "content", None) or []
        text = next(
            (block.text for block in blocks if getattr(block, "type", "text") == "text"), None
        )
        if not isinstance(text, str) or not text:
            raise self._invalid_response(response)

        usage = getattr(response, "usage", None)
        if usage:
            logger.debug(
                f"Used {usage.input_tokens} input tokens and {usage.output_tokens} output tokens"
            )

        return text.strip()

    async def dispose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        await super().dispose()
