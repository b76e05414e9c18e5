"""OpenAI-style chat completions adapter."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from ..config import AdapterConfig
from ..models.turn import ConversationTurn
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

OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAIAdapter(ModelAdapter):
    """Adapter for OpenAI and OpenAI-compatible chat completion endpoints."""

    provider_name = "OpenAI"
    default_model = "gpt-3.5-turbo"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.api_endpoint = config.api_endpoint or OPENAI_BASE_URL
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self.api_endpoint,
                api_key=self.config.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def format_messages(self, turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
        """Chat completions accept the role-tagged turns as they are."""
        return [turn.to_dict() for turn in turns]

    async def generate_response(
        self, turns: Sequence[ConversationTurn], caller_id: str = ""
    ) -> str:
        logger.debug(f"Sending request to OpenAI, message count: {len(turns)}")
        request: Dict[str, Any] = {
            "model": self.model_name,
            "messages": self.format_messages(turns),
            "temperature": self.config.temperature,
        }
        if caller_id:
            request["user"] = caller_id

        try:
            response = await self._with_timeout(self.client.chat.completions.create(**request))
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI request timed out: {e}")
            raise ResponseTimeoutError(
                TIMEOUT_MESSAGE, provider=self.provider_name, model=self.model_name
            ) from e
        except openai.APIStatusError as e:
            logger.error(f"OpenAI API request failed: {e.status_code} {e.body!r}")
            raise classify_error(
                e.status_code,
                error_detail(e.body, e.message),
                provider=self.provider_name,
                model=self.model_name,
            ) from e
        except openai.APIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise ProviderError(str(e), provider=self.provider_name, model=self.model_name) from e

        choices = getattr(response, "choices", None)
        if not choices or choices[0].message is None:
            raise self._invalid_response(response)

        choice = choices[0]
        if choice.finish_reason == "content_filter":
            logger.warning("OpenAI response was blocked by the content filter")
            return BLOCKED_CONTENT_MESSAGE

        content = choice.message.content
        if not isinstance(content, str):
            raise self._invalid_response(response)

        usage = getattr(response, "usage", None)
        if usage:
            logger.debug(
                f"Used {usage.total_tokens} tokens "
                f"(prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens})"
            )

        return content.strip()

    async def dispose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        await super().dispose()
