"""Google Gemini adapter."""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types import RequestOptions

from ..config import AdapterConfig
from ..models.turn import SYSTEM, USER, ConversationTurn
from .base import (
    BLOCKED_CONTENT_MESSAGE,
    TIMEOUT_MESSAGE,
    ModelAdapter,
    ResponseTimeoutError,
    classify_error,
)

logger = logging.getLogger(__name__)

MODEL = "model"

SYSTEM_INSTRUCTION_PREFIX = "System instruction: "
ACKNOWLEDGEMENT_TEXT = "Understood, I will follow these instructions. How can I help you?"
FILLER_USER_TEXT = "Hello"

GENERATION_CONFIG = {
    "max_output_tokens": 2048,
    "top_p": 0.95,
    "top_k": 40,
}


def _part(text: str) -> Dict[str, Any]:
    return {"parts": [{"text": text}]}


class GeminiAdapter(ModelAdapter):
    """Adapter for Gemini models via the google-generativeai SDK.

    Gemini has no system role and expects turns alternating between ``user``
    and ``model``, starting with ``user``.
    """

    provider_name = "Gemini"
    default_model = "gemini-pro"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        client_options = None
        if config.api_endpoint:
            client_options = {"api_endpoint": endpoint_host(config.api_endpoint)}
        genai.configure(api_key=config.api_key, client_options=client_options)
        self._model = genai.GenerativeModel(
            self.model_name,
            generation_config={"temperature": config.temperature, **GENERATION_CONFIG},
        )

    def format_messages(self, turns: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
        """Convert turns into Gemini ``contents``."""
        system = next((turn.content for turn in turns if turn.role == SYSTEM), "")
        contents: List[Dict[str, Any]] = []

        if system:
            contents.append({"role": USER, **_part(f"{SYSTEM_INSTRUCTION_PREFIX}{system}")})
            contents.append({"role": MODEL, **_part(ACKNOWLEDGEMENT_TEXT)})

        for turn in turns:
            if turn.role == SYSTEM:
                continue
            role = USER if turn.role == USER else MODEL
            if contents and contents[-1]["role"] == role:
                # Gemini rejects two turns in a row from the same side.
                contents[-1]["parts"].append({"text": turn.content})
            else:
                contents.append({"role": role, **_part(turn.content)})

        if not contents or contents[0]["role"] != USER:
            logger.warning("Message sequence does not start with a user turn, adjusted for Gemini")
            contents.insert(0, {"role": USER, **_part(FILLER_USER_TEXT)})

        return contents

    async def generate_response(
        self, turns: Sequence[ConversationTurn], caller_id: str = ""
    ) -> str:
        logger.debug(f"Sending request to Gemini, message count: {len(turns)}")
        contents = self.format_messages(turns)

        try:
            response = await self._with_timeout(
                self._model.generate_content_async(
                    contents, request_options=RequestOptions(timeout=self.timeout)
                )
            )
        except google_exceptions.DeadlineExceeded as e:
            logger.error(f"Gemini request timed out: {e}")
            raise ResponseTimeoutError(
                TIMEOUT_MESSAGE, provider=self.provider_name, model=self.model_name
            ) from e
        except google_exceptions.GoogleAPICallError as e:
            status_code = e.code if isinstance(e.code, int) else None
            logger.error(f"Gemini API request failed: {status_code} {e.message}")
            raise classify_error(
                status_code,
                e.message or str(e),
                provider=self.provider_name,
                model=self.model_name,
            ) from e

        candidates = getattr(response, "candidates", None)
        if not candidates:
            if _block_reason(response):
                logger.warning(f"Gemini blocked the prompt: {_block_reason(response)}")
                return BLOCKED_CONTENT_MESSAGE
            raise self._invalid_response(response)

        candidate = candidates[0]
        if _enum_name(getattr(candidate, "finish_reason", None)) == "SAFETY":
            logger.warning("Gemini response was blocked by the safety filter")
            return BLOCKED_CONTENT_MESSAGE

        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None)
        if not parts or not isinstance(getattr(parts[0], "text", None), str):
            raise self._invalid_response(response)

        usage = getattr(response, "usage_metadata", None)
        if usage:
            logger.debug(
                f"Used {usage.prompt_token_count} prompt tokens "
                f"and {usage.candidates_token_count} candidate tokens"
            )

        return parts[0].text.strip()


def endpoint_host(endpoint: str) -> str:
    """Reduce an endpoint URL to the ``host[:port]`` the gRPC transport expects.

    ``https://generativelanguage.googleapis.com/v1beta`` becomes
    ``generativelanguage.googleapis.com``; a bare host is returned unchanged.
    """
    endpoint = endpoint.strip()
    parsed = urlparse(endpoint if "//" in endpoint else f"//{endpoint}")
    return parsed.netloc or endpoint


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "name", str(value))


def _block_reason(response: Any) -> Optional[str]:
    feedback = getattr(response, "prompt_feedback", None)
    reason = _enum_name(getattr(feedback, "block_reason", None))
    if reason in (None, "", "BLOCK_REASON_UNSPECIFIED", "0"):
        return None
    return reason
