"""Model adapters for the chat model plugin."""

from .base import (
    BLOCKED_CONTENT_MESSAGE,
    AdapterError,
    AuthenticationError,
    InvalidResponseError,
    ModelAdapter,
    ProviderError,
    QuotaExceededError,
    RateLimitError,
    ResponseTimeoutError,
)
from .claude_adapter import ClaudeAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter
from .registry import AdapterRegistry, adapter_registry, create_adapter, register_adapter

__all__ = [
    "ModelAdapter",
    "AdapterError",
    "AuthenticationError",
    "InvalidResponseError",
    "ProviderError",
    "QuotaExceededError",
    "RateLimitError",
    "ResponseTimeoutError",
    "BLOCKED_CONTENT_MESSAGE",
    "OpenAIAdapter",
    "ClaudeAdapter",
    "GeminiAdapter",
    "AdapterRegistry",
    "adapter_registry",
    "create_adapter",
    "register_adapter",
]
