"""Configuration for the chat model plugin."""

import logging
import os
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."

_RESET_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ConfigurationError(Exception):
    """Raised when the plugin cannot start with the given configuration."""


@dataclass(frozen=True)
class AdapterConfig:
    """Settings handed to a model adapter at construction."""

    api_key: str
    api_endpoint: Optional[str] = None
    model_name: Optional[str] = None
    temperature: float = 0.7
    timeout_ms: int = 60000


@dataclass(frozen=True)
class UsageLimitConfig:
    """Per-user daily message limit."""

    enabled: bool = False
    max_messages_per_user: int = 100
    # Validated but not applied: the day boundary is a calendar date comparison.
    reset_time: str = "00:00"

    def __post_init__(self):
        if self.max_messages_per_user <= 0:
            raise ConfigurationError("usageLimit.maxMessagesPerUser must be positive")
        if not _RESET_TIME_PATTERN.match(self.reset_time):
            raise ConfigurationError(
                f"usageLimit.resetTime must be HH:MM (24h), got {self.reset_time!r}"
            )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "UsageLimitConfig":
        data = data or {}
        return cls(
            enabled=_to_bool(data.get("enabled", False)),
            max_messages_per_user=int(data.get("maxMessagesPerUser", 100)),
            reset_time=str(data.get("resetTime", "00:00")),
        )


@dataclass(frozen=True)
class ChatModelConfig:
    """Plugin configuration.

    Built once when the plugin starts; every component receives it (or the
    :class:`AdapterConfig` derived from it) explicitly.
    """

    model_type: str = "openai"
    api_key: str = ""
    api_endpoint: Optional[str] = None
    model_name: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    context_size: int = 10
    temperature: float = 0.7
    response_timeout: float = 60
    trigger_ratio: float = 100
    trigger_prefix: str = ""
    trigger_private: bool = True
    trigger_group: bool = False
    show_thinking_message: bool = False
    custom_model_adapter: Optional[str] = None
    usage_limit: UsageLimitConfig = field(default_factory=UsageLimitConfig)
    persist_failed_turns: bool = False

    def __post_init__(self):
        if not 0 <= self.temperature <= 2:
            raise ConfigurationError(f"temperature must be between 0 and 2, got {self.temperature}")
        if not 0 <= self.trigger_ratio <= 100:
            raise ConfigurationError(
                f"triggerRatio must be between 0 and 100, got {self.trigger_ratio}"
            )
        if self.context_size < 1:
            raise ConfigurationError(f"contextSize must be at least 1, got {self.context_size}")
        if self.response_timeout <= 0:
            raise ConfigurationError(
                f"responseTimeout must be positive, got {self.response_timeout}"
            )

    @property
    def max_context_length(self) -> int:
        """One system turn plus ``context_size`` user/assistant pairs."""
        return self.context_size * 2 + 1

    def adapter_config(self) -> AdapterConfig:
        return AdapterConfig(
            api_key=self.api_key,
            api_endpoint=self.api_endpoint or None,
            model_name=self.model_name or None,
            temperature=self.temperature,
            timeout_ms=int(self.response_timeout * 1000),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ChatModelConfig":
        """Build a config from the host's option mapping (camelCase keys)."""
        return cls(
            model_type=str(data.get("modelType", "openai")),
            api_key=data.get("apiKey") or "",
            api_endpoint=data.get("apiEndpoint") or None,
            model_name=data.get("modelName") or None,
            system_prompt=data.get("systemPrompt", DEFAULT_SYSTEM_PROMPT),
            context_size=int(data.get("contextSize", 10)),
            temperature=float(data.get("temperature", 0.7)),
            response_timeout=float(data.get("responseTimeout", 60)),
            trigger_ratio=float(data.get("triggerRatio", 100)),
            trigger_prefix=data.get("triggerPrefix") or "",
            trigger_private=_to_bool(data.get("triggerPrivate", True)),
            trigger_group=_to_bool(data.get("triggerGroup", False)),
            show_thinking_message=_to_bool(data.get("showThinkingMessage", False)),
            custom_model_adapter=data.get("customModelAdapter") or None,
            usage_limit=UsageLimitConfig.from_mapping(data.get("usageLimit")),
            persist_failed_turns=_to_bool(data.get("persistFailedTurns", False)),
        )

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "ChatModelConfig":
        """Build a config from ``CHAT_MODEL_*`` environment variables."""
        if load_env_file:
            load_env()

        options: dict[str, Any] = {}
        for env_name, option in _ENV_OPTIONS.items():
            value = os.getenv(env_name)
            if value is not None and value != "":
                options[option] = value

        usage_limit: dict[str, Any] = {}
        for env_name, option in _ENV_USAGE_OPTIONS.items():
            value = os.getenv(env_name)
            if value is not None and value != "":
                usage_limit[option] = value
        options["usageLimit"] = usage_limit

        if "apiKey" in options:
            logger.info(f"CHAT_MODEL_API_KEY found (length: {len(options['apiKey'])})")
        else:
            logger.warning("CHAT_MODEL_API_KEY not found in environment")

        return cls.from_mapping(options)


_ENV_OPTIONS = {
    "CHAT_MODEL_TYPE": "modelType",
    "CHAT_MODEL_API_KEY": "apiKey",
    "CHAT_MODEL_API_ENDPOINT": "apiEndpoint",
    "CHAT_MODEL_NAME": "modelName",
    "CHAT_MODEL_SYSTEM_PROMPT": "systemPrompt",
    "CHAT_MODEL_CONTEXT_SIZE": "contextSize",
    "CHAT_MODEL_TEMPERATURE": "temperature",
    "CHAT_MODEL_RESPONSE_TIMEOUT": "responseTimeout",
    "CHAT_MODEL_TRIGGER_RATIO": "triggerRatio",
    "CHAT_MODEL_TRIGGER_PREFIX": "triggerPrefix",
    "CHAT_MODEL_TRIGGER_PRIVATE": "triggerPrivate",
    "CHAT_MODEL_TRIGGER_GROUP": "triggerGroup",
    "CHAT_MODEL_SHOW_THINKING": "showThinkingMessage",
    "CHAT_MODEL_CUSTOM_ADAPTER": "customModelAdapter",
    "CHAT_MODEL_PERSIST_FAILED_TURNS": "persistFailedTurns",
}

_ENV_USAGE_OPTIONS = {
    "CHAT_MODEL_USAGE_LIMIT_ENABLED": "enabled",
    "CHAT_MODEL_USAGE_LIMIT_MAX": "maxMessagesPerUser",
    "CHAT_MODEL_USAGE_LIMIT_RESET_TIME": "resetTime",
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_env() -> bool:
    """Load a .env file from the entry point's directory or the current directory."""
    main_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    env_locations = [
        os.path.join(main_dir, ".env"),
        os.path.join(os.getcwd(), ".env"),
    ]

    for env_path in env_locations:
        if os.path.exists(env_path):
            logger.info(f"Loading .env from {env_path}")
            return load_dotenv(env_path)

    logger.debug("No .env file found in expected locations")
    return False
