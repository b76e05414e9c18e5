"""Chat Model - answer unhandled chat messages with a large language model."""

__version__ = "1.1.3"

from .config import AdapterConfig, ChatModelConfig, ConfigurationError, UsageLimitConfig
from .plugin import ChatModelPlugin

__all__ = [
    "AdapterConfig",
    "ChatModelConfig",
    "ChatModelPlugin",
    "ConfigurationError",
    "UsageLimitConfig",
]
