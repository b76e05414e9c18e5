"""Adapter registry and factory."""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..config import AdapterConfig, ChatModelConfig, ConfigurationError
from .claude_adapter import ClaudeAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[AdapterConfig], Any]

BUILTIN_ADAPTERS: Dict[str, AdapterFactory] = {
    "openai": OpenAIAdapter,
    "claude": ClaudeAdapter,
    "gemini": GeminiAdapter,
}


class AdapterRegistry:
    """Registry for custom model adapters.

    Custom adapters are registered explicitly under a name, and selected with
    ``modelType="custom"`` plus ``customModelAdapter=<name>``.
    """

    def __init__(self):
        self._factories: Dict[str, AdapterFactory] = {}

    def register(self, name: str, factory: AdapterFactory) -> None:
        """Register a custom adapter factory.

        Args:
            name: Name referenced by ``customModelAdapter``.
            factory: A :class:`ModelAdapter` subclass, or any callable taking an
                :class:`AdapterConfig` and returning an object with async
                ``generate_response`` and ``dispose`` methods.
        """
        if not name:
            raise ValueError("Adapter name is required")
        if name in self._factories:
            logger.warning(f"Adapter {name} already registered, replacing it")
        self._factories[name] = factory
        logger.info(f"Registered custom adapter: {name}")

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def get(self, name: str) -> Optional[AdapterFactory]:
        return self._factories.get(name)

    def list_adapters(self) -> List[str]:
        return list(self._factories.keys())

    def create(self, config: ChatModelConfig) -> Any:
        """Create the adapter selected by ``config.model_type``."""
        factory = self._resolve(config)
        adapter_config = config.adapter_config()
        try:
            adapter = factory(adapter_config)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to load model adapter: {e}")
            raise ConfigurationError(f"Failed to load model adapter: {e}") from e

        for capability in ("generate_response", "dispose"):
            if not callable(getattr(adapter, capability, None)):
                raise ConfigurationError(
                    f"Model adapter {type(adapter).__name__} does not implement {capability}()"
                )
        return adapter

    def _resolve(self, config: ChatModelConfig) -> AdapterFactory:
        if config.model_type == "custom":
            if not config.custom_model_adapter:
                raise ConfigurationError(
                    "customModelAdapter is required when modelType is 'custom'"
                )
            factory = self._factories.get(config.custom_model_adapter)
            if factory is None:
                raise ConfigurationError(
                    f"Custom model adapter {config.custom_model_adapter!r} is not registered"
                )
            return factory

        if config.model_type not in BUILTIN_ADAPTERS:
            logger.warning(f"Unknown model type: {config.model_type}, using the OpenAI adapter")
            return OpenAIAdapter
        return BUILTIN_ADAPTERS[config.model_type]


adapter_registry = AdapterRegistry()


def register_adapter(name: str, factory: AdapterFactory) -> None:
    """Register a custom adapter on the default registry."""
    adapter_registry.register(name, factory)


def create_adapter(config: ChatModelConfig, registry: Optional[AdapterRegistry] = None) -> Any:
    """Create the configured adapter from ``registry`` (the default registry if omitted)."""
    return (registry or adapter_registry).create(config)


__all__ = [
    "AdapterRegistry",
    "BUILTIN_ADAPTERS",
    "adapter_registry",
    "create_adapter",
    "register_adapter",
]
