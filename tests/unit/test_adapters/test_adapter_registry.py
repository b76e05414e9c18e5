"""Tests for adapter registration and creation."""

from unittest.mock import patch

import pytest

from chat_model.adapters.base import ModelAdapter
from chat_model.adapters.claude_adapter import ClaudeAdapter
from chat_model.adapters.openai_adapter import OpenAIAdapter
from chat_model.adapters.registry import (
    AdapterRegistry,
    adapter_registry,
    create_adapter,
    register_adapter,
)
from chat_model.config import ConfigurationError
from tests.fixtures import FakeAdapter, create_test_config


class LocalAdapter(ModelAdapter):
    provider_name = "Local"
    default_model = "local-llm"

    async def generate_response(self, turns, caller_id=""):
        return "local reply"


class TestAdapterRegistry:
    @pytest.fixture
    def registry(self):
        return AdapterRegistry()

    def test_register_and_get(self, registry):
        registry.register("local", LocalAdapter)

        assert registry.get("local") is LocalAdapter
        assert registry.list_adapters() == ["local"]

    def test_register_requires_name(self, registry):
        with pytest.raises(ValueError):
            registry.register("", LocalAdapter)

    def test_register_replaces_with_warning(self, registry, caplog):
        registry.register("local", LocalAdapter)
        registry.register("local", FakeAdapter)

        assert registry.get("local") is FakeAdapter
        assert "already registered" in caplog.text

    def test_unregister(self, registry):
        registry.register("local", LocalAdapter)
        registry.unregister("local")
        registry.unregister("missing")

        assert registry.list_adapters() == []

    def test_create_builtin(self, registry):
        adapter = registry.create(create_test_config(modelType="openai"))

        assert isinstance(adapter, OpenAIAdapter)

    def test_create_claude(self, registry):
        adapter = registry.create(create_test_config(modelType="claude", modelName="claude-2"))

        assert isinstance(adapter, ClaudeAdapter)
        assert adapter.model_name == "claude-2.0"

    def test_unknown_type_falls_back_to_openai(self, registry, caplog):
        adapter = registry.create(create_test_config(modelType="llama"))

        assert isinstance(adapter, OpenAIAdapter)
        assert "Unknown model type: llama" in caplog.text

    def test_create_custom(self, registry):
        registry.register("local", LocalAdapter)

        adapter = registry.create(
            create_test_config(modelType="custom", customModelAdapter="local")
        )

        assert isinstance(adapter, LocalAdapter)
        assert adapter.config.api_key == "test-api-key"

    def test_custom_accepts_any_factory(self, registry):
        registry.register("fake", lambda adapter_config: FakeAdapter())

        adapter = registry.create(create_test_config(modelType="custom", customModelAdapter="fake"))

        assert isinstance(adapter, FakeAdapter)

    def test_custom_requires_adapter_name(self, registry):
        with pytest.raises(ConfigurationError, match="customModelAdapter is required"):
            registry.create(create_test_config(modelType="custom"))

    def test_custom_must_be_registered(self, registry):
        with pytest.raises(ConfigurationError, match="not registered"):
            registry.create(create_test_config(modelType="custom", customModelAdapter="nope"))

    def test_missing_api_key_is_configuration_error(self, registry):
        with pytest.raises(ConfigurationError, match="API key is not set"):
            registry.create(create_test_config(apiKey=""))

    def test_factory_failure_is_wrapped(self, registry):
        def broken(adapter_config):
            raise RuntimeError("cannot connect")

        registry.register("broken", broken)

        with pytest.raises(ConfigurationError, match="Failed to load model adapter: cannot connect"):
            registry.create(create_test_config(modelType="custom", customModelAdapter="broken"))

    def test_adapter_must_implement_capabilities(self, registry):
        registry.register("incomplete", lambda adapter_config: object())

        with pytest.raises(ConfigurationError, match="generate_response"):
            registry.create(
                create_test_config(modelType="custom", customModelAdapter="incomplete")
            )


class TestDefaultRegistry:
    def test_register_adapter_uses_default_registry(self):
        with patch.dict(adapter_registry._factories, clear=True):
            register_adapter("local", LocalAdapter)

            adapter = create_adapter(
                create_test_config(modelType="custom", customModelAdapter="local")
            )

        assert isinstance(adapter, LocalAdapter)

    def test_create_adapter_with_explicit_registry(self):
        registry = AdapterRegistry()
        registry.register("fake", lambda adapter_config: FakeAdapter())

        adapter = create_adapter(
            create_test_config(modelType="custom", customModelAdapter="fake"), registry
        )

        assert isinstance(adapter, FakeAdapter)
