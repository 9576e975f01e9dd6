"""Tests for the provider registry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from chat_gateway.config import GatewayConfig
from chat_gateway.exceptions import ProviderInitError, ProviderNotFoundError
from chat_gateway.providers.anthropic import AnthropicFamily, AnthropicTransport
from chat_gateway.providers.openai import OpenAIFamily, OpenAITransport
from chat_gateway.registry import (
    _PROVIDERS,
    build_family,
    build_transport,
    list_providers,
    register_provider,
)


@pytest.mark.unit
class TestRegistry:
    def test_builtin_providers(self) -> None:
        assert {"openai", "openrouter", "anthropic"} <= set(list_providers())

    def test_families(self) -> None:
        assert isinstance(build_family("openai"), OpenAIFamily)
        assert isinstance(build_family("openrouter"), OpenAIFamily)
        assert isinstance(build_family("anthropic"), AnthropicFamily)

    def test_openrouter_uses_stand_in_tokenizer(self) -> None:
        family = build_family("openrouter")
        assert family._tokenizer_model == "gpt-4-turbo-preview"  # type: ignore[attr-defined]

    def test_register_and_build(self) -> None:
        family = MagicMock()
        transport = MagicMock()
        transport_factory = MagicMock(return_value=transport)
        register_provider("test_provider", lambda: family, transport_factory)
        try:
            config = GatewayConfig()
            assert build_family("test_provider") is family
            assert build_transport("test_provider", config) is transport
            transport_factory.assert_called_once_with("test_provider", config)
        finally:
            _PROVIDERS.pop("test_provider", None)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ProviderNotFoundError, match="nonexistent_xyz_999"):
            build_family("nonexistent_xyz_999")
        with pytest.raises(ProviderNotFoundError):
            build_transport("nonexistent_xyz_999", GatewayConfig())

    def test_missing_key_raises_provider_init_error(self) -> None:
        with pytest.raises(ProviderInitError, match="anthropic"):
            build_transport("anthropic", GatewayConfig())

    def test_builds_sdk_transports(self, test_config: GatewayConfig) -> None:
        with (
            patch("chat_gateway.providers.openai.AsyncOpenAI") as mock_openai,
            patch("chat_gateway.providers.anthropic.AsyncAnthropic") as mock_anthropic,
        ):
            assert isinstance(build_transport("openrouter", test_config), OpenAITransport)
            assert isinstance(build_transport("anthropic", test_config), AnthropicTransport)

        mock_openai.assert_called_once_with(
            api_key="sk-or-test",
            base_url="https://openrouter.ai/api/v1",
            timeout=120.0,
        )
        mock_anthropic.assert_called_once_with(
            api_key="sk-ant-test", base_url=None, timeout=120.0
        )
