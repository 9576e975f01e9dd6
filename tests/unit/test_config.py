"""Tests for GatewayConfig."""

from __future__ import annotations

import pytest

from chat_gateway.config import GatewayConfig, ProviderCredentials


@pytest.mark.unit
class TestGatewayConfig:
    def test_defaults(self) -> None:
        """Default config loads without errors or keys."""
        config = GatewayConfig()
        assert config.provider == "openai"
        assert config.model == "gpt-4o-2024-08-06"
        assert config.openai.api_key is None
        assert config.stream_callback_timeout_seconds == 5.0

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """LLM_ prefixed env vars override defaults."""
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("LLM_MODEL", "claude-3-haiku-20240307")
        monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "30")
        config = GatewayConfig()
        assert config.provider == "anthropic"
        assert config.model == "claude-3-haiku-20240307"
        assert config.timeout_seconds == 30

    def test_nested_credentials_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_OPENROUTER__API_KEY", "sk-or-nested")
        monkeypatch.setenv("LLM_OPENROUTER__BASE_URL", "https://proxy.example/v1")
        creds = GatewayConfig().credentials_for("openrouter")
        assert creds.api_key is not None
        assert creds.api_key.get_secret_value() == "sk-or-nested"
        assert creds.base_url == "https://proxy.example/v1"

    def test_api_key_fallback_anthropic(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Falls back to ANTHROPIC_API_KEY when no LLM_ key is set."""
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        creds = GatewayConfig().credentials_for("anthropic")
        assert creds.api_key is not None
        assert creds.api_key.get_secret_value() == "sk-ant-test"

    def test_base_uri_fallback_openai(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-test")
        monkeypatch.setenv("OPENAI_BASE_URI", "https://gateway.example/v1")
        creds = GatewayConfig().credentials_for("openai")
        assert creds.base_url == "https://gateway.example/v1"

    def test_openrouter_default_base_url(self) -> None:
        config = GatewayConfig()
        assert config.openrouter.base_url == "https://openrouter.ai/api/v1"
        assert config.openai.base_url is None

    def test_explicit_credentials_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        config = GatewayConfig(openai=ProviderCredentials(api_key="explicit"))  # type: ignore[arg-type]
        assert config.credentials_for("openai").api_key.get_secret_value() == "explicit"  # type: ignore[union-attr]

    def test_credentials_for_raises_when_missing(self) -> None:
        with pytest.raises(ValueError, match="No API key"):
            GatewayConfig().credentials_for("anthropic")

    def test_credentials_for_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="No credentials section"):
            GatewayConfig().credentials_for("mistral")
