"""Shared test fixtures for chat-gateway."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from chat_gateway.config import GatewayConfig
from chat_gateway.gateway import ChatGateway
from chat_gateway.testing import FakeTransport, InMemoryUsageSink
from chat_gateway.types import Message

_PROVIDER_ENV_VARS = (
    "LLM_PROVIDER",
    "LLM_MODEL",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URI",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URI",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URI",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of every test."""
    for name in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _offline_tokenizer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Count whitespace-separated words instead of downloading encodings."""
    monkeypatch.setattr(
        "chat_gateway.providers.openai.count_tokens",
        lambda text, model: len(text.split()),
    )


@pytest.fixture
def test_config() -> GatewayConfig:
    """Return a GatewayConfig with fake keys for every provider."""
    return GatewayConfig(
        openai={"api_key": "sk-openai-test"},  # type: ignore[arg-type]
        openrouter={"api_key": "sk-or-test"},  # type: ignore[arg-type]
        anthropic={"api_key": "sk-ant-test"},  # type: ignore[arg-type]
    )


@pytest.fixture
def sink() -> InMemoryUsageSink:
    """Return a fresh in-memory usage sink."""
    return InMemoryUsageSink()


@pytest.fixture
def messages() -> list[Message]:
    return [
        {"role": "system", "content": "You are terse."},
        {"role": "user", "content": "Say hello"},
    ]


@pytest.fixture
def make_gateway(
    test_config: GatewayConfig, sink: InMemoryUsageSink
) -> Callable[..., ChatGateway]:
    """Build a ChatGateway on a FakeTransport for the given provider."""

    def _make(
        transport: FakeTransport,
        provider: str = "openai",
        model: str = "gpt-4o-mini",
        **kwargs: Any,
    ) -> ChatGateway:
        config = test_config.model_copy(update={"provider": provider, "model": model})
        return ChatGateway(config, transport=transport, sink=sink, **kwargs)

    return _make
