"""Tests for exception hierarchy."""

from __future__ import annotations

import pytest

from chat_gateway.exceptions import (
    AiError,
    EmptyResultError,
    GatewayError,
    ProviderInitError,
    ProviderNotFoundError,
    SemanticFailureError,
    TransportError,
)


@pytest.mark.unit
class TestExceptions:
    def test_hierarchy(self) -> None:
        assert issubclass(ProviderNotFoundError, GatewayError)
        assert issubclass(ProviderInitError, GatewayError)
        assert issubclass(AiError, GatewayError)
        assert issubclass(TransportError, AiError)
        assert issubclass(SemanticFailureError, AiError)
        assert issubclass(EmptyResultError, AiError)

    def test_provider_not_found_message(self) -> None:
        exc = ProviderNotFoundError("foobar")
        assert "foobar" in str(exc)
        assert exc.provider == "foobar"

    def test_provider_init_error(self) -> None:
        exc = ProviderInitError("anthropic", "missing API key")
        assert exc.provider == "anthropic"
        assert "anthropic" in str(exc)
        assert "missing API key" in str(exc)

    def test_ai_error_carries_status(self) -> None:
        exc = AiError("AI API error: length", status="length")
        assert exc.message == "AI API error: length"
        assert exc.status == "length"
        assert str(exc) == "AI API error: length"

    def test_status_defaults_to_none(self) -> None:
        assert AiError("boom").status is None

    def test_transport_error(self) -> None:
        exc = TransportError("Rate limit reached", status=429, provider="openai")
        assert exc.status == 429
        assert exc.provider == "openai"
        assert "Rate limit" in str(exc)
