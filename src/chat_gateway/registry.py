"""Provider registry: maps provider names to family and transport factories."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chat_gateway.exceptions import ProviderInitError, ProviderNotFoundError

if TYPE_CHECKING:
    from chat_gateway.config import GatewayConfig
    from chat_gateway.providers.base import ProviderFamily, Transport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderEntry:
    """How to talk to one provider."""

    family: Callable[[], "ProviderFamily"]
    transport: Callable[[str, "GatewayConfig"], "Transport"]


# Global registry: name → entry
_PROVIDERS: dict[str, ProviderEntry] = {}


def register_provider(
    name: str,
    family: Callable[[], "ProviderFamily"],
    transport: Callable[[str, "GatewayConfig"], "Transport"],
) -> None:
    """Register a provider.

    Args:
        name: Provider name (e.g. "openai", "openrouter", "anthropic").
        family: Zero-argument factory for the provider's family.
        transport: Factory taking (provider name, GatewayConfig) and
            returning a Transport.
    """
    _PROVIDERS[name] = ProviderEntry(family=family, transport=transport)
    logger.debug("Registered LLM provider: %s", name)


def _lookup(provider: str) -> ProviderEntry:
    _ensure_builtins_registered()
    entry = _PROVIDERS.get(provider)
    if entry is None:
        raise ProviderNotFoundError(provider)
    return entry


def build_family(provider: str) -> "ProviderFamily":
    """Return the family that handles a provider's request/response schema.

    Raises:
        ProviderNotFoundError: If the provider name is not registered.
    """
    return _lookup(provider).family()


def build_transport(provider: str, config: "GatewayConfig") -> "Transport":
    """Build a transport with the provider's current credentials.

    Raises:
        ProviderNotFoundError: If the provider name is not registered.
        ProviderInitError: If the transport factory raises an error
            (typically a missing API key).
    """
    entry = _lookup(provider)
    try:
        return entry.transport(provider, config)
    except Exception as exc:
        raise ProviderInitError(provider, str(exc)) from exc


def list_providers() -> list[str]:
    """Return names of all registered providers."""
    _ensure_builtins_registered()
    return list(_PROVIDERS.keys())


# ── Lazy Registration ───────────────────────────────────────────

_builtins_registered = False


def _ensure_builtins_registered() -> None:
    """Lazily register built-in providers on first use."""
    global _builtins_registered  # noqa: PLW0603
    if _builtins_registered:
        return
    _builtins_registered = True

    from chat_gateway.providers.anthropic import AnthropicFamily, AnthropicTransport
    from chat_gateway.providers.openai import (
        OPENROUTER_TOKENIZER_MODEL,
        OpenAIFamily,
        OpenAITransport,
    )

    register_provider("openai", OpenAIFamily, OpenAITransport.from_config)
    register_provider(
        "openrouter",
        lambda: OpenAIFamily(tokenizer_model=OPENROUTER_TOKENIZER_MODEL),
        OpenAITransport.from_config,
    )
    register_provider("anthropic", AnthropicFamily, AnthropicTransport.from_config)
