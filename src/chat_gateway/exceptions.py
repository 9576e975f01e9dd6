"""Exception hierarchy for chat-gateway."""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all chat-gateway errors."""


class ProviderNotFoundError(GatewayError):
    """Raised when the requested provider is not registered."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"Provider '{provider}' is not registered. "
            f"Check LLM_PROVIDER env var or the preset you selected."
        )


class ProviderInitError(GatewayError):
    """Raised when a provider's transport fails to initialize."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        super().__init__(f"Failed to initialize provider '{provider}': {reason}")


class AiError(GatewayError):
    """A chat or image call failed.

    ``status`` is the provider-reported status code or a locally classified
    status (e.g. the offending finish reason). Callers use it to decide on
    retries and user messaging.
    """

    def __init__(self, message: str, status: str | int | None = None) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class TransportError(AiError):
    """Raised when the upstream call itself fails (network, auth, rate limit)."""

    def __init__(
        self,
        message: str,
        status: str | int | None = None,
        provider: str | None = None,
    ) -> None:
        self.provider = provider
        super().__init__(message, status)


class SemanticFailureError(AiError):
    """Raised when a response arrived but its finish reason is not a success."""


class EmptyResultError(AiError):
    """Raised when a call that must return a result returned none."""
