"""Gateway configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings


class ProviderCredentials(BaseModel):
    """API key and base endpoint for one provider."""

    api_key: SecretStr | None = None
    base_url: str | None = None


class GatewayConfig(BaseSettings):
    """Chat gateway configuration.

    All fields are read from environment variables with the ``LLM_`` prefix.
    Example: ``LLM_PROVIDER=anthropic`` sets ``provider="anthropic"``.
    Credentials nest with ``__``: ``LLM_OPENROUTER__API_KEY=...``.
    """

    model_config = {
        "env_prefix": "LLM_",
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    # ── Initial selection ───────────────────────────────────────
    provider: str = Field(
        default="openai",
        description="Provider name: 'openai', 'openrouter' or 'anthropic'.",
    )
    model: str = Field(
        default="gpt-4o-2024-08-06",
        description="Model identifier passed to the provider.",
    )

    # ── Credentials ─────────────────────────────────────────────
    openai: ProviderCredentials = Field(default_factory=ProviderCredentials)
    openrouter: ProviderCredentials = Field(default_factory=ProviderCredentials)
    anthropic: ProviderCredentials = Field(default_factory=ProviderCredentials)

    # ── Transport ───────────────────────────────────────────────
    timeout_seconds: int = Field(default=120, ge=1)
    stream_callback_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for an async chunk callback before it is abandoned.",
    )

    # ── Observability ───────────────────────────────────────────
    trace_enabled: bool = Field(default=False)
    trace_exporter: str = Field(
        default="none",
        description="Trace exporter: 'none', 'console', 'otlp'.",
    )
    trace_endpoint: str = Field(default="http://localhost:4317")
    trace_service_name: str = Field(default="chat-gateway")

    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="json",
        description="Log format: 'json' or 'console'.",
    )

    @model_validator(mode="after")
    def _resolve_credentials(self) -> GatewayConfig:
        """Fall back to provider-specific env vars for unset credentials."""
        fallback_map: dict[str, tuple[str, str, str | None]] = {
            "openai": ("OPENAI_API_KEY", "OPENAI_BASE_URI", None),
            "openrouter": (
                "OPENROUTER_API_KEY",
                "OPENROUTER_BASE_URI",
                "https://openrouter.ai/api/v1",
            ),
            "anthropic": ("ANTHROPIC_API_KEY", "ANTHROPIC_BASE_URI", None),
        }
        for name, (key_var, uri_var, default_uri) in fallback_map.items():
            creds: ProviderCredentials = getattr(self, name)
            if creds.api_key is None:
                value = os.environ.get(key_var)
                if value:
                    creds.api_key = SecretStr(value)
            if creds.base_url is None:
                creds.base_url = os.environ.get(uri_var) or default_uri

        return self

    def credentials_for(self, provider: str) -> ProviderCredentials:
        """Return the credentials for a provider.

        Raises:
            ValueError: If the provider has no credentials section or no API key.
        """
        creds = getattr(self, provider, None)
        if not isinstance(creds, ProviderCredentials):
            msg = f"No credentials section for provider '{provider}'."
            raise ValueError(msg)
        if creds.api_key is None:
            msg = (
                f"No API key configured for provider '{provider}'. "
                f"Set LLM_{provider.upper()}__API_KEY or the provider-specific env var."
            )
            raise ValueError(msg)
        return creds
