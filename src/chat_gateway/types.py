"""Core data types for chat-gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Literal, TypedDict

from chat_gateway.cost import calculate_cost


class Message(TypedDict):
    """A single chat message, in the shape both provider families accept."""

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class ChatRequest:
    """Provider-agnostic chat request."""

    messages: tuple[Message, ...]
    temperature: float = 0.0
    max_tokens: int = 4096
    wants_json: bool = False


@dataclass(frozen=True)
class ProviderProfile:
    """Which provider to call and with which model."""

    provider: str
    model: str


@dataclass(frozen=True)
class ProviderQuery:
    """Provider-specific wire payload.

    ``primed_for_json`` is set when the builder appended a partial assistant
    message to steer the model towards JSON, so the normalizer knows to repair
    the missing opening brace.
    """

    payload: dict[str, Any]
    primed_for_json: bool = False


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a single call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed."""
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class NormalizedResponse:
    """Canonical result of a chat call, whatever the provider."""

    content: str
    finish_reason: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    raw: object = None
    streamed: bool = False


@dataclass(frozen=True)
class UsageRecord:
    """One logged fact about a top-level chat or image call.

    ``cost`` is not stored: it is recomputed from the pricing table on every
    read, so pricing corrections apply to old records too.
    """

    provider: str
    model: str
    request_type: str
    request_payload: object
    response_payload: object
    success: bool
    usage: TokenUsage | None = None
    latency_ms: float = 0.0
    user_id: str | None = None
    team_id: str | None = None

    @property
    def cost(self) -> Decimal:
        """Cost in USD derived from the current pricing table."""
        if self.usage is None:
            return Decimal(0)
        return calculate_cost(
            self.provider,
            self.model,
            self.usage.prompt_tokens,
            self.usage.completion_tokens,
        )
