"""chat-gateway: one chat interface over OpenAI-compatible and Anthropic providers.

Usage:
    from chat_gateway import ChatGateway

    gateway = ChatGateway(user_id="42")  # reads LLM_* env vars
    gateway.use("claude-sonnet")
    resp = await gateway.chat("summary", messages, return_json=True)
"""

from __future__ import annotations

from chat_gateway.config import GatewayConfig, ProviderCredentials
from chat_gateway.cost import calculate_cost, get_pricing, register_pricing
from chat_gateway.exceptions import (
    AiError,
    EmptyResultError,
    GatewayError,
    ProviderInitError,
    ProviderNotFoundError,
    SemanticFailureError,
    TransportError,
)
from chat_gateway.gateway import PRESETS, ChatGateway
from chat_gateway.providers.base import ProviderFamily, StreamAggregator, Transport
from chat_gateway.registry import build_family, build_transport, list_providers, register_provider
from chat_gateway.sinks import LoggingUsageSink, UsageSink
from chat_gateway.streaming import aggregate_stream, fold, stream_text
from chat_gateway.types import (
    ChatRequest,
    Message,
    NormalizedResponse,
    ProviderProfile,
    ProviderQuery,
    TokenUsage,
    UsageRecord,
)

__all__ = [
    # Core
    "ChatGateway",
    "GatewayConfig",
    "ProviderCredentials",
    "PRESETS",
    # Types
    "ChatRequest",
    "Message",
    "NormalizedResponse",
    "ProviderProfile",
    "ProviderQuery",
    "TokenUsage",
    "UsageRecord",
    # Providers
    "ProviderFamily",
    "StreamAggregator",
    "Transport",
    "register_provider",
    "build_family",
    "build_transport",
    "list_providers",
    # Streaming
    "aggregate_stream",
    "fold",
    "stream_text",
    # Usage
    "UsageSink",
    "LoggingUsageSink",
    "calculate_cost",
    "get_pricing",
    "register_pricing",
    # Exceptions
    "GatewayError",
    "ProviderNotFoundError",
    "ProviderInitError",
    "AiError",
    "TransportError",
    "SemanticFailureError",
    "EmptyResultError",
]
