"""Observability sub-package: tracing and logging."""

from chat_gateway.observability.logging import (
    configure_logging,
    get_logger,
    request_context,
)
from chat_gateway.observability.tracing import (
    configure_tracing,
    disable_tracing,
    get_tracer,
    traced_llm_call,
)

__all__ = [
    "configure_logging",
    "configure_tracing",
    "disable_tracing",
    "get_logger",
    "get_tracer",
    "request_context",
    "traced_llm_call",
]
