"""OpenTelemetry tracing for gateway calls."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from chat_gateway.types import NormalizedResponse

logger = logging.getLogger(__name__)

# ── Optional OTEL imports ───────────────────────────────────────
try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    HAS_OTEL = True
except ImportError:
    HAS_OTEL = False

try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )

    HAS_OTLP = True
except ImportError:
    HAS_OTLP = False


# Module-level tracer (None when tracing is off)
_tracer: Any = None


def configure_tracing(
    exporter: str = "none",
    endpoint: str = "http://localhost:4317",
    service_name: str = "chat-gateway",
) -> None:
    """Configure OpenTelemetry tracing.

    Args:
        exporter: One of "none", "console", "otlp".
        endpoint: OTLP collector endpoint (only used when exporter="otlp").
        service_name: Service name for spans.
    """
    global _tracer

    if exporter == "none" or not HAS_OTEL:
        _tracer = None
        return

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    if exporter == "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    elif exporter == "otlp":
        if not HAS_OTLP:
            logger.warning("OTLP exporter requested but opentelemetry-exporter-otlp not installed")
            _tracer = None
            return
        provider.add_span_processor(
            SimpleSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
        )

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer("chat_gateway")
    logger.info("OTEL tracing configured: exporter=%s, service=%s", exporter, service_name)


def get_tracer() -> Any:
    """Return the configured tracer, or None if tracing is disabled."""
    return _tracer


def disable_tracing() -> None:
    """Disable tracing (useful for tests)."""
    global _tracer
    _tracer = None


@asynccontextmanager
async def traced_llm_call(
    model: str,
    provider: str,
    operation: str = "gateway.chat",
    streamed: bool = False,
) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that creates an OTEL span for a gateway call.

    Usage:
        async with traced_llm_call("gpt-4o", "openai") as span_data:
            response = await ...
            span_data["response"] = response  # NormalizedResponse

    The span records ``llm.model``, ``llm.provider`` and ``llm.streamed``;
    token counts and finish reason when a response is set; error status if
    an exception escapes.
    """
    span_data: dict[str, Any] = {}

    if _tracer is None:
        yield span_data
        return

    with _tracer.start_as_current_span(operation) as span:
        span.set_attribute("llm.model", model)
        span.set_attribute("llm.provider", provider)
        span.set_attribute("llm.streamed", streamed)

        try:
            yield span_data
        except Exception as exc:
            span.set_status(trace.StatusCode.ERROR, str(exc))
            span.record_exception(exc)
            raise
        else:
            response = span_data.get("response")
            if isinstance(response, NormalizedResponse):
                span.set_attribute("llm.finish_reason", response.finish_reason)
                span.set_attribute("llm.prompt_tokens", response.usage.prompt_tokens)
                span.set_attribute(
                    "llm.completion_tokens", response.usage.completion_tokens
                )
                span.set_attribute("llm.total_tokens", response.usage.total_tokens)
