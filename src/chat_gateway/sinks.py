"""Usage sinks: where the gateway writes one record per call."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from chat_gateway.types import UsageRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class UsageSink(Protocol):
    """Write-only destination for usage records (database, queue, log...)."""

    async def write(self, record: UsageRecord) -> None:
        """Persist one usage record."""
        ...


class LoggingUsageSink:
    """Emits each usage record as a structured log line."""

    def __init__(self, logger_name: str = "chat_gateway.usage") -> None:
        self._logger = logging.getLogger(logger_name)

    async def write(self, record: UsageRecord) -> None:
        usage = record.usage
        self._logger.info(
            "LLM usage recorded",
            extra={
                "user_id": record.user_id,
                "team_id": record.team_id,
                "provider": record.provider,
                "model": record.model,
                "request_type": record.request_type,
                "success": record.success,
                "prompt_tokens": usage.prompt_tokens if usage else None,
                "completion_tokens": usage.completion_tokens if usage else None,
                "total_tokens": usage.total_tokens if usage else None,
                "cost_usd": str(record.cost),
                "latency_ms": round(record.latency_ms, 1),
            },
        )
