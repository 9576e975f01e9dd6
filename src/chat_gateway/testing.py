"""Testing utilities shipped with chat-gateway.

Provides ``FakeTransport`` and ``InMemoryUsageSink`` so consumers can test
code built on ``ChatGateway`` without network access.

Usage::

    from chat_gateway import ChatGateway, GatewayConfig
    from chat_gateway.testing import FakeTransport, InMemoryUsageSink

    transport = FakeTransport(response={
        "choices": [{"message": {"content": "42"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 1},
    })
    sink = InMemoryUsageSink()

    gateway = ChatGateway(GatewayConfig(), transport=transport, sink=sink)
    resp = await gateway.chat("quiz", [{"role": "user", "content": "6*7?"}])
    assert resp.content == "42"
    assert sink.records[0].success
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from chat_gateway.types import ProviderQuery, UsageRecord


class FakeTransport:
    """In-memory transport. Implements the ``Transport`` protocol.

    ``send`` returns ``response``; ``send_streamed`` yields ``chunks`` in
    order; ``generate_image`` returns ``image_response``. If ``error`` is set,
    every call raises it (for streams: after ``fail_after`` chunks).
    """

    def __init__(
        self,
        response: object = None,
        chunks: Sequence[Mapping[str, Any]] = (),
        image_response: object = None,
        error: Exception | None = None,
        fail_after: int = 0,
    ) -> None:
        self.response = response
        self.chunks = list(chunks)
        self.image_response = image_response
        self.error = error
        self.fail_after = fail_after
        self.queries: list[ProviderQuery] = []
        self.image_payloads: list[Mapping[str, Any]] = []
        self.closed = False

    async def send(self, query: ProviderQuery) -> Any:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.response

    async def send_streamed(self, query: ProviderQuery) -> AsyncIterator[Mapping[str, Any]]:
        self.queries.append(query)
        for index, chunk in enumerate(self.chunks):
            if self.error is not None and index >= self.fail_after:
                raise self.error
            yield chunk
        if self.error is not None:
            raise self.error

    async def generate_image(self, payload: Mapping[str, Any]) -> Any:
        self.image_payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.image_response

    @property
    def call_count(self) -> int:
        """Number of chat queries received."""
        return len(self.queries)

    async def close(self) -> None:
        self.closed = True


class InMemoryUsageSink:
    """Collects usage records in a list. Implements ``UsageSink``."""

    def __init__(self) -> None:
        self.records: list[UsageRecord] = []

    async def write(self, record: UsageRecord) -> None:
        self.records.append(record)
