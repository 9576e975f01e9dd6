"""Driving a stream aggregator over a chunk sequence."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable, Mapping
from typing import Any

from chat_gateway.providers.base import StreamAggregator
from chat_gateway.providers.openai import assistant_delta
from chat_gateway.types import NormalizedResponse

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[Mapping[str, Any]], Awaitable[object] | object]


async def _deliver(
    callback: ChunkCallback, chunk: Mapping[str, Any], timeout: float
) -> None:
    """Hand one chunk to the caller's callback.

    Failures and timeouts are logged and dropped: forwarding a chunk must
    never stop the rest of the stream from being aggregated.
    """
    try:
        result = callback(chunk)
        if inspect.isawaitable(result):
            await asyncio.wait_for(result, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Chunk callback timed out after %.1fs", timeout)
    except Exception:
        logger.exception("Chunk callback failed")


async def aggregate_stream(
    chunks: AsyncIterable[Mapping[str, Any]],
    aggregator: StreamAggregator,
    callback: ChunkCallback | None = None,
    callback_timeout: float = 5.0,
) -> NormalizedResponse:
    """Consume a chunk stream in delivery order and return the aggregate.

    Each chunk reaches ``callback`` before it is folded.

    Args:
        chunks: Provider chunks, in arrival order.
        aggregator: Fresh aggregator from the provider family.
        callback: Optional sync or async per-chunk callback.
        callback_timeout: Seconds an async callback may take per chunk.

    Returns:
        The normalized response, once the stream is exhausted.
    """
    async for chunk in chunks:
        if callback is not None:
            await _deliver(callback, chunk, callback_timeout)
        aggregator.feed(chunk)
    # result() may load a tokenizer encoding, which can hit disk or network.
    return await asyncio.to_thread(aggregator.result)


def fold(
    chunks: Iterable[Mapping[str, Any]], aggregator: StreamAggregator
) -> NormalizedResponse:
    """Aggregate an already materialized chunk sequence."""
    for chunk in chunks:
        aggregator.feed(chunk)
    return aggregator.result()


def stream_text(chunk: Mapping[str, Any]) -> str | None:
    """Return the text increment of a chunk from either provider family.

    Handy inside chunk callbacks that forward text to a live consumer.
    """
    if "choices" in chunk:
        return assistant_delta(chunk)
    if chunk.get("type") == "content_block_delta":
        return (chunk.get("delta") or {}).get("text")
    return None
