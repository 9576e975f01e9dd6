"""Tests for stream aggregation and chunk callbacks."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Mapping
from typing import Any

import pytest
from factories import anthropic_events, openai_chunks

from chat_gateway.providers.anthropic import AnthropicStreamAggregator
from chat_gateway.streaming import aggregate_stream, fold, stream_text


async def _iterate(chunks: list[dict[str, Any]]) -> AsyncIterator[dict[str, Any]]:
    for chunk in chunks:
        yield chunk


class _RecordingAggregator:
    """Aggregator that logs every fed chunk into a shared event list."""

    def __init__(self, events: list[tuple[str, Any]]) -> None:
        self.events = events

    def feed(self, chunk: Mapping[str, Any]) -> None:
        self.events.append(("feed", chunk["n"]))

    def result(self) -> Any:
        return len(self.events)


@pytest.mark.unit
class TestAggregateStream:
    @pytest.mark.asyncio
    async def test_callback_runs_before_fold(self) -> None:
        events: list[tuple[str, Any]] = []
        chunks = [{"n": 1}, {"n": 2}]

        await aggregate_stream(
            _iterate(chunks),
            _RecordingAggregator(events),
            lambda chunk: events.append(("callback", chunk["n"])),
        )

        assert events == [("callback", 1), ("feed", 1), ("callback", 2), ("feed", 2)]

    @pytest.mark.asyncio
    async def test_no_callback(self) -> None:
        resp = await aggregate_stream(
            _iterate(anthropic_events("a", "b")), AnthropicStreamAggregator()
        )
        assert resp.content == "ab"

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_aggregation(self) -> None:
        def explode(chunk: Mapping[str, Any]) -> None:
            raise RuntimeError("consumer went away")

        resp = await aggregate_stream(
            _iterate(anthropic_events("still ", "here")),
            AnthropicStreamAggregator(),
            explode,
        )
        assert resp.content == "still here"

    @pytest.mark.asyncio
    async def test_async_callback(self) -> None:
        forwarded: list[str] = []

        async def forward(chunk: Mapping[str, Any]) -> None:
            text = stream_text(chunk)
            if text:
                forwarded.append(text)

        resp = await aggregate_stream(
            _iterate(anthropic_events("x", "y")), AnthropicStreamAggregator(), forward
        )
        assert forwarded == ["x", "y"]
        assert resp.content == "xy"

    @pytest.mark.asyncio
    async def test_slow_callback_times_out(self) -> None:
        calls: list[int] = []

        async def slow(chunk: Mapping[str, Any]) -> None:
            calls.append(1)
            await asyncio.sleep(1)

        chunks = anthropic_events("z")
        resp = await aggregate_stream(
            _iterate(chunks), AnthropicStreamAggregator(), slow, callback_timeout=0.01
        )
        assert len(calls) == len(chunks)
        assert resp.content == "z"

    @pytest.mark.asyncio
    async def test_result_runs_off_the_loop_thread(self) -> None:
        threads: list[int] = []

        class _ThreadAggregator:
            def feed(self, chunk: Mapping[str, Any]) -> None:
                pass

            def result(self) -> Any:
                threads.append(threading.get_ident())
                return "done"

        result = await aggregate_stream(_iterate([{"n": 1}]), _ThreadAggregator())

        assert result == "done"
        assert len(threads) == 1
        assert threads[0] != threading.get_ident()


@pytest.mark.unit
class TestFold:
    def test_empty_stream(self) -> None:
        resp = fold([], AnthropicStreamAggregator())
        assert resp.content == ""
        assert resp.usage.total_tokens == 0


@pytest.mark.unit
class TestStreamText:
    def test_openai_chunks(self) -> None:
        texts = [stream_text(chunk) for chunk in openai_chunks("Hi", "!")]
        assert [t for t in texts if t] == ["Hi", "!"]

    def test_anthropic_events(self) -> None:
        texts = [stream_text(event) for event in anthropic_events("Hi", "!")]
        assert [t for t in texts if t] == ["Hi", "!"]

    def test_unrelated_event(self) -> None:
        assert stream_text({"type": "ping"}) is None
