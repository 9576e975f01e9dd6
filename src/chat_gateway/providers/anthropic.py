"""Anthropic family: system extraction, JSON priming, event-stream folding."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import TYPE_CHECKING, Any

from anthropic import APIError, AsyncAnthropic

from chat_gateway.exceptions import TransportError
from chat_gateway.types import (
    ChatRequest,
    NormalizedResponse,
    ProviderProfile,
    ProviderQuery,
    TokenUsage,
)

if TYPE_CHECKING:
    from chat_gateway.config import GatewayConfig

UNKNOWN_FINISH_REASON = "unknown"
TERMINAL_STOP_REASON = "end_turn"
STOP_SEQUENCES = ("<stop>", "<wrapup>")

# Partial assistant turn that makes the model continue a JSON object.
JSON_PRIMER = "{"


def repair_primed_json(text: str) -> str:
    """Restore the opening brace the model never repeats after JSON priming.

    Only applied to responses whose query was primed. ``'"key": 1}'`` becomes
    ``'{"key": 1}'``; text without a ``}`` past its first character or without
    a ``:`` is returned unchanged.
    """
    if text.find("}") > 0 and ":" in text:
        return JSON_PRIMER + text
    return text


def _finalize_text(text: str, primed_for_json: bool) -> str:
    text = text.strip()
    return repair_primed_json(text) if primed_for_json else text


class AnthropicFamily:
    """Query building and response normalization for the Messages API."""

    name = "anthropic"

    def build_query(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        user: str | None = None,
    ) -> ProviderQuery:
        system_parts: list[str] = []
        messages: list[dict[str, Any]] = []
        for message in request.messages:
            if message["role"] == "system":
                system_parts.append(message["content"])
            else:
                messages.append(dict(message))

        payload: dict[str, Any] = {
            "model": profile.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "stop_sequences": list(STOP_SEQUENCES),
        }
        if user is not None:
            payload["metadata"] = {"user_id": str(user)}
        if system_parts:
            payload["system"] = "\n".join(system_parts)
        if request.wants_json:
            messages.append({"role": "assistant", "content": JSON_PRIMER})

        return ProviderQuery(payload=payload, primed_for_json=request.wants_json)

    def normalize(
        self, raw: object, *, primed_for_json: bool = False
    ) -> NormalizedResponse:
        # Bare strings are error payloads; pass them through untouched.
        if isinstance(raw, str):
            return NormalizedResponse(
                content=raw, finish_reason=UNKNOWN_FINISH_REASON, raw=raw
            )
        if not isinstance(raw, Mapping):
            msg = f"Unexpected Anthropic response type: {type(raw).__name__}"
            raise TypeError(msg)

        blocks = raw.get("content") or []
        text = (blocks[0].get("text") or "") if blocks else ""
        usage = raw.get("usage") or {}
        return NormalizedResponse(
            content=_finalize_text(text, primed_for_json),
            finish_reason=raw.get("stop_reason") or UNKNOWN_FINISH_REASON,
            usage=TokenUsage(
                prompt_tokens=usage.get("input_tokens") or 0,
                completion_tokens=usage.get("output_tokens") or 0,
            ),
            raw=raw,
        )

    def new_aggregator(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        query: ProviderQuery,
    ) -> AnthropicStreamAggregator:
        return AnthropicStreamAggregator(primed_for_json=query.primed_for_json)


class AnthropicStreamAggregator:
    """Folds Messages API stream events into a normalized response.

    Token counts come only from the events: ``message_start`` carries the
    input count and the terminal ``message_delta`` the output count. If the
    terminal delta never arrives, output tokens stay at zero.
    """

    def __init__(self, primed_for_json: bool = False) -> None:
        self._primed_for_json = primed_for_json
        self._parts: list[str] = []
        self._input_tokens = 0
        self._output_tokens = 0

    def feed(self, chunk: Mapping[str, Any]) -> None:
        kind = chunk.get("type")
        if kind == "content_block_delta":
            text = (chunk.get("delta") or {}).get("text")
            if text:
                self._parts.append(text)
        elif kind == "message_start":
            usage = (chunk.get("message") or {}).get("usage") or {}
            self._input_tokens = usage.get("input_tokens") or 0
        elif kind == "message_delta":
            delta = chunk.get("delta") or {}
            if delta.get("stop_reason") == TERMINAL_STOP_REASON:
                self._output_tokens = (chunk.get("usage") or {}).get("output_tokens") or 0

    def result(self) -> NormalizedResponse:
        content = _finalize_text("".join(self._parts), self._primed_for_json)
        usage = TokenUsage(
            prompt_tokens=self._input_tokens,
            completion_tokens=self._output_tokens,
        )
        raw = {
            "streamed": True,
            "content": [{"type": "text", "text": content}],
            "stop_reason": TERMINAL_STOP_REASON,
            "usage": {
                "input_tokens": usage.prompt_tokens,
                "output_tokens": usage.completion_tokens,
            },
        }
        return NormalizedResponse(
            content=content,
            finish_reason=TERMINAL_STOP_REASON,
            usage=usage,
            raw=raw,
            streamed=True,
        )


def _transport_error(exc: APIError) -> TransportError:
    return TransportError(
        exc.message,
        status=getattr(exc, "status_code", None),
        provider="anthropic",
    )


class AnthropicTransport:
    """Transport backed by ``AsyncAnthropic``."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: int = 120,
    ) -> None:
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=float(timeout_seconds),
        )

    @classmethod
    def from_config(cls, provider: str, config: GatewayConfig) -> AnthropicTransport:
        """Factory method for the provider registry."""
        creds = config.credentials_for(provider)
        return cls(
            api_key=creds.api_key.get_secret_value(),  # type: ignore[union-attr]
            base_url=creds.base_url,
            timeout_seconds=config.timeout_seconds,
        )

    async def send(self, query: ProviderQuery) -> dict[str, Any]:
        try:
            message = await self._client.messages.create(**query.payload)
        except APIError as exc:
            raise _transport_error(exc) from exc
        return message.model_dump()

    async def send_streamed(self, query: ProviderQuery) -> AsyncIterator[dict[str, Any]]:
        try:
            stream = await self._client.messages.create(**query.payload, stream=True)
            async with stream:
                async for event in stream:
                    yield event.model_dump()
        except APIError as exc:
            raise _transport_error(exc) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
