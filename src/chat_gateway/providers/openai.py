"""OpenAI-compatible family (OpenAI, OpenRouter): query, normalization, streaming."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping
from typing import TYPE_CHECKING, Any

from openai import APIError, AsyncOpenAI

from chat_gateway.exceptions import TransportError
from chat_gateway.tokens import count_tokens
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

# OpenRouter proxies many vendors; its model names mean nothing to tiktoken.
OPENROUTER_TOKENIZER_MODEL = "gpt-4-turbo-preview"


def _first_choice(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    choices = raw.get("choices") or []
    return choices[0] if choices else None


class OpenAIFamily:
    """Query building and response normalization for the OpenAI chat schema."""

    name = "openai"

    def __init__(
        self,
        tokenizer_model: str | None = None,
        token_counter: Callable[[str, str], int] | None = None,
    ) -> None:
        self._tokenizer_model = tokenizer_model
        self._token_counter = token_counter

    def build_query(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        user: str | None = None,
    ) -> ProviderQuery:
        payload: dict[str, Any] = {
            "model": profile.model,
            "messages": [dict(m) for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "user": "" if user is None else str(user),
        }
        if request.wants_json:
            payload["response_format"] = {"type": "json_object"}
        return ProviderQuery(payload=payload)

    def normalize(
        self, raw: object, *, primed_for_json: bool = False
    ) -> NormalizedResponse:
        """Read content, finish reason and usage from a chat completion.

        ``primed_for_json`` is accepted for interface parity; this family asks
        for JSON through ``response_format`` and needs no repair.
        """
        if isinstance(raw, str):
            return NormalizedResponse(
                content=raw, finish_reason=UNKNOWN_FINISH_REASON, raw=raw
            )
        if not isinstance(raw, Mapping):
            msg = f"Unexpected OpenAI response type: {type(raw).__name__}"
            raise TypeError(msg)

        choice = _first_choice(raw)
        if choice is None:
            return NormalizedResponse(
                content="", finish_reason=UNKNOWN_FINISH_REASON, raw=raw
            )

        message = choice.get("message") or {}
        usage = raw.get("usage") or {}
        return NormalizedResponse(
            content=message.get("content") or "",
            finish_reason=choice.get("finish_reason") or UNKNOWN_FINISH_REASON,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
            ),
            raw=raw,
        )

    def new_aggregator(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        query: ProviderQuery,
    ) -> OpenAIStreamAggregator:
        return OpenAIStreamAggregator(
            request,
            tokenizer_model=self._tokenizer_model or profile.model,
            token_counter=self._token_counter,
        )


class OpenAIStreamAggregator:
    """Folds ``chat.completion.chunk`` objects into a normalized response.

    The provider reports no usage on this path, so prompt tokens are counted
    locally from the request and completion tokens are approximated by the
    number of chunks received.
    """

    def __init__(
        self,
        request: ChatRequest,
        tokenizer_model: str,
        token_counter: Callable[[str, str], int] | None = None,
    ) -> None:
        self._request = request
        self._tokenizer_model = tokenizer_model
        self._token_counter = token_counter
        self._parts: list[str] = []
        self._chunk_count = 0

    def feed(self, chunk: Mapping[str, Any]) -> None:
        self._chunk_count += 1
        text = assistant_delta(chunk)
        if text is not None:
            self._parts.append(text)

    def result(self) -> NormalizedResponse:
        content = "".join(self._parts)
        prompt_text = "\n".join(m["content"] for m in self._request.messages)
        counter = self._token_counter or count_tokens
        usage = TokenUsage(
            prompt_tokens=counter(prompt_text, self._tokenizer_model),
            completion_tokens=self._chunk_count,
        )
        raw = {
            "choices": [
                {
                    "streamed": True,
                    "finish_reason": "stop",
                    "message": {"content": content},
                }
            ],
            "usage": {
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
            },
        }
        return NormalizedResponse(
            content=content, finish_reason="stop", usage=usage, raw=raw, streamed=True
        )


def assistant_delta(chunk: Mapping[str, Any]) -> str | None:
    """Return the assistant text carried by a chunk, if any.

    Only the first chunk of a stream names its role, so a missing role counts
    as the assistant.
    """
    choice = _first_choice(chunk)
    if choice is None:
        return None
    delta = choice.get("delta") or {}
    role = delta.get("role")
    if role is not None and role != "assistant":
        return None
    return delta.get("content")


def _transport_error(provider: str, exc: APIError) -> TransportError:
    return TransportError(
        exc.message,
        status=getattr(exc, "status_code", None),
        provider=provider,
    )


class OpenAITransport:
    """Transport backed by ``AsyncOpenAI``; also serves OpenRouter."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: int = 120,
        provider: str = "openai",
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=float(timeout_seconds),
        )
        self._provider = provider

    @classmethod
    def from_config(cls, provider: str, config: GatewayConfig) -> OpenAITransport:
        """Factory method for the provider registry."""
        creds = config.credentials_for(provider)
        return cls(
            api_key=creds.api_key.get_secret_value(),  # type: ignore[union-attr]
            base_url=creds.base_url,
            timeout_seconds=config.timeout_seconds,
            provider=provider,
        )

    async def send(self, query: ProviderQuery) -> dict[str, Any]:
        try:
            completion = await self._client.chat.completions.create(**query.payload)
        except APIError as exc:
            raise _transport_error(self._provider, exc) from exc
        return completion.model_dump()

    async def send_streamed(self, query: ProviderQuery) -> AsyncIterator[dict[str, Any]]:
        try:
            stream = await self._client.chat.completions.create(
                **query.payload, stream=True
            )
            async with stream:
                async for chunk in stream:
                    yield chunk.model_dump()
        except APIError as exc:
            raise _transport_error(self._provider, exc) from exc

    async def generate_image(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Call the images endpoint and return the raw response."""
        try:
            response = await self._client.images.generate(**payload)
        except APIError as exc:
            raise _transport_error(self._provider, exc) from exc
        return response.model_dump()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
