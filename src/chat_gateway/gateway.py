"""ChatGateway, the single class consumers import and use."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from chat_gateway.config import GatewayConfig
from chat_gateway.exceptions import EmptyResultError, SemanticFailureError, TransportError
from chat_gateway.observability.logging import configure_logging, request_context
from chat_gateway.observability.tracing import configure_tracing, traced_llm_call
from chat_gateway.providers.base import ProviderFamily, Transport
from chat_gateway.registry import build_family, build_transport
from chat_gateway.sinks import LoggingUsageSink, UsageSink
from chat_gateway.streaming import ChunkCallback, aggregate_stream
from chat_gateway.types import (
    ChatRequest,
    Message,
    NormalizedResponse,
    ProviderProfile,
    TokenUsage,
    UsageRecord,
)

logger = logging.getLogger(__name__)

ACCEPTED_FINISH_REASONS = frozenset({"stop", "end_turn", "stop_sequence"})

PRESETS: dict[str, ProviderProfile] = {
    "gpt-4o": ProviderProfile("openai", "gpt-4o-2024-08-06"),
    "gpt-4o-mini": ProviderProfile("openai", "gpt-4o-mini"),
    "claude-haiku": ProviderProfile("anthropic", "claude-3-haiku-20240307"),
    "claude-sonnet": ProviderProfile("anthropic", "claude-3-5-sonnet-20240620"),
    # 3.5 Sonnet serves the top tier.
    "claude-opus": ProviderProfile("anthropic", "claude-3-5-sonnet-20240620"),
}
PRESETS["fast"] = PRESETS["gpt-4o-mini"]
PRESETS["balanced"] = PRESETS["claude-sonnet"]
PRESETS["high-capability"] = PRESETS["claude-opus"]

IMAGE_PROFILE = ProviderProfile("openai", "dall-e-3")
IMAGE_REQUEST_TYPE = "ai_image"


@dataclass(frozen=True)
class _Selection:
    """Everything a call needs from the current provider choice.

    Replaced as a whole on every switch, so a call never sees a family from
    one provider paired with another provider's transport.
    """

    profile: ProviderProfile
    family: ProviderFamily
    transport: Transport


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


def _error_payload(exc: BaseException) -> str:
    if isinstance(exc, TransportError):
        return f"{exc.status}: {exc.message}"
    if isinstance(exc, asyncio.CancelledError):
        return "Request cancelled"
    return str(exc)


def _failure_message(response: NormalizedResponse) -> str:
    raw = response.raw
    if isinstance(raw, Mapping) and raw.get("error"):
        return str(raw["error"])
    return f"AI API error: {response.finish_reason}"


class ChatGateway:
    """Uniform chat interface over OpenAI-compatible and Anthropic providers.

    Usage:
        # Reads LLM_* env vars automatically
        gateway = ChatGateway(user_id="42")

        # Switch provider and model together
        gateway.use("claude-sonnet")

        resp = await gateway.chat(
            "research_summary",
            [{"role": "user", "content": "Hello"}],
        )
        print(resp.content, resp.usage.total_tokens)

        # Streamed, forwarding each chunk as it arrives
        resp = await gateway.chat(
            "research_summary", messages, chunk_callback=forward_to_ui
        )

    Every ``chat`` and ``generate_image`` call writes exactly one
    ``UsageRecord`` to the sink, whether it succeeds or fails.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        user_id: str | int | None = None,
        team_id: str | int | None = None,
        transport: Transport | None = None,
        image_transport: Any | None = None,
        sink: UsageSink | None = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._user_id = None if user_id is None else str(user_id)
        self._team_id = None if team_id is None else str(team_id)
        self._sink: UsageSink = sink or LoggingUsageSink()
        self._image_transport = image_transport
        # Open transports, closed by close(). Superseded chat transports move
        # to _retired and are closed once no call is using them.
        self._transports: list[Any] = []
        self._retired: list[Any] = []
        self._in_flight: dict[int, int] = {}
        self._injected: set[int] = set()
        self._reaper: asyncio.Task[None] | None = None
        for given in (image_transport, transport):
            if given is not None:
                self._injected.add(id(given))
                self._transports.append(given)
        self._selection = self._select(
            ProviderProfile(self._config.provider, self._config.model), transport
        )
        self._closed = False

        # Auto-configure observability
        configure_logging(
            level=self._config.log_level,
            fmt=self._config.log_format,
        )
        if self._config.trace_enabled:
            configure_tracing(
                exporter=self._config.trace_exporter,
                endpoint=self._config.trace_endpoint,
                service_name=self._config.trace_service_name,
            )

    # ── Provider selection ──────────────────────────────────────

    def _select(
        self, profile: ProviderProfile, transport: Transport | None = None
    ) -> _Selection:
        family = build_family(profile.provider)
        if transport is None:
            transport = build_transport(profile.provider, self._config)
            self._transports.append(transport)
        return _Selection(profile=profile, family=family, transport=transport)

    @property
    def profile(self) -> ProviderProfile:
        """The provider and model chat calls currently go to."""
        return self._selection.profile

    def switch_provider(self, provider: str, model: str) -> None:
        """Point subsequent calls at another provider and model.

        Credentials are re-read from the config. Nothing changes if the
        provider is unknown or its transport cannot be built.

        Raises:
            ProviderNotFoundError: If the provider is not registered.
            ProviderInitError: If the transport cannot be built.
        """
        previous = self._selection.transport
        self._selection = self._select(ProviderProfile(provider, model))
        logger.info(
            "Switched LLM provider",
            extra={"provider": provider, "model": model},
        )
        if id(previous) not in self._injected:
            self._retire(previous)

    def use(self, preset: str) -> None:
        """Switch to a named preset such as ``"claude-sonnet"`` or ``"fast"``."""
        profile = PRESETS.get(preset)
        if profile is None:
            msg = f"Unknown preset '{preset}'. Available: {', '.join(sorted(PRESETS))}"
            raise ValueError(msg)
        self.switch_provider(profile.provider, profile.model)

    # ── Chat ────────────────────────────────────────────────────

    async def chat(
        self,
        request_type: str,
        messages: Sequence[Message],
        return_json: bool = False,
        temperature: float = 0.0,
        chunk_callback: ChunkCallback | None = None,
        max_tokens: int = 4096,
    ) -> NormalizedResponse:
        """Send a chat request and return the normalized response.

        Args:
            request_type: Free-form tag used to categorize the usage record.
            messages: Conversation messages, in order.
            return_json: Ask the model for a JSON object.
            temperature: Sampling temperature.
            chunk_callback: If given, the call is streamed and every raw chunk
                is passed to it before being aggregated.
            max_tokens: Maximum tokens in the response.

        Returns:
            NormalizedResponse with content, finish reason and token usage.

        Raises:
            TransportError: If the upstream call fails.
            SemanticFailureError: If the finish reason is not a success.
        """
        if self._retired:
            await self._close_retired()
        selection = self._selection
        self._acquire(selection.transport)
        try:
            return await self._chat(
                selection,
                request_type,
                messages,
                return_json,
                temperature,
                chunk_callback,
                max_tokens,
            )
        finally:
            self._release(selection.transport)

    async def _chat(
        self,
        selection: _Selection,
        request_type: str,
        messages: Sequence[Message],
        return_json: bool,
        temperature: float,
        chunk_callback: ChunkCallback | None,
        max_tokens: int,
    ) -> NormalizedResponse:
        profile = selection.profile
        request = ChatRequest(
            messages=tuple(messages),
            temperature=temperature,
            max_tokens=max_tokens,
            wants_json=return_json,
        )
        request_payload = [dict(m) for m in request.messages]

        with request_context(
            request_type=request_type,
            provider=profile.provider,
            model=profile.model,
        ):
            start = time.monotonic()
            try:
                response = await self._dispatch(selection, request, chunk_callback)
            except (Exception, asyncio.CancelledError) as exc:
                await self._record(
                    profile,
                    request_type,
                    request_payload,
                    _error_payload(exc),
                    success=False,
                    latency_ms=_elapsed_ms(start),
                )
                raise
            latency_ms = _elapsed_ms(start)

            if response.finish_reason not in ACCEPTED_FINISH_REASONS:
                logger.warning(
                    "LLM call finished unsuccessfully",
                    extra={"finish_reason": response.finish_reason},
                )
                await self._record(
                    profile,
                    request_type,
                    request_payload,
                    response.raw,
                    success=False,
                    usage=response.usage,
                    latency_ms=latency_ms,
                )
                raise SemanticFailureError(
                    _failure_message(response), status=response.finish_reason
                )

            await self._record(
                profile,
                request_type,
                request_payload,
                response.content,
                success=True,
                usage=response.usage,
                latency_ms=latency_ms,
            )
            logger.info(
                "LLM call completed",
                extra={
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "streamed": response.streamed,
                    "latency_ms": round(latency_ms, 1),
                },
            )
            return response

    async def _dispatch(
        self,
        selection: _Selection,
        request: ChatRequest,
        chunk_callback: ChunkCallback | None,
    ) -> NormalizedResponse:
        profile = selection.profile
        query = selection.family.build_query(request, profile, user=self._user_id)

        async with traced_llm_call(
            model=profile.model,
            provider=profile.provider,
            streamed=chunk_callback is not None,
        ) as span_data:
            if chunk_callback is None:
                raw = await selection.transport.send(query)
                response = selection.family.normalize(
                    raw, primed_for_json=query.primed_for_json
                )
            else:
                aggregator = selection.family.new_aggregator(request, profile, query)
                response = await aggregate_stream(
                    selection.transport.send_streamed(query),
                    aggregator,
                    chunk_callback,
                    callback_timeout=self._config.stream_callback_timeout_seconds,
                )
            span_data["response"] = response
        return response

    # ── Images ──────────────────────────────────────────────────

    async def generate_image(self, prompt: str, size: str = "1024x1024") -> str:
        """Generate one image and return its URL.

        Does not touch the chat provider selection.

        Raises:
            TransportError: If the upstream call fails.
            EmptyResultError: If the provider returned no image.
        """
        profile = IMAGE_PROFILE
        with request_context(
            request_type=IMAGE_REQUEST_TYPE,
            provider=profile.provider,
            model=profile.model,
        ):
            start = time.monotonic()
            try:
                if self._image_transport is None:
                    self._image_transport = build_transport(profile.provider, self._config)
                    self._transports.append(self._image_transport)
                async with traced_llm_call(
                    model=profile.model,
                    provider=profile.provider,
                    operation="gateway.image",
                ):
                    raw = await self._image_transport.generate_image(
                        {"prompt": prompt, "model": profile.model, "n": 1, "size": size}
                    )
            except (Exception, asyncio.CancelledError) as exc:
                await self._record(
                    profile,
                    IMAGE_REQUEST_TYPE,
                    prompt,
                    _error_payload(exc),
                    success=False,
                    latency_ms=_elapsed_ms(start),
                )
                raise
            latency_ms = _elapsed_ms(start)

            data = raw.get("data") if isinstance(raw, Mapping) else None
            if not data:
                error = raw.get("error") if isinstance(raw, Mapping) else None
                await self._record(
                    profile,
                    IMAGE_REQUEST_TYPE,
                    prompt,
                    raw,
                    success=False,
                    latency_ms=latency_ms,
                )
                raise EmptyResultError(str(error or "Unknown error"), status="Unknown")

            await self._record(
                profile, IMAGE_REQUEST_TYPE, prompt, raw, success=True, latency_ms=latency_ms
            )
            return data[0]["url"]

    # ── Usage records ───────────────────────────────────────────

    async def _record(
        self,
        profile: ProviderProfile,
        request_type: str,
        request_payload: object,
        response_payload: object,
        *,
        success: bool,
        usage: TokenUsage | None = None,
        latency_ms: float = 0.0,
    ) -> None:
        record = UsageRecord(
            provider=profile.provider,
            model=profile.model,
            request_type=request_type,
            request_payload=request_payload,
            response_payload=response_payload,
            success=success,
            usage=usage,
            latency_ms=latency_ms,
            user_id=self._user_id,
            team_id=self._team_id,
        )
        try:
            await self._sink.write(record)
        except Exception:
            # Never let the sink mask the call's own result or error.
            logger.exception("Failed to write usage record for %s", request_type)

    # ── Lifecycle ───────────────────────────────────────────────

    def _acquire(self, transport: Any) -> None:
        key = id(transport)
        self._in_flight[key] = self._in_flight.get(key, 0) + 1

    def _release(self, transport: Any) -> None:
        key = id(transport)
        remaining = self._in_flight.get(key, 0) - 1
        if remaining > 0:
            self._in_flight[key] = remaining
        else:
            self._in_flight.pop(key, None)
        self._schedule_reap()

    def _retire(self, transport: Any) -> None:
        """Take a superseded transport out of service.

        It is closed as soon as no call that snapshotted it is still running.
        """
        if transport in self._transports:
            self._transports.remove(transport)
        self._retired.append(transport)
        self._schedule_reap()

    def _schedule_reap(self) -> None:
        if not any(id(t) not in self._in_flight for t in self._retired):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the next call or close() picks it up.
            return
        if self._reaper is None or self._reaper.done():
            self._reaper = loop.create_task(self._close_retired())

    async def _close_retired(self) -> None:
        idle = [t for t in self._retired if id(t) not in self._in_flight]
        self._retired = [t for t in self._retired if id(t) in self._in_flight]
        for transport in idle:
            await self._close_transport(transport)

    async def _close_transport(self, transport: Any) -> None:
        try:
            await transport.close()
        except Exception:
            logger.exception("Failed to close transport %r", transport)

    async def close(self) -> None:
        """Clean up every transport this gateway has built or been given."""
        if self._closed:
            return
        self._closed = True
        pending = [*self._transports, *self._retired]
        self._transports = []
        self._retired = []
        seen: set[int] = set()
        for transport in pending:
            if id(transport) in seen:
                continue
            seen.add(id(transport))
            await self._close_transport(transport)

    async def __aenter__(self) -> ChatGateway:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *exc: object) -> None:
        """Async context manager exit, closes transports."""
        await self.close()
