"""Provider contracts: the family interface and the transport interface."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol, runtime_checkable

from chat_gateway.types import (
    ChatRequest,
    NormalizedResponse,
    ProviderProfile,
    ProviderQuery,
)

Chunk = Mapping[str, Any]


@runtime_checkable
class StreamAggregator(Protocol):
    """Folds an ordered chunk stream into a ``NormalizedResponse``.

    Implementations are pure: the result depends only on the chunks fed and
    the request they were created for.
    """

    def feed(self, chunk: Chunk) -> None:
        """Fold one chunk into the aggregate."""
        ...

    def result(self) -> NormalizedResponse:
        """Return the normalized response for everything fed so far."""
        ...


@runtime_checkable
class ProviderFamily(Protocol):
    """Request/response conventions shared by a class of provider APIs."""

    name: str

    def build_query(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        user: str | None = None,
    ) -> ProviderQuery:
        """Build the provider wire payload for a request."""
        ...

    def normalize(
        self, raw: object, *, primed_for_json: bool = False
    ) -> NormalizedResponse:
        """Map a non-streamed provider response to the canonical shape."""
        ...

    def new_aggregator(
        self,
        request: ChatRequest,
        profile: ProviderProfile,
        query: ProviderQuery,
    ) -> StreamAggregator:
        """Return a fresh aggregator for one streamed call."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Sends provider queries over the wire.

    Transports convert SDK errors into ``TransportError`` and SDK objects into
    plain dicts.
    """

    async def send(self, query: ProviderQuery) -> dict[str, Any]:
        """Send a query and return the provider response."""
        ...

    def send_streamed(self, query: ProviderQuery) -> AsyncIterator[dict[str, Any]]:
        """Send a query and yield provider chunks in arrival order."""
        ...

    async def close(self) -> None:
        """Clean up transport resources (HTTP sessions, etc.)."""
        ...
