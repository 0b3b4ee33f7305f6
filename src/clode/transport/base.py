"""Transport interface for message-oriented connections."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Protocol, runtime_checkable

# WebSocket close codes the connection manager distinguishes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_ABNORMAL = 1006


@runtime_checkable
class Transport(Protocol):
    """A single persistent connection that carries whole text frames.

    Lifecycle: `open()` once, then `send()` and iterate `messages()` until the
    iterator ends. When it ends, `close_code` and `close_reason` describe why.
    """

    url: str

    @property
    def is_open(self) -> bool:
        """True between a successful open() and the connection closing."""
        ...

    @property
    def close_code(self) -> int | None:
        """Close code once closed (1006 when no close frame was seen)."""
        ...

    @property
    def close_reason(self) -> str:
        """Close reason once closed, empty when none was given."""
        ...

    async def open(self) -> None:
        """Establish the connection. Raises TransportError on failure."""
        ...

    async def send(self, frame: str) -> None:
        """Send one text frame. Raises TransportError when not open."""
        ...

    def messages(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames in delivery order until the connection closes."""
        ...

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection. Safe to call more than once."""
        ...


TransportFactory = Callable[[str], Transport]
