"""WebSocket transport backed by the `websockets` asyncio client."""

from __future__ import annotations

from collections.abc import AsyncIterator

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from clode.logging import get_logger
from clode.rpc.errors import TransportError
from clode.transport.base import CLOSE_ABNORMAL, CLOSE_NORMAL

log = get_logger("connection.transport")


class WebSocketTransport:
    """One WebSocket connection to the agent server.

    Frames are JSON text; nothing is buffered or reordered here, inbound
    frames are yielded exactly as the socket delivers them.
    """

    def __init__(self, url: str, *, open_timeout: float = 10.0) -> None:
        self.url = url
        self._open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._closed = False
        self._close_code: int | None = None
        self._close_reason = ""

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed and self._ws.protocol.state is State.OPEN

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def close_reason(self) -> str:
        return self._close_reason

    async def open(self) -> None:
        try:
            self._ws = await connect(
                self.url,
                open_timeout=self._open_timeout,
                max_size=None,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            self._closed = True
            self._close_code = CLOSE_ABNORMAL
            raise TransportError(f"Could not connect to {self.url}: {e}") from e
        log.debug("WebSocket open: %s", self.url)

    async def send(self, frame: str) -> None:
        if not self.is_open or self._ws is None:
            raise TransportError(f"WebSocket to {self.url} is not open")
        try:
            await self._ws.send(frame)
        except ConnectionClosed as e:
            self._record_close()
            raise TransportError(f"WebSocket closed while sending: {e}") from e

    async def messages(self) -> AsyncIterator[str | bytes]:
        if self._ws is None:
            return
        try:
            async for frame in self._ws:
                yield frame
        except ConnectionClosed:
            pass
        finally:
            self._record_close()

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if self._ws is None:
            self._closed = True
            return
        if not self._closed:
            await self._ws.close(code, reason)
        self._record_close()

    def _record_close(self) -> None:
        if self._ws is None or self._close_code is not None:
            self._closed = True
            return
        self._closed = True
        code = self._ws.close_code
        self._close_code = code if code is not None else CLOSE_ABNORMAL
        self._close_reason = self._ws.close_reason or ""
        log.debug("WebSocket closed: %s (code=%s)", self.url, self._close_code)
