"""In-memory transport and helpers for exercising the client without a server."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from clode.rpc.errors import TransportError
from clode.transport.base import CLOSE_ABNORMAL, CLOSE_NORMAL

DEFAULT_REPLIES: dict[str, Any] = {
    "initialize": {"server": {"name": "fake", "version": "0.0.0"}},
}


@dataclass(frozen=True)
class ErrorReply:
    """Auto-reply with a JSON-RPC error payload instead of a result."""

    payload: Any


@dataclass(frozen=True)
class _Close:
    code: int
    reason: str


class FakeTransport:
    """Transport whose far end is driven by the test.

    Outbound frames are decoded into `sent`. Methods listed in `auto_respond`
    are answered as soon as they are sent; the value may be a result, an
    ErrorReply, or a callable taking the params and returning either.
    """

    def __init__(
        self,
        url: str,
        *,
        auto_respond: dict[str, Any] | None = None,
        fail_open: bool = False,
    ) -> None:
        self.url = url
        self.auto_respond = dict(DEFAULT_REPLIES if auto_respond is None else auto_respond)
        self.fail_open = fail_open
        self.sent: list[dict[str, Any]] = []
        self.closed_by_client = False
        self._inbox: asyncio.Queue[str | bytes | _Close] = asyncio.Queue()
        self._open = False
        self._close_code: int | None = None
        self._close_reason = ""

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def close_reason(self) -> str:
        return self._close_reason

    async def open(self) -> None:
        if self.fail_open:
            self._close_code = CLOSE_ABNORMAL
            raise TransportError(f"Could not connect to {self.url}: refused")
        self._open = True

    async def send(self, frame: str) -> None:
        if not self._open:
            raise TransportError(f"{self.url} is not open")
        msg = json.loads(frame)
        self.sent.append(msg)

        method = msg.get("method")
        if method not in self.auto_respond:
            return
        reply = self.auto_respond[method]
        if callable(reply):
            reply = reply(msg.get("params"))
        if isinstance(reply, ErrorReply):
            self.respond_error(msg["id"], reply.payload)
        else:
            self.respond(msg["id"], reply)

    async def messages(self) -> AsyncIterator[str | bytes]:
        while True:
            item = await self._inbox.get()
            try:
                if isinstance(item, _Close):
                    self._open = False
                    if self._close_code is None:
                        self._close_code = item.code
                        self._close_reason = item.reason
                    return
                yield item
            finally:
                self._inbox.task_done()

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        self.closed_by_client = True
        if self._close_code is None:
            self._open = False
            self._close_code = code
            self._close_reason = reason
            self._inbox.put_nowait(_Close(code, reason))

    # -- far end ---------------------------------------------------------------

    def push(self, data: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps(data))

    def push_raw(self, frame: str | bytes) -> None:
        self._inbox.put_nowait(frame)

    def respond(self, msg_id: int, result: Any) -> None:
        self.push({"jsonrpc": "2.0", "id": msg_id, "result": result})

    def respond_error(self, msg_id: int, error: Any) -> None:
        self.push({"jsonrpc": "2.0", "id": msg_id, "error": error})

    def notify(self, method: str, params: dict[str, Any]) -> None:
        self.push({"jsonrpc": "2.0", "method": method, "params": params})

    def server_close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        self._inbox.put_nowait(_Close(code, reason))

    async def flush(self) -> None:
        """Wait until every pushed frame has been handled by the reader."""
        await asyncio.wait_for(self._inbox.join(), timeout=2.0)

    def sent_methods(self) -> list[str]:
        return [m["method"] for m in self.sent if "method" in m]

    def last_sent(self, method: str) -> dict[str, Any]:
        for msg in reversed(self.sent):
            if msg.get("method") == method:
                return msg
        raise AssertionError(f"{method} was never sent")


class FakeTransportFactory:
    """Transport factory that records every FakeTransport it builds."""

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.transports: list[FakeTransport] = []

    def __call__(self, url: str) -> FakeTransport:
        transport = FakeTransport(url, **self.kwargs)
        self.transports.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.transports[-1]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll `predicate` on the event loop until it holds."""

    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)
