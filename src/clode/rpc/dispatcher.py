"""Request/response correlation over a single transport.

Each outbound call gets a process-unique integer id and a pending record
holding a single-shot future plus its timeout timer. Whichever of response,
timeout, connection loss or caller cancellation happens first removes the
record; later arrivals for that id find nothing and are ignored.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from clode.config.schema import DEFAULT_CALL_TIMEOUT
from clode.logging import get_logger
from clode.protocol.jsonrpc import JsonRpcMessage, encode_request
from clode.rpc.errors import (
    CallTimeoutError,
    ConnectionClosedError,
    RpcError,
    TransportError,
    TransportNotOpenError,
)

if TYPE_CHECKING:
    from clode.transport.base import Transport

_log = get_logger("rpc.dispatcher")

# Shared by every dispatcher so ids are never reused within the process
_correlation_ids = itertools.count(1)


def next_correlation_id() -> int:
    """Allocate the next correlation id."""
    return next(_correlation_ids)


@dataclass
class PendingCall:
    """An outstanding call awaiting its response."""

    correlation_id: int
    method: str
    started_at: float
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle | None = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class CallDispatcher:
    """Tracks outstanding calls and matches responses to them."""

    def __init__(
        self,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.call_timeout = call_timeout
        self._clock = clock
        self._transport: Transport | None = None
        self._pending: dict[int, PendingCall] = {}

    @property
    def transport(self) -> Transport | None:
        return self._transport

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, correlation_id: int) -> bool:
        return correlation_id in self._pending

    def attach(self, transport: Transport) -> None:
        """Route subsequent calls over `transport`."""
        self._transport = transport

    def detach(self) -> Transport | None:
        """Stop using the current transport and return it."""
        transport, self._transport = self._transport, None
        return transport

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its result.

        Raises:
            TransportNotOpenError: No open transport; nothing was registered.
            RpcError: The server answered with an error payload.
            CallTimeoutError: No answer within the timeout.
            ConnectionClosedError: The connection closed first.
        """
        transport = self._transport
        if transport is None or not transport.is_open:
            raise TransportNotOpenError(method)

        loop = asyncio.get_running_loop()
        correlation_id = next_correlation_id()
        future: asyncio.Future[Any] = loop.create_future()
        record = PendingCall(
            correlation_id=correlation_id,
            method=method,
            started_at=self._clock(),
            future=future,
        )
        # Registered before sending so an immediate response always finds it
        self._pending[correlation_id] = record
        record.timer = loop.call_later(
            self.call_timeout if timeout is None else timeout,
            self._expire,
            correlation_id,
        )

        _log.debug("-> %s (id=%d)", method, correlation_id)
        try:
            try:
                await transport.send(encode_request(correlation_id, method, params))
            except TransportError as e:
                if not future.done():
                    self._discard(correlation_id)
                    raise TransportNotOpenError(method) from e
                # Connection loss already settled this call
            return await future
        except asyncio.CancelledError:
            # Cancelled while sending or waiting
            self._discard(correlation_id)
            raise

    def settle(self, message: JsonRpcMessage) -> bool:
        """Resolve or reject the pending call a response belongs to.

        Returns False when no outstanding call has that id.
        """
        msg_id = message.id
        if isinstance(msg_id, bool) or not isinstance(msg_id, (int, float, str)):
            return False
        record = self._pending.pop(msg_id, None)  # type: ignore[call-overload]
        if record is None:
            _log.debug("Response for unknown id %r ignored", msg_id)
            return False

        record.cancel_timer()
        if record.future.done():
            return False

        if message.is_error:
            record.future.set_exception(RpcError(record.method, message.error))
        else:
            record.future.set_result(message.result)
        _log.debug("<- %s (id=%d)", record.method, record.correlation_id)
        return True

    def reject_all(self, reason: str) -> int:
        """Reject every outstanding call with ConnectionClosedError.

        Returns the number of calls rejected.
        """
        if not self._pending:
            return 0
        records = list(self._pending.values())
        self._pending.clear()
        for record in records:
            record.cancel_timer()
            if not record.future.done():
                record.future.set_exception(ConnectionClosedError(reason))
        _log.info("Rejected %d pending call(s): %s", len(records), reason)
        return len(records)

    def _expire(self, correlation_id: int) -> None:
        record = self._pending.pop(correlation_id, None)
        if record is None:
            return
        record.timer = None
        if record.future.done():
            return
        elapsed_ms = int((self._clock() - record.started_at) * 1000)
        _log.warning("Call timed out: %s (id=%d, %dms)", record.method, correlation_id, elapsed_ms)
        record.future.set_exception(CallTimeoutError(record.method, elapsed_ms))

    def _discard(self, correlation_id: int) -> None:
        record = self._pending.pop(correlation_id, None)
        if record is not None:
            record.cancel_timer()
