"""Connection lifecycle: open, handshake, read loop, close.

One transport is current at a time. Replacing or dropping it rejects every
call pending on it before anything else happens, and events from a transport
that is no longer current are ignored.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from clode.config.schema import DEFAULT_HANDSHAKE_TIMEOUT
from clode.logging import bind_server, get_logger
from clode.protocol.jsonrpc import parse_frame
from clode.protocol.types import ClientInfo, InitializeParams
from clode.rpc.dispatcher import CallDispatcher
from clode.rpc.errors import (
    CallTimeoutError,
    ClodeError,
    ConnectionClosedError,
    RpcError,
    TransportError,
)
from clode.session.models import ConnectionStatus
from clode.session.router import NotificationRouter
from clode.transport.base import CLOSE_ABNORMAL, CLOSE_NORMAL, Transport, TransportFactory
from clode.transport.websocket import WebSocketTransport

_log = get_logger("connection")

DEFAULT_CONNECT_ERROR = "Connection failed: check URL and that the server is running"
HANDSHAKE_TIMEOUT_ERROR = "Initialize timed out: server connected but did not respond"

StatusListener = Callable[[ConnectionStatus, str | None], None]


def close_outcome(code: int, reason: str) -> tuple[ConnectionStatus, str | None]:
    """Map a close code and reason to the resulting status and error text."""
    if code == CLOSE_NORMAL:
        return ConnectionStatus.DISCONNECTED, None
    if code == CLOSE_ABNORMAL:
        return ConnectionStatus.ERROR, reason or DEFAULT_CONNECT_ERROR
    return ConnectionStatus.ERROR, reason or f"Closed with code {code}"


class ConnectionManager:
    """Owns the single server connection and its status."""

    def __init__(
        self,
        dispatcher: CallDispatcher,
        router: NotificationRouter,
        *,
        client_info: ClientInfo | None = None,
        handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
        transport_factory: TransportFactory = WebSocketTransport,
    ) -> None:
        self._dispatcher = dispatcher
        self._router = router
        self._client_info = client_info or ClientInfo(name="clode-app", version="1.0.0")
        self._handshake_timeout = handshake_timeout
        self._transport_factory = transport_factory

        self._transport: Transport | None = None
        self._task: asyncio.Task[None] | None = None
        self._handshake_task: asyncio.Task[None] | None = None

        self._status = ConnectionStatus.DISCONNECTED
        self._last_error: str | None = None
        self._url: str | None = None
        self._listeners: list[StatusListener] = []
        self._waiters: list[asyncio.Future[ConnectionStatus]] = []

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def transport(self) -> Transport | None:
        return self._transport

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def connect(self, url: str) -> None:
        """Start connecting to `url`.

        Returns once the attempt is under way; use wait_ready() to wait for
        the handshake outcome. Does nothing when already connecting or
        connected to the same url.
        """
        current = self._transport
        if (
            current is not None
            and current.url == url
            and self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED)
        ):
            return

        await self._drop_transport("Connection replaced")

        self._url = url
        self._last_error = None
        self._set_status(ConnectionStatus.CONNECTING)

        transport = self._transport_factory(url)
        self._transport = transport
        self._task = asyncio.create_task(self._run(transport), name="clode-connection")

    async def wait_ready(self, timeout: float | None = None) -> ConnectionStatus:
        """Wait until the status leaves `connecting` and return it.

        Raises:
            TimeoutError: The status did not settle within `timeout`.
        """
        if self._status is not ConnectionStatus.CONNECTING:
            return self._status
        waiter: asyncio.Future[ConnectionStatus] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout)
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    async def disconnect(self) -> None:
        """Close the connection and forget every session."""
        await self._drop_transport("Connection closed by client")
        if self._status is not ConnectionStatus.DISCONNECTED:
            _log.info("Disconnected from %s", self._url)
            self._set_status(ConnectionStatus.DISCONNECTED)
        self._router.store.clear()

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback for status changes.

        Returns:
            A function to unregister the callback.
        """
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    # -------------------------------------------------------------------------
    # Connection task
    # -------------------------------------------------------------------------

    async def _run(self, transport: Transport) -> None:
        # Inherited by the handshake task started below
        bind_server(transport.url)
        try:
            await transport.open()
        except TransportError as e:
            _log.warning("Connection to %s failed: %s", transport.url, e)
            self._on_closed(transport, CLOSE_ABNORMAL, "")
            return

        if transport is not self._transport:
            await transport.close()
            return

        self._dispatcher.attach(transport)
        _log.info("Connected to %s, sending initialize", transport.url)
        self._handshake_task = asyncio.create_task(
            self._handshake(transport), name="clode-handshake"
        )

        async for frame in transport.messages():
            if transport is not self._transport:
                break
            try:
                self._handle_frame(frame)
            except Exception:
                _log.exception("Error handling inbound frame")

        self._on_closed(transport, transport.close_code or CLOSE_ABNORMAL, transport.close_reason)

    async def _handshake(self, transport: Transport) -> None:
        params = InitializeParams(client=self._client_info).model_dump(mode="json")
        try:
            await self._dispatcher.call("initialize", params, timeout=self._handshake_timeout)
        except ConnectionClosedError:
            # The close handler owns the status
            return
        except CallTimeoutError:
            if transport is self._transport:
                await self._fail_handshake(HANDSHAKE_TIMEOUT_ERROR)
            return
        except RpcError as e:
            if transport is self._transport:
                await self._fail_handshake(f"Initialize rejected: {e.message}")
            return
        except ClodeError as e:
            if transport is self._transport:
                await self._fail_handshake(f"Initialize rejected: {e}")
            return

        if transport is self._transport:
            _log.info("Connected to %s", transport.url)
            self._set_status(ConnectionStatus.CONNECTED)

    async def _fail_handshake(self, message: str) -> None:
        _log.warning("Handshake with %s failed: %s", self._url, message)
        self._last_error = message
        self._set_status(ConnectionStatus.ERROR)
        # A connection without a completed handshake is unusable
        await self._drop_transport(message)

    def _handle_frame(self, frame: str | bytes) -> None:
        message = parse_frame(frame)
        if message is None:
            _log.debug("Discarding malformed frame")
            return
        if message.is_response():
            self._dispatcher.settle(message)
        elif message.method is not None:
            self._router.route(message.method, message.params)

    def _on_closed(self, transport: Transport, code: int, reason: str) -> None:
        if transport is not self._transport:
            return
        self._transport = None
        self._task = None
        self._dispatcher.detach()
        self._dispatcher.reject_all(f"Connection closed (code={code})")

        status, error = close_outcome(code, reason)
        if error is not None:
            _log.warning("Connection to %s closed: %s", transport.url, error)
            self._last_error = error
        else:
            _log.info("Connection to %s closed", transport.url)
        self._set_status(status)

    async def _drop_transport(self, reason: str) -> None:
        transport = self._transport
        tasks = (self._handshake_task, self._task)
        self._transport = None
        self._task = None
        self._handshake_task = None
        if transport is None:
            return

        self._dispatcher.detach()
        self._dispatcher.reject_all(reason)
        try:
            await transport.close(CLOSE_NORMAL)
        except TransportError as e:
            _log.debug("Error closing %s: %s", transport.url, e)

        current = asyncio.current_task()
        for task in tasks:
            if task is None or task is current or task.done():
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self._status:
            return
        self._status = status

        if status is not ConnectionStatus.CONNECTING:
            waiters, self._waiters = self._waiters, []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(status)

        for listener in list(self._listeners):
            try:
                listener(status, self._last_error)
            except Exception as e:
                _log.warning("Status listener error: %s", e)
