"""clode: client entry point.

Usage:
    from clode import ClodeClient, PermissionMode

    async with ClodeClient() as client:
        await client.connect("ws://localhost:3284")
        if await client.wait_ready() is not ConnectionStatus.CONNECTED:
            print(client.last_error)
            return

        session = await client.create_session("/path/to/project", PermissionMode.DEFAULT)
        await client.send_message(session.thread_id, "hi")

        # Session state updates as notifications arrive
        print(client.get_session(session.thread_id).messages)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

from clode.config.schema import Config
from clode.connection import ConnectionManager, StatusListener
from clode.logging import get_logger
from clode.protocol.types import (
    ApprovalRespondParams,
    ClientInfo,
    PermissionMode,
    ThreadStartParams,
    ThreadStartResult,
    TurnInterruptParams,
    TurnStartParams,
    TurnStartResult,
)
from clode.rpc.dispatcher import CallDispatcher
from clode.rpc.errors import ClodeError
from clode.session import permissions
from clode.session.models import ChatMessage, ConnectionStatus, Session
from clode.session.router import NotificationRouter
from clode.session.store import SessionListener, SessionStore
from clode.transport.base import TransportFactory
from clode.transport.websocket import WebSocketTransport

_log = get_logger("connection.client")


class ClodeClient:
    """Protocol engine for one agent server connection.

    Owns the Connection Manager, Call Dispatcher, Notification Router and
    Session Store, and exposes the session operations a presentation layer
    drives. All methods must be called from the event loop that runs the
    connection.

    Args:
        config: Optional configuration; defaults are used when omitted.
        transport_factory: Builds the transport for a url. Defaults to a
            WebSocket transport.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self.config = config or Config()
        conn = self.config.connection

        if transport_factory is None:
            def transport_factory(url: str) -> WebSocketTransport:
                return WebSocketTransport(url, open_timeout=conn.handshake_timeout)

        self.store = SessionStore()
        self.dispatcher = CallDispatcher(call_timeout=conn.call_timeout)
        self.router = NotificationRouter(self.store)
        self.connection = ConnectionManager(
            self.dispatcher,
            self.router,
            client_info=ClientInfo(
                name=self.config.client.name,
                version=self.config.client.version,
            ),
            handshake_timeout=conn.handshake_timeout,
            transport_factory=transport_factory,
        )

    async def __aenter__(self) -> ClodeClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.disconnect()

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    @property
    def status(self) -> ConnectionStatus:
        return self.connection.status

    @property
    def last_error(self) -> str | None:
        return self.connection.last_error

    @property
    def url(self) -> str:
        return self.connection.url or self.config.connection.url

    async def connect(self, url: str | None = None) -> None:
        """Connect to `url` (or the configured url) and start the handshake."""
        await self.connection.connect(url or self.config.connection.url)

    async def wait_ready(self, timeout: float | None = None) -> ConnectionStatus:
        """Wait for the handshake outcome."""
        return await self.connection.wait_ready(timeout)

    async def disconnect(self) -> None:
        """Close the connection and clear all sessions."""
        await self.connection.disconnect()

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        return self.connection.on_status_change(listener)

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Issue a raw call over the current connection."""
        return await self.dispatcher.call(method, params)

    # -------------------------------------------------------------------------
    # Session state
    # -------------------------------------------------------------------------

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self.store.sessions

    def get_session(self, thread_id: str) -> Session | None:
        return self.store.get(thread_id)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call `listener` with a fresh snapshot after every session change."""
        return self.store.subscribe(listener)

    # -------------------------------------------------------------------------
    # Session operations
    # -------------------------------------------------------------------------

    async def create_session(
        self,
        cwd: str,
        permission_mode: PermissionMode | str = PermissionMode.DEFAULT,
    ) -> Session:
        """Start a new thread on the server and track it locally.

        Call failures propagate unchanged and leave the store untouched.
        """
        mode = PermissionMode(permission_mode)
        params = ThreadStartParams(cwd=cwd, permission_mode=mode)
        result = ThreadStartResult.model_validate(
            await self.call("thread/start", params.model_dump(mode="json"))
        )
        session = Session(
            thread_id=result.thread_id,
            created_at=result.created_at,
            cwd=cwd,
            permission_mode=mode,
        )
        _log.info("Created session %s in %s (%s)", session.thread_id, cwd, mode.value)
        return self.store.insert(session)

    async def send_message(
        self,
        thread_id: str,
        content: str,
        model: str | None = None,
    ) -> TurnStartResult:
        """Append the user message immediately, then start a turn.

        The appended message stays even when the call fails.
        """
        user_message = ChatMessage.user(content)
        self.store.update(
            thread_id,
            lambda s: permissions.mark_sent(
                replace(s, messages=s.messages + (user_message,)),
                content,
            ),
        )
        params = TurnStartParams(thread_id=thread_id, content=content, model=model)
        result = await self.call("turn/start", params.model_dump(mode="json", exclude_none=True))
        return TurnStartResult.model_validate(result)

    async def interrupt_turn(self, thread_id: str) -> None:
        """Ask the server to stop the active turn.

        Local state changes only when the resulting turn/completed or
        turn/error notification arrives.
        """
        await self.call("turn/interrupt", TurnInterruptParams(thread_id=thread_id).model_dump())

    async def approve_permission(
        self,
        thread_id: str,
        mode: PermissionMode | str | None = None,
    ) -> None:
        """Approve the blocked tools by switching permission mode.

        The server round trip is best-effort. Locally the mode becomes `mode`
        (acceptEdits when omitted) and the denials are cleared; the caller
        re-sends `last_blocked_content` afterwards.
        """
        requested = PermissionMode(mode) if mode is not None else None
        await self._respond_approval(thread_id, requested)
        resolved = requested or PermissionMode.ACCEPT_EDITS
        self.store.update(thread_id, lambda s: permissions.approve(s, resolved))

    async def change_permission_mode(
        self,
        thread_id: str,
        mode: PermissionMode | str,
    ) -> None:
        """Switch the session's permission mode (best-effort on the server)."""
        resolved = PermissionMode(mode)
        await self._respond_approval(thread_id, resolved)
        self.store.update(thread_id, lambda s: permissions.change_mode(s, resolved))

    def dismiss_permission_denial(self, thread_id: str) -> None:
        self.store.update(thread_id, permissions.clear_denials)

    def set_last_blocked(self, thread_id: str, content: str) -> None:
        self.store.update(thread_id, lambda s: permissions.set_blocked_content(s, content))

    async def delete_session(self, thread_id: str) -> None:
        """Forget a session, interrupting its active turn first if possible."""
        session = self.store.get(thread_id)
        if session is not None and session.is_active:
            try:
                await self.interrupt_turn(thread_id)
            except ClodeError as e:
                _log.warning("Interrupt before deleting %s failed: %s", thread_id, e)
        self.store.remove(thread_id)

    async def _respond_approval(self, thread_id: str, mode: PermissionMode | None) -> None:
        params = ApprovalRespondParams(thread_id=thread_id, approved=True, permission_mode=mode)
        try:
            await self.call(
                "approval/respond", params.model_dump(mode="json", exclude_none=True)
            )
        except ClodeError as e:
            _log.warning("approval/respond for %s failed: %s", thread_id, e)
