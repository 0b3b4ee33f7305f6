"""In-memory session table.

The store is the single writer of session state. Readers get tuples of
immutable Session objects and may subscribe to be told when they change.
"""

from __future__ import annotations

from collections.abc import Callable

from clode.logging import get_logger
from clode.session.models import Session

_log = get_logger("session.store")

SessionListener = Callable[[tuple[Session, ...]], None]
SessionUpdater = Callable[[Session], Session]


class SessionStore:
    """Maps thread id to the current Session, in creation order."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._listeners: list[SessionListener] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._sessions

    @property
    def sessions(self) -> tuple[Session, ...]:
        """Snapshot of all sessions."""
        return tuple(self._sessions.values())

    def get(self, thread_id: str) -> Session | None:
        return self._sessions.get(thread_id)

    def find_by_active_turn(self, turn_id: str) -> Session | None:
        """The session currently running `turn_id`, if any."""
        if not turn_id:
            return None
        for session in self._sessions.values():
            if session.active_turn_id == turn_id:
                return session
        return None

    def insert(self, session: Session) -> Session:
        """Add a new session. Thread ids are unique."""
        if session.thread_id in self._sessions:
            raise ValueError(f"Session already exists: {session.thread_id}")
        self._sessions[session.thread_id] = session
        self._notify()
        return session

    def update(self, thread_id: str, updater: SessionUpdater) -> Session | None:
        """Replace a session with `updater(session)`.

        Returns the new Session, or None when the thread is unknown.
        """
        current = self._sessions.get(thread_id)
        if current is None:
            _log.debug("Update for unknown session %s ignored", thread_id)
            return None
        updated = updater(current)
        if updated is current:
            return current
        self._sessions[thread_id] = updated
        self._notify()
        return updated

    def remove(self, thread_id: str) -> Session | None:
        removed = self._sessions.pop(thread_id, None)
        if removed is not None:
            self._notify()
        return removed

    def clear(self) -> None:
        if not self._sessions:
            return
        self._sessions.clear()
        self._notify()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns:
            A function to unregister the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.sessions
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                _log.warning("Session listener error: %s", e)
