"""Session state, storage, and notification routing."""

from clode.session.models import (
    ChatMessage,
    ConnectionStatus,
    MessageRole,
    Session,
    Turn,
    TurnStatus,
)
from clode.session.router import NotificationMethod, NotificationRouter
from clode.session.store import SessionStore

__all__ = [
    "ChatMessage",
    "ConnectionStatus",
    "MessageRole",
    "NotificationMethod",
    "NotificationRouter",
    "Session",
    "SessionStore",
    "Turn",
    "TurnStatus",
]
