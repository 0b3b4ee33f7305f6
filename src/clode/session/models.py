"""Session state as seen by the presentation layer.

Every type here is immutable. Mutations produce new objects through
`dataclasses.replace`, so a snapshot a reader holds never changes under it.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from enum import Enum

from clode.protocol.types import (
    PermissionDenial,
    PermissionMode,
    StoredItem,
    TextItem,
)

_user_message_seq = itertools.count(1)


def user_message_id() -> str:
    """Id for an optimistically appended user message."""
    return f"user-{int(time.time() * 1000)}-{next(_user_message_seq)}"


def streaming_message_id(turn_id: str) -> str:
    """Id of the live streaming placeholder for a turn."""
    return f"streaming-{turn_id}"


def turn_message_id(turn_id: str) -> str:
    """Id of the finalized item message for a turn."""
    return f"turn-{turn_id}"


class ConnectionStatus(str, Enum):
    """Status of the server connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    ERROR = "error"


@dataclass(frozen=True)
class ChatMessage:
    """One entry in a session's display history.

    User messages carry `content`. Assistant messages carry `streaming_text`
    while `is_streaming` is true, and a finalized `items` tuple afterwards.
    """

    id: str
    role: MessageRole
    content: str = ""
    items: tuple[StoredItem, ...] | None = None
    streaming_text: str | None = None
    is_streaming: bool = False

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(id=user_message_id(), role=MessageRole.USER, content=content)

    @property
    def text(self) -> str:
        """Plain text of the message: content, finalized text items, or the stream."""
        if self.role is MessageRole.USER:
            return self.content
        if self.items:
            parts = [s.item.text for s in self.items if isinstance(s.item, TextItem)]
            if parts:
                return "".join(parts)
        return self.streaming_text or ""


@dataclass(frozen=True)
class Turn:
    """One request/response cycle within a session."""

    id: str
    status: TurnStatus = TurnStatus.ACTIVE
    user_content: str = ""
    error: str | None = None


@dataclass(frozen=True)
class Session:
    """One conversation thread."""

    thread_id: str
    created_at: int | float
    cwd: str
    permission_mode: PermissionMode
    active_turn_id: str | None = None
    messages: tuple[ChatMessage, ...] = ()
    turns: tuple[Turn, ...] = ()
    last_blocked_content: str | None = None
    has_permission_denial: bool = False
    permission_denials: tuple[PermissionDenial, ...] | None = None

    @property
    def is_active(self) -> bool:
        return bool(self.active_turn_id)

    @property
    def last_message(self) -> ChatMessage | None:
        return self.messages[-1] if self.messages else None

    @property
    def last_user_content(self) -> str | None:
        for message in reversed(self.messages):
            if message.role is MessageRole.USER:
                return message.content
        return None

    def get_turn(self, turn_id: str) -> Turn | None:
        for turn in self.turns:
            if turn.id == turn_id:
                return turn
        return None
