"""Routing of server-pushed notifications into session state.

Notifications are applied one at a time in arrival order. Sessions touched by
text deltas and items are looked up by their active turn id on every event,
never through a cached reference, since the active turn changes between
events.

Streaming assembly keys the live assistant messages by turn:

- `streaming-<turn_id>` accumulates text deltas while the turn streams
- `turn-<turn_id>` collects the finalized items of the turn

A finalized item supersedes that turn's streaming placeholder.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from enum import Enum
from typing import Any

from pydantic import ValidationError

from clode.logging import TRACE, get_logger
from clode.protocol.types import (
    ItemCreatedParams,
    ItemProgressParams,
    PermissionDeniedParams,
    StoredItem,
    TurnCompletedParams,
    TurnErrorParams,
    TurnStartedParams,
)
from clode.session import permissions
from clode.session.models import (
    ChatMessage,
    MessageRole,
    Session,
    Turn,
    TurnStatus,
    streaming_message_id,
    turn_message_id,
)
from clode.session.store import SessionStore

_log = get_logger("session.router")


class NotificationMethod(str, Enum):
    """Every server-pushed method the router understands."""

    INITIALIZED = "initialized"
    TURN_STARTED = "turn/started"
    ITEM_PROGRESS = "item/progress"
    ITEM_CREATED = "item/created"
    TURN_PERMISSION_DENIED = "turn/permission_denied"
    TURN_COMPLETED = "turn/completed"
    TURN_ERROR = "turn/error"


# -----------------------------------------------------------------------------
# Streaming assembly
# -----------------------------------------------------------------------------


def append_delta(session: Session, turn_id: str, text: str) -> Session:
    """Extend the turn's streaming message, starting one if needed."""
    messages = list(session.messages)
    key = streaming_message_id(turn_id)
    last = messages[-1] if messages else None

    if (
        last is not None
        and last.role is MessageRole.ASSISTANT
        and last.is_streaming
        and last.id == key
    ):
        messages[-1] = replace(last, streaming_text=(last.streaming_text or "") + text)
    else:
        messages.append(
            ChatMessage(
                id=key,
                role=MessageRole.ASSISTANT,
                streaming_text=text,
                is_streaming=True,
            )
        )
    return replace(session, messages=tuple(messages))


def append_item(session: Session, turn_id: str, stored: StoredItem) -> Session:
    """Add a finalized item to the turn's item message.

    The turn's streaming placeholder is dropped; the item message is created
    on the first item.
    """
    placeholder = streaming_message_id(turn_id)
    key = turn_message_id(turn_id)
    messages = [m for m in session.messages if not (m.is_streaming and m.id == placeholder)]

    for index, message in enumerate(messages):
        if message.id == key and message.role is MessageRole.ASSISTANT:
            messages[index] = replace(message, items=(message.items or ()) + (stored,))
            break
    else:
        messages.append(ChatMessage(id=key, role=MessageRole.ASSISTANT, items=(stored,)))

    return replace(session, messages=tuple(messages))


def finalize_turn(
    session: Session,
    turn_id: str | None,
    status: TurnStatus,
    error: str | None = None,
) -> Session:
    """End the active turn: clear it and stop every streaming message."""
    messages = tuple(
        replace(m, is_streaming=False, items=m.items if m.items is not None else ())
        if m.is_streaming
        else m
        for m in session.messages
    )

    ended = turn_id or session.active_turn_id
    turns = tuple(
        replace(t, status=status, error=error) if t.id == ended else t
        for t in session.turns
    )

    return replace(session, active_turn_id=None, messages=messages, turns=turns)


def start_turn(session: Session, turn_id: str) -> Session:
    turns = session.turns
    if session.get_turn(turn_id) is None:
        turns = turns + (Turn(id=turn_id, user_content=session.last_user_content or ""),)
    return replace(session, active_turn_id=turn_id, turns=turns)


def _completion_status(status: str | None) -> TurnStatus:
    if status == TurnStatus.INTERRUPTED.value:
        return TurnStatus.INTERRUPTED
    if status == TurnStatus.ERROR.value:
        return TurnStatus.ERROR
    return TurnStatus.COMPLETED


# -----------------------------------------------------------------------------
# Router
# -----------------------------------------------------------------------------


class NotificationRouter:
    """Applies notifications to a SessionStore by method name."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store
        self._handlers: dict[NotificationMethod, Callable[[dict[str, Any]], None]] = {
            NotificationMethod.INITIALIZED: self._on_initialized,
            NotificationMethod.TURN_STARTED: self._on_turn_started,
            NotificationMethod.ITEM_PROGRESS: self._on_item_progress,
            NotificationMethod.ITEM_CREATED: self._on_item_created,
            NotificationMethod.TURN_PERMISSION_DENIED: self._on_permission_denied,
            NotificationMethod.TURN_COMPLETED: self._on_turn_completed,
            NotificationMethod.TURN_ERROR: self._on_turn_error,
        }
        missing = set(NotificationMethod) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for notifications: {sorted(m.value for m in missing)}")

    def route(self, method: str, params: dict[str, Any] | None) -> bool:
        """Apply one notification.

        Returns False when the method is unknown or its params are invalid;
        such notifications leave state untouched.
        """
        try:
            kind = NotificationMethod(method)
        except ValueError:
            _log.debug("Unhandled notification: %s", method)
            return False

        try:
            self._handlers[kind](params or {})
        except ValidationError as e:
            _log.warning("Invalid %s params: %s", method, e)
            return False
        return True

    def _on_initialized(self, params: dict[str, Any]) -> None:
        pass

    def _on_turn_started(self, params: dict[str, Any]) -> None:
        p = TurnStartedParams.model_validate(params)
        self.store.update(p.thread_id, lambda s: start_turn(s, p.turn_id))

    def _on_item_progress(self, params: dict[str, Any]) -> None:
        p = ItemProgressParams.model_validate(params)
        if p.delta.type != "text" or not p.delta.text:
            _log.log(TRACE, "Skipping %s delta for turn %s", p.delta.type, p.turn_id)
            return
        session = self.store.find_by_active_turn(p.turn_id)
        if session is None:
            _log.debug("item/progress for inactive turn %s dropped", p.turn_id)
            return
        text = p.delta.text
        self.store.update(session.thread_id, lambda s: append_delta(s, p.turn_id, text))

    def _on_item_created(self, params: dict[str, Any]) -> None:
        p = ItemCreatedParams.model_validate(params)
        session = self.store.find_by_active_turn(p.turn_id)
        if session is None:
            _log.debug("item/created for inactive turn %s dropped", p.turn_id)
            return
        self.store.update(session.thread_id, lambda s: append_item(s, p.turn_id, p.item))

    def _on_permission_denied(self, params: dict[str, Any]) -> None:
        p = PermissionDeniedParams.model_validate(params)
        _log.info(
            "Permission denied in %s: %s",
            p.thread_id,
            ", ".join(d.tool_name for d in p.denials) or "(none listed)",
        )
        self.store.update(p.thread_id, lambda s: permissions.record_denials(s, p.denials))

    def _on_turn_completed(self, params: dict[str, Any]) -> None:
        p = TurnCompletedParams.model_validate(params)
        status = _completion_status(p.status)
        self.store.update(p.thread_id, lambda s: finalize_turn(s, p.turn_id, status))

    def _on_turn_error(self, params: dict[str, Any]) -> None:
        p = TurnErrorParams.model_validate(params)
        if p.error:
            _log.warning("Turn error in %s: %s", p.thread_id, p.error)
        self.store.update(
            p.thread_id,
            lambda s: finalize_turn(s, p.turn_id, TurnStatus.ERROR, p.error),
        )
