"""Permission denial tracking on session state.

A denial is not an error: the server reports tool invocations the current
permission mode blocked, and the session keeps them until the user approves
(switching mode) or dismisses them. Each function returns a new Session.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from clode.protocol.types import PermissionDenial, PermissionMode
from clode.session.models import Session


def record_denials(session: Session, denials: Iterable[PermissionDenial]) -> Session:
    """Replace the denial list wholesale and flag the session.

    The latest user message becomes the retry candidate unless one is
    already recorded.
    """
    blocked = session.last_blocked_content
    if blocked is None:
        blocked = session.last_user_content
    return replace(
        session,
        has_permission_denial=True,
        permission_denials=tuple(denials),
        last_blocked_content=blocked,
    )


def clear_denials(session: Session) -> Session:
    """Dismiss the current denials without touching the retry candidate."""
    return replace(session, has_permission_denial=False, permission_denials=None)


def approve(session: Session, mode: PermissionMode) -> Session:
    """Adopt `mode` and clear denials.

    `last_blocked_content` is kept so the caller can re-send it.
    """
    return replace(
        clear_denials(session),
        permission_mode=mode,
    )


def change_mode(session: Session, mode: PermissionMode) -> Session:
    return replace(session, permission_mode=mode)


def mark_sent(session: Session, content: str) -> Session:
    """Record an outgoing message as the retry candidate and reset denials."""
    return replace(clear_denials(session), last_blocked_content=content)


def set_blocked_content(session: Session, content: str) -> Session:
    return replace(session, last_blocked_content=content)
