"""Plain-text rendering of session snapshots for the terminal."""

from __future__ import annotations

import json

from rich.console import Console

from clode.protocol.types import (
    StoredItem,
    TextItem,
    ThinkingItem,
    ToolCallItem,
    ToolResultItem,
)
from clode.session.models import MessageRole, Session

_RESULT_PREVIEW = 200


def describe_item(stored: StoredItem) -> str:
    """One-line summary of a finalized item."""
    item = stored.item
    if isinstance(item, TextItem):
        return item.text
    if isinstance(item, ThinkingItem):
        return f"(thinking) {item.thinking}"
    if isinstance(item, ToolCallItem):
        args = json.dumps(item.input, default=str) if item.input is not None else ""
        return f"[tool] {item.name} {args}".rstrip()
    if isinstance(item, ToolResultItem):
        content = item.content if isinstance(item.content, str) else json.dumps(item.content)
        if len(content) > _RESULT_PREVIEW:
            content = content[:_RESULT_PREVIEW] + "..."
        label = "[tool error]" if item.is_error else "[tool result]"
        return f"{label} {content}"
    return f"[{item.type}]"


class TranscriptPrinter:
    """Prints what changed in one session since the last snapshot.

    Registered as a SessionStore listener. Streaming text is printed as it
    grows; once a turn's items arrive, text items already seen as a stream
    are not printed again.
    """

    def __init__(self, console: Console, thread_id: str) -> None:
        self.console = console
        self.thread_id = thread_id
        self._streamed: dict[str, int] = {}
        self._items_shown: dict[str, int] = {}
        self._was_active = False
        self._denial_shown = False

    def __call__(self, sessions: tuple[Session, ...]) -> None:
        session = next((s for s in sessions if s.thread_id == self.thread_id), None)
        if session is None:
            return
        self.render(session)

    def render(self, session: Session) -> None:
        for message in session.messages:
            if message.role is MessageRole.USER:
                continue
            if message.is_streaming:
                self._render_stream(message.id, message.streaming_text or "")
            elif message.items:
                self._render_items(message.id, message.items)

        if session.has_permission_denial and not self._denial_shown:
            self._denial_shown = True
            self.console.print()
            self.console.print("[yellow]Permission denied for:[/yellow]")
            for denial in session.permission_denials or ():
                self.console.print(f"  - {denial.tool_name}", markup=False)
            self.console.print("[dim]/approve [mode] to allow and retry, /dismiss to ignore[/dim]")
        elif not session.has_permission_denial:
            self._denial_shown = False

        if self._was_active and not session.is_active:
            self.console.print()
            turn = session.turns[-1] if session.turns else None
            if turn is not None and turn.error:
                self.console.print(f"[red]Turn failed: {turn.error}[/red]")
            elif turn is not None:
                self.console.print(f"[dim]turn {turn.status.value}[/dim]")
        self._was_active = session.is_active

    def _render_stream(self, message_id: str, text: str) -> None:
        shown = self._streamed.get(message_id, 0)
        if len(text) > shown:
            self.console.print(text[shown:], end="", markup=False, highlight=False)
            self._streamed[message_id] = len(text)

    def _render_items(self, message_id: str, items: tuple[StoredItem, ...]) -> None:
        shown = self._items_shown.get(message_id, 0)
        if len(items) <= shown:
            return
        turn_id = message_id.removeprefix("turn-")
        streamed = f"streaming-{turn_id}" in self._streamed
        for stored in items[shown:]:
            if streamed and isinstance(stored.item, TextItem):
                continue
            self.console.print()
            self.console.print(describe_item(stored), markup=False, highlight=False)
        self._items_shown[message_id] = len(items)
