"""Slash command handlers for the chat REPL."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from clode.protocol.types import PermissionMode
from clode.rpc.errors import ClodeError

if TYPE_CHECKING:
    from clode.client import ClodeClient

console = Console()

_MODES = ", ".join(m.value for m in PermissionMode)


def parse_mode(value: str) -> PermissionMode | None:
    try:
        return PermissionMode(value)
    except ValueError:
        console.print(f"[red]Unknown permission mode: {value}[/red] (one of {_MODES})")
        return None


class CommandHandler:
    """Handles slash commands against one session."""

    def __init__(self, client: ClodeClient, thread_id: str, model: str | None = None) -> None:
        self.client = client
        self.thread_id = thread_id
        self.model = model

    async def handle(self, line: str) -> bool:
        """Handle a slash command.

        Returns:
            False when the REPL should exit.
        """
        parts = shlex.split(line)
        if not parts:
            return True

        cmd = parts[0].lower()
        args = parts[1:]

        handlers = {
            "/help": self._cmd_help,
            "/status": self._cmd_status,
            "/approve": self._cmd_approve,
            "/dismiss": self._cmd_dismiss,
            "/mode": self._cmd_mode,
            "/interrupt": self._cmd_interrupt,
        }

        if cmd == "/quit":
            return False

        handler = handlers.get(cmd)
        if handler:
            try:
                await handler(args)
            except ClodeError as e:
                console.print(f"[red]{cmd} failed: {e}[/red]")
        else:
            console.print(f"[red]Unknown command: {cmd}[/red]")
            console.print("Type [bold]/help[/bold] for available commands.")
        return True

    async def send(self, content: str) -> None:
        """Send a plain line as a message."""
        session = self.client.get_session(self.thread_id)
        if session is not None and session.is_active:
            console.print("[dim]A turn is still running; /interrupt to stop it.[/dim]")
            return
        try:
            await self.client.send_message(self.thread_id, content, self.model)
        except ClodeError as e:
            console.print(f"[red]Send failed: {e}[/red]")

    async def _cmd_help(self, args: list[str]) -> None:
        """Show available commands."""
        table = Table(title="Available Commands")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        commands = [
            ("/help", "Show this help message"),
            ("/status", "Show connection and session status"),
            ("/approve [mode]", "Allow blocked tools and re-send the blocked message"),
            ("/dismiss", "Ignore the current permission denial"),
            ("/mode <mode>", f"Change permission mode ({_MODES})"),
            ("/interrupt", "Stop the running turn"),
            ("/quit", "Exit"),
        ]

        for cmd, desc in commands:
            table.add_row(cmd, desc)

        console.print(table)

    async def _cmd_status(self, args: list[str]) -> None:
        """Show current status."""
        console.print("[bold]Status:[/bold]")
        console.print(f"  Connection: {self.client.status.value} ({self.client.url})")
        if self.client.last_error:
            console.print(f"  Last error: {self.client.last_error}", markup=False)

        session = self.client.get_session(self.thread_id)
        if session is None:
            console.print("  [dim]No session[/dim]")
            return
        console.print(f"  Thread: {session.thread_id}")
        console.print(f"  CWD: {session.cwd}", markup=False)
        console.print(f"  Mode: {session.permission_mode.value}")
        console.print(f"  Active turn: {session.active_turn_id or '-'}")
        console.print(f"  Messages: {len(session.messages)}")
        if session.has_permission_denial:
            names = ", ".join(d.tool_name for d in session.permission_denials or ())
            console.print(f"  Denied: {names or '-'}", markup=False)

    async def _cmd_approve(self, args: list[str]) -> None:
        """Approve the denial and retry the blocked message."""
        session = self.client.get_session(self.thread_id)
        if session is None or not session.has_permission_denial:
            console.print("[dim]No pending permission denial[/dim]")
            return

        mode = None
        if args:
            mode = parse_mode(args[0])
            if mode is None:
                return
        await self.client.approve_permission(self.thread_id, mode)

        session = self.client.get_session(self.thread_id)
        if session is None:
            return
        console.print(f"[green]Permission mode: {session.permission_mode.value}[/green]")
        if session.last_blocked_content:
            await self.client.send_message(
                self.thread_id, session.last_blocked_content, self.model
            )

    async def _cmd_dismiss(self, args: list[str]) -> None:
        self.client.dismiss_permission_denial(self.thread_id)
        console.print("[dim]Denial dismissed[/dim]")

    async def _cmd_mode(self, args: list[str]) -> None:
        """Change the session's permission mode."""
        if not args:
            console.print(f"[red]Usage: /mode <mode>[/red] (one of {_MODES})")
            return
        mode = parse_mode(args[0])
        if mode is None:
            return
        await self.client.change_permission_mode(self.thread_id, mode)
        console.print(f"[green]Permission mode: {mode.value}[/green]")

    async def _cmd_interrupt(self, args: list[str]) -> None:
        session = self.client.get_session(self.thread_id)
        if session is None or not session.is_active:
            console.print("[dim]No turn is running[/dim]")
            return
        await self.client.interrupt_turn(self.thread_id)
