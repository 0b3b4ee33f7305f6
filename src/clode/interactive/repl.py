"""Interactive chat REPL."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory
from rich.console import Console

from clode import __version__
from clode.interactive.commands import CommandHandler
from clode.interactive.render import TranscriptPrinter

if TYPE_CHECKING:
    from pathlib import Path

    from clode.client import ClodeClient

console = Console()


class ChatRepl:
    """Reads lines and drives one session of a connected client."""

    def __init__(
        self,
        client: ClodeClient,
        thread_id: str,
        model: str | None = None,
        history_file: Path | None = None,
    ) -> None:
        self.client = client
        self.thread_id = thread_id
        self.commands = CommandHandler(client, thread_id, model)
        self.printer = TranscriptPrinter(console, thread_id)
        self._running = False

        # Setup prompt session
        history = FileHistory(str(history_file)) if history_file else None
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
        )

    async def run(self) -> None:
        """Run the chat REPL until /quit, EOF, or the connection drops."""
        self._running = True
        unsubscribe = self.client.subscribe(self.printer)

        console.print(f"[bold]clode[/bold] v{__version__} - thread {self.thread_id}")
        console.print("Type [bold]/help[/bold] for commands, [bold]/quit[/bold] to exit.\n")

        try:
            while self._running:
                try:
                    line = await asyncio.get_running_loop().run_in_executor(
                        None,
                        lambda: self.session.prompt("clode> "),
                    )
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break

                if self.client.get_session(self.thread_id) is None:
                    console.print(f"[red]Disconnected: {self.client.last_error or 'closed'}[/red]")
                    break

                line = line.strip()
                if not line:
                    continue

                if line.startswith("/"):
                    if not await self.commands.handle(line):
                        break
                else:
                    await self.commands.send(line)
        finally:
            unsubscribe()
            self._running = False

    def stop(self) -> None:
        """Stop the REPL."""
        self._running = False
