"""Command-line interface for clode."""

from __future__ import annotations

import argparse
import asyncio
import os
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from clode import __version__
from clode.client import ClodeClient
from clode.config import Config, load_config, load_config_file
from clode.logging import setup_logging
from clode.protocol.types import PermissionMode
from clode.rpc.errors import ClodeError
from clode.session.models import ConnectionStatus
from clode.transport.base import TransportFactory

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="clode",
        description="Client for a coding-agent server speaking JSON-RPC over WebSocket",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: system, user and project config.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Operating mode")

    # Probe mode
    probe_parser = subparsers.add_parser(
        "probe",
        help="Connect, perform the handshake and report the outcome",
    )
    probe_parser.add_argument(
        "--url",
        help="Server URL (default: from config)",
    )

    # Chat mode
    chat_parser = subparsers.add_parser(
        "chat",
        help="Start a session and chat interactively",
    )
    chat_parser.add_argument(
        "--url",
        help="Server URL (default: from config)",
    )
    chat_parser.add_argument(
        "--cwd",
        default=os.getcwd(),
        help="Working directory for the session (default: current directory)",
    )
    chat_parser.add_argument(
        "--mode",
        choices=[m.value for m in PermissionMode],
        default=PermissionMode.DEFAULT.value,
        help="Initial permission mode",
    )
    chat_parser.add_argument(
        "--model",
        help="Model to request for each turn",
    )

    return parser


def build_config(config_path: Path | None, verbose: int) -> Config:
    """Load configuration and apply command-line overrides."""
    if config_path is not None:
        config = load_config_file(config_path)
    else:
        config = load_config(project_root=os.getcwd())
    if verbose:
        config.logging.verbose = verbose
    return config


async def run_probe(
    config: Config,
    url: str | None = None,
    transport_factory: TransportFactory | None = None,
) -> int:
    """Connect and report the handshake outcome: 0 when connected."""
    async with ClodeClient(config, transport_factory=transport_factory) as client:
        await client.connect(url)
        status = await client.wait_ready()
        if status is ConnectionStatus.CONNECTED:
            console.print(f"[green]Connected[/green] to {client.url}")
            return 0
        console.print(f"[red]{status.value}[/red]: {client.last_error or 'no error reported'}")
        return 1


async def run_chat(
    config: Config,
    url: str | None,
    cwd: str,
    mode: str,
    model: str | None = None,
    transport_factory: TransportFactory | None = None,
) -> int:
    """Connect, create a session and run the chat REPL."""
    from clode.interactive import ChatRepl

    async with ClodeClient(config, transport_factory=transport_factory) as client:
        await client.connect(url)
        status = await client.wait_ready()
        if status is not ConnectionStatus.CONNECTED:
            console.print(f"[red]Could not connect:[/red] {client.last_error}")
            return 1

        try:
            session = await client.create_session(cwd, mode)
        except ClodeError as e:
            console.print(f"[red]Could not start session:[/red] {e}")
            return 1

        await ChatRepl(client, session.thread_id, model).run()
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 1

    config = build_config(parsed.config, parsed.verbose)
    setup_logging(config.logging)

    # Dispatch to command
    if parsed.command == "probe":
        return asyncio.run(run_probe(config, parsed.url))
    elif parsed.command == "chat":
        return asyncio.run(
            run_chat(config, parsed.url, parsed.cwd, parsed.mode, parsed.model)
        )
    else:
        parser.print_help()
        return 1
