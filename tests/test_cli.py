"""Tests for the command-line interface and chat commands."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from clode.cli import build_config, create_parser, run_cli, run_probe
from clode.client import ClodeClient
from clode.config import Config
from clode.interactive.commands import CommandHandler
from clode.interactive.render import TranscriptPrinter, describe_item
from clode.protocol.types import PermissionMode, StoredItem
from clode.session.models import ChatMessage, MessageRole, Session
from tests.utils import DEFAULT_REPLIES, FakeTransportFactory


class TestParser:
    """Tests for argument parsing."""

    def test_probe(self) -> None:
        args = create_parser().parse_args(["probe", "--url", "ws://h:1"])
        assert args.command == "probe"
        assert args.url == "ws://h:1"

    def test_chat_options(self) -> None:
        args = create_parser().parse_args(
            ["-vv", "chat", "--cwd", "/w", "--mode", "acceptEdits", "--model", "m1"]
        )
        assert args.command == "chat"
        assert args.verbose == 2
        assert args.cwd == "/w"
        assert args.mode == "acceptEdits"
        assert args.model == "m1"

    def test_chat_defaults(self) -> None:
        args = create_parser().parse_args(["chat"])
        assert args.url is None
        assert args.mode == "default"

    def test_invalid_mode_rejected(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["chat", "--mode", "yolo"])

    def test_no_command_prints_help(self, capsys) -> None:
        assert run_cli([]) == 1
        assert "usage:" in capsys.readouterr().out


class TestBuildConfig:
    def test_verbose_overrides_config(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("logging:\n  verbose: 1\n")
        assert build_config(path, 0).logging.verbose == 1
        assert build_config(path, 4).logging.verbose == 4


class TestProbe:
    @pytest.mark.asyncio
    async def test_connected(self) -> None:
        factory = FakeTransportFactory()
        assert await run_probe(Config(), "ws://up", transport_factory=factory) == 0
        assert factory.last.sent_methods() == ["initialize"]

    @pytest.mark.asyncio
    async def test_unreachable(self) -> None:
        factory = FakeTransportFactory(fail_open=True)
        assert await run_probe(Config(), "ws://down", transport_factory=factory) == 1


class TestCommands:
    """Tests for slash commands against a live client."""

    @pytest.fixture
    def factory(self) -> FakeTransportFactory:
        return FakeTransportFactory(
            auto_respond={
                **DEFAULT_REPLIES,
                "thread/start": {"thread_id": "t1"},
                "turn/start": {"turn_id": "r2"},
                "approval/respond": {},
            }
        )

    @pytest.mark.asyncio
    async def test_approve_resends_blocked_message(self, factory) -> None:
        async with ClodeClient(Config(), transport_factory=factory) as client:
            await client.connect("ws://test")
            await client.wait_ready(timeout=2.0)
            await client.create_session("/p")
            client.set_last_blocked("t1", "write file")
            factory.last.notify(
                "turn/permission_denied",
                {"thread_id": "t1", "denials": [{"tool_name": "Write", "tool_use_id": "u1"}]},
            )
            await factory.last.flush()

            handler = CommandHandler(client, "t1")
            assert await handler.handle("/approve bypassPermissions") is True

            assert client.get_session("t1").permission_mode is PermissionMode.BYPASS_PERMISSIONS
            assert factory.last.last_sent("turn/start")["params"]["content"] == "write file"

    @pytest.mark.asyncio
    async def test_approve_without_denial_sends_nothing(self, factory) -> None:
        """Without a pending denial /approve neither approves nor re-sends."""
        async with ClodeClient(Config(), transport_factory=factory) as client:
            await client.connect("ws://test")
            await client.wait_ready(timeout=2.0)
            await client.create_session("/p")
            client.set_last_blocked("t1", "write file")

            handler = CommandHandler(client, "t1")
            assert await handler.handle("/approve") is True

            assert factory.last.sent_methods() == ["initialize", "thread/start"]
            assert client.get_session("t1").permission_mode is PermissionMode.DEFAULT

    @pytest.mark.asyncio
    async def test_quit_and_unknown(self, factory) -> None:
        client = ClodeClient(Config(), transport_factory=factory)
        handler = CommandHandler(client, "t1")
        assert await handler.handle("/quit") is False
        assert await handler.handle("/bogus") is True

    @pytest.mark.asyncio
    async def test_mode_rejects_unknown_value(self, factory) -> None:
        client = ClodeClient(Config(), transport_factory=factory)
        handler = CommandHandler(client, "t1")
        await handler.handle("/mode sometimes")
        assert factory.transports == []


class TestTranscriptPrinter:
    def make_session(self, *messages: ChatMessage, **kwargs) -> Session:
        return Session(
            thread_id="t1",
            created_at=0,
            cwd="/p",
            permission_mode=PermissionMode.DEFAULT,
            messages=messages,
            **kwargs,
        )

    def test_prints_stream_increments_once(self) -> None:
        out = io.StringIO()
        printer = TranscriptPrinter(Console(file=out, width=120), "t1")

        for text in ("Hel", "Hello"):
            printer((
                self.make_session(
                    ChatMessage(
                        id="streaming-r1",
                        role=MessageRole.ASSISTANT,
                        streaming_text=text,
                        is_streaming=True,
                    ),
                    active_turn_id="r1",
                ),
            ))

        assert out.getvalue() == "Hello"

    def test_streamed_text_item_not_repeated(self) -> None:
        out = io.StringIO()
        printer = TranscriptPrinter(Console(file=out, width=120), "t1")
        printer.render(
            self.make_session(
                ChatMessage(
                    id="streaming-r1",
                    role=MessageRole.ASSISTANT,
                    streaming_text="Hi",
                    is_streaming=True,
                ),
                active_turn_id="r1",
            )
        )
        item = StoredItem.model_validate({"id": "i1", "item": {"type": "text", "text": "Hi"}})
        printer.render(
            self.make_session(
                ChatMessage(id="turn-r1", role=MessageRole.ASSISTANT, items=(item,)),
            )
        )
        assert out.getvalue().count("Hi") == 1

    def test_describe_tool_call(self) -> None:
        item = StoredItem.model_validate(
            {
                "id": "i1",
                "item": {"type": "tool_call", "tool_use_id": "u1", "name": "Bash", "input": {"cmd": "ls"}},
            }
        )
        assert describe_item(item) == '[tool] Bash {"cmd": "ls"}'
