"""Tests for the in-memory SessionStore."""

from __future__ import annotations

from dataclasses import FrozenInstanceError, replace

import pytest

from clode.protocol.types import PermissionMode
from clode.session.models import Session
from clode.session.store import SessionStore


def make_session(thread_id: str = "t1", **kwargs) -> Session:
    return Session(
        thread_id=thread_id,
        created_at=0,
        cwd="/p",
        permission_mode=PermissionMode.DEFAULT,
        **kwargs,
    )


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


class TestInsertAndLookup:
    def test_insert_keeps_creation_order(self, store) -> None:
        store.insert(make_session("a"))
        store.insert(make_session("b"))
        assert [s.thread_id for s in store.sessions] == ["a", "b"]
        assert "a" in store
        assert len(store) == 2

    def test_duplicate_thread_id_rejected(self, store) -> None:
        store.insert(make_session("a"))
        with pytest.raises(ValueError, match="already exists"):
            store.insert(make_session("a"))

    def test_find_by_active_turn(self, store) -> None:
        store.insert(make_session("a", active_turn_id="r1"))
        store.insert(make_session("b", active_turn_id="r2"))
        assert store.find_by_active_turn("r2").thread_id == "b"
        assert store.find_by_active_turn("r3") is None
        assert store.find_by_active_turn("") is None


class TestUpdate:
    def test_update_replaces_session(self, store) -> None:
        original = store.insert(make_session())
        updated = store.update("t1", lambda s: replace(s, active_turn_id="r1"))

        assert updated.active_turn_id == "r1"
        assert store.get("t1") is updated
        # Snapshots already handed out never change
        assert original.active_turn_id is None

    def test_update_unknown_session(self, store) -> None:
        assert store.update("missing", lambda s: replace(s, cwd="/x")) is None

    def test_sessions_are_immutable(self, store) -> None:
        s = store.insert(make_session())
        with pytest.raises(FrozenInstanceError):
            s.cwd = "/elsewhere"  # type: ignore[misc]

    def test_remove_and_clear(self, store) -> None:
        store.insert(make_session("a"))
        store.insert(make_session("b"))
        assert store.remove("a").thread_id == "a"
        assert store.remove("a") is None
        store.clear()
        assert store.sessions == ()


class TestSubscribe:
    """Tests for change listeners."""

    def test_listener_receives_snapshots(self, store) -> None:
        seen: list[tuple[Session, ...]] = []
        store.subscribe(seen.append)

        store.insert(make_session())
        store.update("t1", lambda s: replace(s, active_turn_id="r1"))
        store.remove("t1")

        assert len(seen) == 3
        assert seen[1][0].active_turn_id == "r1"
        assert seen[2] == ()

    def test_unchanged_update_does_not_notify(self, store) -> None:
        store.insert(make_session())
        seen: list = []
        store.subscribe(seen.append)
        store.update("t1", lambda s: s)
        assert seen == []

    def test_unsubscribe(self, store) -> None:
        seen: list = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        store.insert(make_session())
        assert seen == []

    def test_failing_listener_does_not_block_others(self, store) -> None:
        def broken(_sessions) -> None:
            raise RuntimeError("boom")

        seen: list = []
        store.subscribe(broken)
        store.subscribe(seen.append)
        store.insert(make_session())
        assert len(seen) == 1
