"""Tests for the session directory."""

import asyncio
from datetime import timedelta

from collab_relay.domain.sessions import (
    Cursor,
    CursorPosition,
    DisplayInfo,
    PresenceStatus,
    Session,
)
from collab_relay.services.directory import SessionDirectory
from tests.conftest import FakeBroadcaster, FakeClock, read_grant


def _directory() -> tuple[SessionDirectory, FakeBroadcaster, FakeClock]:
    broadcaster = FakeBroadcaster()
    clock = FakeClock()
    return SessionDirectory(broadcaster, clock=clock), broadcaster, clock


def _join(
    directory: SessionDirectory, connection_id: str, user_id: str, project_id: str
) -> list[Session]:
    grant = read_grant(user_id, project_id)
    display = DisplayInfo(username=user_id)
    return asyncio.run(directory.join(grant, connection_id, display))


def test_join_notifies_existing_sessions_and_joiner() -> None:
    directory, broadcaster, _ = _directory()
    _join(directory, "c1", "alice", "p1")
    broadcaster.clear()

    others = _join(directory, "c2", "bob", "p1")

    assert [session.user_id for session in others] == ["alice"]
    assert broadcaster.recipients("user-joined") == ["c1"]
    assert broadcaster.recipients("active-users") == ["c2"]
    _, joined = broadcaster.events("project-joined")[0]
    assert joined == {"projectId": "p1", "activeUsers": 2}
    _, active = broadcaster.events("active-users")[0]
    assert active["users"][0]["user"]["id"] == "alice"


def test_rejoin_same_project_does_not_duplicate() -> None:
    directory, broadcaster, _ = _directory()
    _join(directory, "c1", "alice", "p1")
    _join(directory, "c2", "bob", "p1")
    broadcaster.clear()

    _join(directory, "c1", "alice", "p1")

    assert len(directory.list_active("p1")) == 2
    assert broadcaster.events("user-joined") == []


def test_join_other_project_leaves_previous_room() -> None:
    directory, broadcaster, _ = _directory()
    _join(directory, "c1", "alice", "p1")
    _join(directory, "c2", "bob", "p1")
    broadcaster.clear()

    _join(directory, "c1", "alice", "p2")

    assert [s.connection_id for s in directory.list_active("p1")] == ["c2"]
    assert [s.connection_id for s in directory.list_active("p2")] == ["c1"]
    assert broadcaster.recipients("user-left") == ["c2"]


def test_leave_removes_empty_room_and_is_idempotent() -> None:
    directory, broadcaster, _ = _directory()
    _join(directory, "c1", "alice", "p1")

    first = asyncio.run(directory.leave("c1"))
    second = asyncio.run(directory.leave("c1"))

    assert first is not None
    assert second is None
    assert directory.project_ids() == []
    assert broadcaster.events("user-left") == []


def test_room_is_recreated_fresh_after_emptying() -> None:
    directory, _, _ = _directory()
    _join(directory, "c1", "alice", "p1")
    asyncio.run(directory.leave("c1"))

    others = _join(directory, "c2", "bob", "p1")

    assert others == []
    assert [s.connection_id for s in directory.list_active("p1")] == ["c2"]


def test_cursor_move_reaches_every_other_session() -> None:
    directory, broadcaster, _ = _directory()
    for index in range(4):
        _join(directory, f"c{index}", f"user{index}", "p1")
    broadcaster.clear()
    cursor = Cursor(file_path="/main.py", position=CursorPosition(line=3, col=7))

    moved = asyncio.run(directory.update_cursor("c0", "p1", cursor))

    assert moved is True
    assert sorted(broadcaster.recipients("cursor-move")) == ["c1", "c2", "c3"]
    _, payload = broadcaster.events("cursor-move")[0]
    assert payload["position"] == {"line": 3, "col": 7}
    assert directory.find("c0").cursor == cursor


def test_cursor_move_for_unknown_session_is_noop() -> None:
    directory, broadcaster, _ = _directory()
    cursor = Cursor(file_path="/main.py", position=CursorPosition(line=0, col=0))

    moved = asyncio.run(directory.update_cursor("ghost", "p1", cursor))

    assert moved is False
    assert broadcaster.sent == []


def test_presence_update_is_relayed_to_others() -> None:
    directory, broadcaster, _ = _directory()
    _join(directory, "c1", "alice", "p1")
    _join(directory, "c2", "bob", "p1")
    broadcaster.clear()

    asyncio.run(
        directory.update_presence("c1", "p1", PresenceStatus.AWAY, "reviewing")
    )

    assert broadcaster.recipients("presence-update") == ["c2"]
    session = directory.find("c1")
    assert session.status == PresenceStatus.AWAY
    assert session.activity == "reviewing"


def test_evict_inactive_uses_threshold() -> None:
    directory, broadcaster, clock = _directory()
    _join(directory, "stale", "alice", "p1")
    clock.advance(minutes=2)
    _join(directory, "fresh", "bob", "p1")
    clock.advance(minutes=4)
    broadcaster.clear()

    evicted = asyncio.run(directory.evict_inactive(timedelta(minutes=5)))

    assert [session.connection_id for session in evicted] == ["stale"]
    assert [s.connection_id for s in directory.list_active("p1")] == ["fresh"]
    assert broadcaster.recipients("user-inactive") == ["fresh"]


def test_touch_keeps_session_alive() -> None:
    directory, _, clock = _directory()
    _join(directory, "c1", "alice", "p1")
    clock.advance(minutes=4)
    directory.touch("c1")
    clock.advance(minutes=4)

    evicted = asyncio.run(directory.evict_inactive(timedelta(minutes=5)))

    assert evicted == []


def test_evicting_last_session_removes_room() -> None:
    directory, broadcaster, clock = _directory()
    _join(directory, "c1", "alice", "p1")
    clock.advance(minutes=6)

    asyncio.run(directory.evict_inactive(timedelta(minutes=5)))

    assert directory.project_ids() == []
    assert broadcaster.events("user-inactive") == []


def test_list_active_returns_copies() -> None:
    directory, _, _ = _directory()
    _join(directory, "c1", "alice", "p1")

    snapshot = directory.list_active("p1")[0]
    snapshot.status = PresenceStatus.BUSY

    assert directory.find("c1").status == PresenceStatus.ONLINE
    assert directory.list_active("missing") == []
