"""CallCoordinator 테스트 (입장 알림, 정원 경쟁, 퇴장/종료, 빈 룸 유예 정리)."""

import asyncio
from pathlib import Path

import pytest

from conftest import FakeWebSocket, wait_for
from modules.recording import SessionState
from modules.webrtc import RoomFullError


async def _join(coordinator, room_id, cid, name, contact=""):
    ws = FakeWebSocket()
    await coordinator.join(room_id, cid, name, contact, ws)
    return ws


async def test_join_notifies_joiner_and_existing_participant(coordinator):
    alice = await _join(coordinator, "42", "a", "Alice", "alice@x.com")
    bob = await _join(coordinator, "42", "b", "Bob", "bob@x.com")

    assert bob.sent[0] == {
        "type": "room_joined",
        "data": {
            "room_id": "42",
            "connection_id": "b",
            "participants": [{"connection_id": "a", "display_name": "Alice"}],
        },
    }
    assert alice.types() == ["room_joined", "participants_updated", "participants_updated", "user_joined"]
    assert alice.of_type("user_joined")[0]["data"] == {"connection_id": "b", "display_name": "Bob"}
    latest = alice.of_type("participants_updated")[-1]["data"]["participants"]
    assert [p["display_name"] for p in latest] == ["Alice", "Bob"]


async def test_concurrent_joins_admit_exactly_two(coordinator, room_manager):
    results = await asyncio.gather(
        coordinator.join("42", "a", "Alice", "", FakeWebSocket()),
        coordinator.join("42", "b", "Bob", "", FakeWebSocket()),
        coordinator.join("42", "c", "Carol", "", FakeWebSocket()),
        return_exceptions=True,
    )

    rejected = [r for r in results if isinstance(r, RoomFullError)]
    assert len(rejected) == 1
    assert room_manager.get_room_count("42") == 2
    assert room_manager.get_connection_room("c") is None


async def test_leave_notifies_remaining_participant(coordinator, room_manager):
    alice = await _join(coordinator, "42", "a", "Alice")
    await _join(coordinator, "42", "b", "Bob")
    alice.sent.clear()

    result = await coordinator.leave("b")

    assert result.participant.display_name == "Bob"
    assert alice.types()[:3] == ["call_ended", "user_left", "participants_updated"]
    assert [p.display_name for p in room_manager.list_participants("42")] == ["Alice"]
    assert room_manager.get_room("42").cleanup_task is None


async def test_leave_unknown_connection_is_noop(coordinator):
    assert await coordinator.leave("ghost") is None


async def test_end_call_reaches_both_and_removes_sender(coordinator, room_manager):
    alice = await _join(coordinator, "42", "a", "Alice")
    bob = await _join(coordinator, "42", "b", "Bob")
    alice.sent.clear()
    bob.sent.clear()

    await coordinator.end_call("a")

    assert alice.types() == ["call_ended"]
    assert bob.types()[:3] == ["call_ended", "user_left", "participants_updated"]
    assert alice.sent[0]["data"]["event_id"] == bob.sent[0]["data"]["event_id"]
    assert room_manager.get_connection_room("a") is None
    assert room_manager.get_room_count("42") == 1


async def test_empty_room_deleted_after_grace(coordinator, room_manager):
    await _join(coordinator, "42", "a", "Alice")
    await coordinator.leave("a")

    room = room_manager.get_room("42")
    assert room is not None and room.cleanup_task is not None

    await wait_for(lambda: room_manager.get_room("42") is None)


async def test_rejoin_within_grace_cancels_cleanup(coordinator, room_manager, aggregator):
    await _join(coordinator, "42", "a", "Alice", "alice@x.com")
    await aggregator.add_audio("42", "Alice", "alice@x.com", b"chunk-1", "a.webm")
    await coordinator.leave("a")

    await _join(coordinator, "42", "a2", "Alice", "alice@x.com")
    await asyncio.sleep(0.25)

    assert room_manager.get_room("42") is not None
    assert room_manager.get_room("42").cleanup_task is None
    assert aggregator.get_session("42").state == SessionState.COLLECTING


async def test_stale_session_reclaimed_with_room(coordinator, room_manager, aggregator, processor):
    await _join(coordinator, "42", "a", "Alice", "alice@x.com")
    receipt = await aggregator.add_audio("42", "Alice", "alice@x.com", b"chunk-1", "a.webm")
    blob = aggregator.get_session("42").blob_paths()[0]
    assert receipt.contributors == 1 and blob.exists()

    await coordinator.leave("a")
    await wait_for(lambda: room_manager.get_room("42") is None and aggregator.get_session("42") is None)

    assert not Path(blob).exists()
    assert processor.calls == []


async def test_upload_for_unknown_room_is_reclaimed(coordinator, room_manager, aggregator):
    await aggregator.add_audio("gone", "Alice", "", b"late-beacon", "a.webm")
    blob = aggregator.get_session("gone").blob_paths()[0]

    await coordinator.on_recording_upload("gone")
    assert room_manager.get_room("gone").cleanup_task is not None

    await wait_for(lambda: aggregator.get_session("gone") is None)
    assert room_manager.get_room("gone") is None
    assert not blob.exists()


async def test_upload_for_occupied_room_schedules_nothing(coordinator, room_manager):
    await _join(coordinator, "42", "a", "Alice")
    await coordinator.on_recording_upload("42")
    assert room_manager.get_room("42").cleanup_task is None


async def test_shutdown_cancels_grace_timers(coordinator, room_manager):
    await _join(coordinator, "42", "a", "Alice")
    await coordinator.leave("a")
    task = room_manager.get_room("42").cleanup_task

    await coordinator.shutdown()

    assert task.cancelled()
    assert room_manager.get_room("42").cleanup_task is None
