"""SignalingRelay 테스트 (offer/answer/ICE 전달, 토글, call_ended 재전송)."""

import asyncio

import pytest

from conftest import FakeWebSocket
from modules.webrtc import RoomManager, SignalingRelay


@pytest.fixture
def sockets(room_manager):
    """룸 42 에 Alice/Bob, 룸 43 에 Carol."""
    ws = {name: FakeWebSocket() for name in ("alice", "bob", "carol")}
    room_manager.join_room("42", "a", "Alice", "alice@x.com", ws["alice"])
    room_manager.join_room("42", "b", "Bob", "bob@x.com", ws["bob"])
    room_manager.join_room("43", "c", "Carol", "", ws["carol"])
    return ws


async def test_offer_reaches_only_other_participant_in_room(room_manager, relay, sockets):
    alice = room_manager.get_participant("a")
    sdp = {"type": "offer", "sdp": "v=0..."}

    delivered = await relay.relay_signal("42", alice, "offer", sdp)

    assert delivered == ["b"]
    assert sockets["bob"].sent == [{"type": "offer", "data": {"from": "a", "payload": sdp}}]
    assert sockets["alice"].sent == []
    assert sockets["carol"].sent == []


async def test_ice_candidate_and_answer_are_relayed_unchanged(room_manager, relay, sockets):
    bob = room_manager.get_participant("b")
    candidate = {"candidate": "candidate:1 1 udp ...", "sdpMid": "0", "sdpMLineIndex": 0}

    await relay.relay_signal("42", bob, "answer", {"sdp": "answer"})
    await relay.relay_signal("42", bob, "ice_candidate", candidate)

    assert [m["data"]["payload"] for m in sockets["alice"].sent] == [{"sdp": "answer"}, candidate]
    assert sockets["carol"].sent == []


async def test_relay_rejects_non_signal_type(room_manager, relay, sockets):
    with pytest.raises(ValueError):
        await relay.relay_signal("42", room_manager.get_participant("a"), "join_room", {})


async def test_toggle_updates_sender_and_notifies_peer(room_manager, relay, sockets):
    alice = room_manager.get_participant("a")

    await relay.relay_toggle("42", alice, "mic", False)
    await relay.relay_toggle("42", alice, "camera", False)

    assert alice.mic_enabled is False
    assert alice.camera_enabled is False
    assert sockets["bob"].sent == [
        {"type": "remote_mic_toggled",
         "data": {"connection_id": "a", "display_name": "Alice", "mic_enabled": False}},
        {"type": "remote_camera_toggled",
         "data": {"connection_id": "a", "display_name": "Alice", "camera_enabled": False}},
    ]
    assert sockets["alice"].sent == []


async def test_send_failure_does_not_stop_broadcast(room_manager):
    relay = SignalingRelay(room_manager, resend_delay=0)
    broken, healthy = FakeWebSocket(fail=True), FakeWebSocket()
    room_manager.join_room("42", "a", "Alice", "", broken)
    room_manager.join_room("42", "b", "Bob", "", healthy)

    delivered = await relay.broadcast_to_room("42", {"type": "ping", "data": {}})

    assert delivered == ["b"]
    assert healthy.of_type("ping")


async def test_call_ended_is_resent_with_same_event_id(room_manager, relay, sockets):
    departing = room_manager.leave_room("b").participant

    event_id = await relay.announce_departure("42", departing)

    assert sockets["alice"].types() == ["call_ended", "user_left"]
    assert sockets["alice"].sent[1]["data"] == {"connection_id": "b", "display_name": "Bob"}

    await asyncio.sleep(0.15)
    ended = sockets["alice"].of_type("call_ended")
    assert len(ended) == 2
    assert {m["data"]["event_id"] for m in ended} == {event_id}
    assert sockets["bob"].sent == []
    assert sockets["carol"].sent == []


async def test_resend_skips_recipients_who_left(room_manager, relay, sockets):
    departing = room_manager.leave_room("b").participant
    await relay.announce_departure("42", departing)
    room_manager.leave_room("a")

    await asyncio.sleep(0.15)

    assert len(sockets["alice"].of_type("call_ended")) == 1


async def test_shutdown_cancels_pending_resends(room_manager):
    relay = SignalingRelay(room_manager, resend_delay=10)
    ws = FakeWebSocket()
    room_manager.join_room("42", "a", "Alice", "", ws)
    room_manager.join_room("42", "b", "Bob", "")

    await relay.announce_departure("42", room_manager.leave_room("b").participant)
    await relay.shutdown()

    assert len(ws.of_type("call_ended")) == 1
