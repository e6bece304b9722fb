"""RoomManager 테스트 (참가자 레지스트리 + 정원 검사)."""

import pytest

from conftest import FakeWebSocket
from modules.webrtc import RoomFullError, RoomManager


def _names(manager: RoomManager, room_id: str):
    return [p.display_name for p in manager.list_participants(room_id)]


def test_join_creates_room_and_keeps_order():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "alice@x.com", FakeWebSocket())
    manager.join_room("42", "c2", "Bob", "bob@x.com", FakeWebSocket())

    assert _names(manager, "42") == ["Alice", "Bob"]
    assert manager.get_connection_room("c1") == "42"
    assert manager.get_room_count("42") == 2


def test_third_join_rejected_without_mutation():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "alice@x.com")
    manager.join_room("42", "c2", "Bob", "bob@x.com")

    with pytest.raises(RoomFullError) as exc_info:
        manager.join_room("42", "c3", "Carol", "")

    assert exc_info.value.max_participants == 2
    assert _names(manager, "42") == ["Alice", "Bob"]
    assert manager.get_connection_room("c3") is None


def test_check_capacity_on_unknown_room_does_not_create_it():
    manager = RoomManager()
    manager.check_capacity("nowhere")
    assert manager.get_room("nowhere") is None


def test_join_while_in_room_raises():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "")
    with pytest.raises(ValueError):
        manager.join_room("43", "c1", "Alice", "")
    assert manager.get_room("43") is None


def test_leave_keeps_empty_room_until_deleted():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "")

    result = manager.leave_room("c1")

    assert result.room_id == "42"
    assert result.participant.display_name == "Alice"
    assert result.remaining == []
    assert manager.get_room("42").is_empty
    assert manager.leave_room("c1") is None
    assert manager.delete_room("42") is True
    assert manager.get_room("42") is None


def test_delete_room_refuses_occupied_room():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "")
    assert manager.delete_room("42") is False
    assert _names(manager, "42") == ["Alice"]


def test_capacity_never_exceeded_over_join_leave_sequence():
    """입장/퇴장을 반복해도 참가자 수는 2명을 넘지 않습니다."""
    manager = RoomManager()
    next_id = 0
    for step in range(30):
        if step % 3 == 2 and manager.list_participants("42"):
            manager.leave_room(manager.list_participants("42")[0].connection_id)
            continue
        next_id += 1
        try:
            manager.join_room("42", f"c{next_id}", f"user{next_id}", "")
        except RoomFullError:
            pass
        assert manager.get_room_count("42") <= 2


def test_find_participant_by_name_and_room_list():
    manager = RoomManager()
    manager.join_room("42", "c1", "Alice", "alice@x.com")

    assert manager.find_participant_by_name("42", "Alice").contact == "alice@x.com"
    assert manager.find_participant_by_name("42", "Bob") is None
    assert manager.get_room_list() == [{
        "room_id": "42",
        "participant_count": 1,
        "participants": [{"connection_id": "c1", "display_name": "Alice"}],
        "awaiting_cleanup": False,
    }]
