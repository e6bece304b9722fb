"""Health Check API 라우터.

서비스 상태 확인을 위한 엔드포인트를 제공합니다.
"""

from typing import Optional, TYPE_CHECKING

from fastapi import APIRouter

if TYPE_CHECKING:
    from modules import RecordingAggregator, RoomManager

router = APIRouter(prefix="/api/health", tags=["health"])

_room_manager: Optional["RoomManager"] = None
_aggregator: Optional["RecordingAggregator"] = None


def init_health(room_manager: "RoomManager", aggregator: "RecordingAggregator"):
    global _room_manager, _aggregator
    _room_manager = room_manager
    _aggregator = aggregator


@router.get("")
async def health_check():
    """서버 상태와 진행 중인 룸/녹음 세션 수를 반환합니다.

    Returns:
        dict: status, rooms, recording_sessions, pending_processing
    """
    if _room_manager is None or _aggregator is None:
        return {"status": "not_initialized", "rooms": 0, "recording_sessions": 0, "pending_processing": 0}

    return {
        "status": "ok",
        "rooms": len(_room_manager.rooms),
        "recording_sessions": len(_aggregator.sessions),
        "pending_processing": _aggregator.pending_processing,
    }
