"""WebRTC 시그널링 모듈.

룸 관리, 시그널링 메시지 릴레이, 입장/퇴장/정리 조율 기능을 제공합니다.

Classes:
    RoomManager: 룸 및 참가자 관리 (정원 2명)
    Participant: 참가자 데이터 클래스
    Room: 룸 상태 데이터 클래스
    SignalingRelay: offer/answer/ICE/토글 전달
    CallCoordinator: 입장/퇴장/빈 룸 정리 조율

Config:
    ice_config: ICE 서버 설정
    room_config: 룸 정원 및 타이머 설정
"""

from .room_manager import RoomManager, Participant, Room, LeaveResult, RoomFullError
from .relay import SignalingRelay, RELAYED_SIGNAL_TYPES
from .coordinator import CallCoordinator
from .config import (
    ice_config,
    room_config,
    ICEServerConfig,
    RoomConfig,
)

__all__ = [
    # Classes
    "RoomManager",
    "Participant",
    "Room",
    "LeaveResult",
    "RoomFullError",
    "SignalingRelay",
    "RELAYED_SIGNAL_TYPES",
    "CallCoordinator",
    # Config
    "ice_config",
    "room_config",
    "ICEServerConfig",
    "RoomConfig",
]
