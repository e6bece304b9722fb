"""룸 기반 참가자 관리 모듈.

이 모듈은 1:1 화상 통화 시스템의 룸(방)과 참가자(연결) 관리를 담당합니다.
여러 개의 독립적인 통화(룸)를 동시에 관리하며, 각 룸의 정원(2명)을 강제합니다.

주요 기능:
    - 룸 생성 (첫 입장 시 자동 생성)
    - 정원 검사 (가득 찬 룸은 상태 변경 없이 RoomFullError)
    - 참가자 입장/퇴장 관리
    - 룸별 참가자 목록 조회 (입장 순서 유지)
    - 룸 상태 모니터링 (참가자 수, 참가자 정보)

Architecture:
    - rooms: Dict[str, Room] - 룸 ID → 룸 상태 (참가자 맵 + 정리 타이머)
    - connection_to_room: Dict[str, str] - 연결 ID → 룸 ID (빠른 조회용)

    빈 룸은 바로 삭제하지 않습니다. 유예 시간 후 삭제 여부는
    CallCoordinator 가 결정하며, 삭제는 delete_room() 으로만 일어납니다.

Classes:
    Participant: 참가자 정보를 담는 데이터 클래스
    Room: 룸 상태를 담는 데이터 클래스
    RoomManager: 룸 및 참가자 관리 클래스

Examples:
    기본 사용법:
        >>> manager = RoomManager()
        >>> manager.join_room("42", "conn-1", "Alice", "alice@x.com", ws1)
        >>> manager.join_room("42", "conn-2", "Bob", "bob@x.com", ws2)
        >>> manager.join_room("42", "conn-3", "Carol", "", ws3)
        Traceback (most recent call last):
        RoomFullError: Room '42' is full (2/2)

See Also:
    coordinator.py: 입장/퇴장/정리 흐름 조율
    relay.py: 룸 내 메시지 전달
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import room_config

logger = logging.getLogger(__name__)


class RoomFullError(Exception):
    """정원이 가득 찬 룸에 입장하려 할 때 발생합니다."""

    def __init__(self, room_id: str, max_participants: int):
        self.room_id = room_id
        self.max_participants = max_participants
        super().__init__(f"Room '{room_id}' is full ({max_participants}/{max_participants})")


@dataclass
class Participant:
    """룸에 참가한 연결(참가자)을 나타내는 데이터 클래스.

    참가자는 사람이 아니라 전송 연결 단위입니다. 같은 사람이 새로고침 후
    다시 들어오면 새로운 connection_id 를 가진 새 Participant 가 됩니다.

    Attributes:
        connection_id (str): 연결의 고유 식별자 (UUID)
        display_name (str): 사용자가 설정한 표시 이름
        contact (str): 요약 메일을 받을 주소 (빈 문자열 허용)
        websocket (WebSocket): 참가자와의 WebSocket 연결 객체
        mic_enabled (bool): 마이크 활성화 상태
        camera_enabled (bool): 카메라 활성화 상태
    """
    connection_id: str
    display_name: str
    contact: str
    websocket: Any = field(repr=False, default=None)
    mic_enabled: bool = True
    camera_enabled: bool = True

    def to_public_dict(self) -> dict:
        """브로드캐스트용 공개 정보 (연락처 제외)."""
        return {"connection_id": self.connection_id, "display_name": self.display_name}


@dataclass
class Room:
    """룸 상태.

    Attributes:
        room_id (str): 외부에서 전달된 룸 식별자
        participants (Dict[str, Participant]): 입장 순서가 유지되는 참가자 맵
        cleanup_task (asyncio.Task | None): 빈 룸 정리 타이머 (유예 시간 대기 중일 때만)
        created_at (float): 생성 시각 (epoch seconds)
    """
    room_id: str
    participants: Dict[str, Participant] = field(default_factory=dict)
    cleanup_task: Optional[asyncio.Task] = field(default=None, repr=False)
    created_at: float = field(default_factory=time.time)

    @property
    def is_empty(self) -> bool:
        return not self.participants

    @property
    def occupancy(self) -> int:
        return len(self.participants)


@dataclass
class LeaveResult:
    """leave_room() 결과."""
    room_id: str
    participant: Participant
    remaining: List[Participant]


class RoomManager:
    """룸과 참가자를 관리하는 핵심 클래스.

    Attributes:
        rooms (Dict[str, Room]): 룸 ID를 키로 하는 룸 딕셔너리
        connection_to_room (Dict[str, str]): 연결 ID → 룸 ID 역 매핑
        max_participants (int): 룸당 최대 참가자 수

    Thread Safety:
        - 모든 메서드는 동기 함수이며 await 지점이 없어 이벤트 루프 안에서 원자적으로 실행됨
        - 검사 후 브로드캐스트처럼 await 가 끼는 흐름은 CallCoordinator 가
          룸 단위 락(KeyedLock)으로 직렬화함
    """

    def __init__(self, max_participants: int = room_config.MAX_PARTICIPANTS):
        # room_id -> Room
        self.rooms: Dict[str, Room] = {}

        # connection_id -> room_id (for quick lookup)
        self.connection_to_room: Dict[str, str] = {}

        self.max_participants = max_participants

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def get_or_create_room(self, room_id: str) -> Room:
        """룸을 반환하고, 없으면 빈 룸을 생성합니다."""
        room = self.rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self.rooms[room_id] = room
            logger.info(f"Room '{room_id}' created")
        return room

    def check_capacity(self, room_id: str) -> None:
        """입장 가능 여부를 검사합니다 (Room Capacity Gate).

        상태를 전혀 변경하지 않습니다. 존재하지 않는 룸은 정원 0 으로 취급합니다.

        Raises:
            RoomFullError: 현재 인원이 max_participants 이상인 경우
        """
        room = self.rooms.get(room_id)
        occupancy = room.occupancy if room else 0
        if occupancy >= self.max_participants:
            logger.info(f"Room '{room_id}' rejected join: full ({occupancy}/{self.max_participants})")
            raise RoomFullError(room_id, self.max_participants)

    def join_room(
        self,
        room_id: str,
        connection_id: str,
        display_name: str,
        contact: str,
        websocket: Any = None,
    ) -> Participant:
        """연결을 지정된 룸에 추가합니다.

        Args:
            room_id (str): 참가할 룸 ID
            connection_id (str): 참가하는 연결의 고유 ID
            display_name (str): 표시 이름
            contact (str): 이메일 주소 (빈 문자열 허용)
            websocket (WebSocket): 연결 객체

        Returns:
            Participant: 새로 등록된 참가자

        Raises:
            RoomFullError: 룸이 가득 찬 경우 (상태 변경 없음)
            ValueError: 이미 다른 룸에 속한 연결인 경우
        """
        if connection_id in self.connection_to_room:
            raise ValueError(
                f"Connection {connection_id} already in room '{self.connection_to_room[connection_id]}'"
            )

        self.check_capacity(room_id)

        room = self.get_or_create_room(room_id)
        participant = Participant(
            connection_id=connection_id,
            display_name=display_name,
            contact=contact,
            websocket=websocket,
        )
        room.participants[connection_id] = participant
        self.connection_to_room[connection_id] = room_id

        logger.info(f"Participant '{display_name}' ({connection_id}) joined room '{room_id}'. "
                    f"Room has {room.occupancy} participants")
        return participant

    def leave_room(self, connection_id: str) -> Optional[LeaveResult]:
        """연결을 현재 속한 룸에서 제거합니다.

        룸이 비어도 여기서는 삭제하지 않습니다 (유예 시간 정리는 CallCoordinator 담당).

        Returns:
            Optional[LeaveResult]: 퇴장 정보. 어떤 룸에도 속하지 않았으면 None
        """
        room_id = self.connection_to_room.pop(connection_id, None)
        if room_id is None:
            return None

        room = self.rooms.get(room_id)
        if room is None or connection_id not in room.participants:
            return None

        participant = room.participants.pop(connection_id)
        logger.info(f"Participant '{participant.display_name}' ({connection_id}) left room '{room_id}'. "
                    f"Room has {room.occupancy} participants")
        return LeaveResult(
            room_id=room_id,
            participant=participant,
            remaining=list(room.participants.values()),
        )

    def delete_room(self, room_id: str) -> bool:
        """빈 룸을 삭제합니다. 참가자가 남아 있으면 삭제하지 않습니다."""
        room = self.rooms.get(room_id)
        if room is None or not room.is_empty:
            return False
        del self.rooms[room_id]
        logger.info(f"Room '{room_id}' deleted (empty)")
        return True

    def list_participants(self, room_id: str) -> List[Participant]:
        """룸의 참가자 목록을 입장 순서대로 반환합니다."""
        room = self.rooms.get(room_id)
        return list(room.participants.values()) if room else []

    def get_other_participants(self, room_id: str, exclude_connection_id: str) -> List[Participant]:
        """특정 연결을 제외한 룸의 다른 참가자를 반환합니다."""
        return [p for p in self.list_participants(room_id)
                if p.connection_id != exclude_connection_id]

    def get_connection_room(self, connection_id: str) -> Optional[str]:
        return self.connection_to_room.get(connection_id)

    def get_participant(self, connection_id: str) -> Optional[Participant]:
        """연결 ID로 Participant 객체를 조회합니다."""
        room_id = self.connection_to_room.get(connection_id)
        if room_id and room_id in self.rooms:
            return self.rooms[room_id].participants.get(connection_id)
        return None

    def find_participant_by_name(self, room_id: str, display_name: str) -> Optional[Participant]:
        """표시 이름으로 참가자를 찾습니다 (같은 이름이 여럿이면 먼저 입장한 쪽)."""
        for participant in self.list_participants(room_id):
            if participant.display_name == display_name:
                return participant
        return None

    def get_room_list(self) -> List[dict]:
        """모든 룸의 정보를 리스트로 반환합니다.

        Returns:
            List[dict]: room_id, participant_count, participants, awaiting_cleanup
        """
        return [
            {
                "room_id": room_id,
                "participant_count": room.occupancy,
                "participants": [p.to_public_dict() for p in room.participants.values()],
                "awaiting_cleanup": room.cleanup_task is not None,
            }
            for room_id, room in self.rooms.items()
        ]

    def get_room_count(self, room_id: str) -> int:
        """특정 룸의 현재 참가자 수 (룸이 없으면 0)."""
        room = self.rooms.get(room_id)
        return room.occupancy if room else 0
