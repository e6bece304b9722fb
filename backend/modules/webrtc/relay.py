"""시그널링 메시지 릴레이 모듈.

룸 안의 다른 참가자에게 offer/answer/ICE candidate 와 마이크/카메라 토글을
그대로 전달합니다. 서버는 세션 디스크립션이나 candidate 내용을 해석하지 않습니다.

메시지 형식:
    {"type": "<message type>", "data": {...}}

call_ended 전달 정책 (at-least-once):
    통화 종료 시 call_ended 를 즉시 한 번 보내고, resend_delay 후 같은 event_id 로
    한 번 더 보냅니다. 클라이언트는 event_id 로 중복을 걸러냅니다.
    user_left 는 첫 call_ended 직후 바로 전송됩니다.
"""

import asyncio
import logging
import uuid
from typing import Iterable, List, Optional, Set

from .config import room_config
from .room_manager import Participant, RoomManager

logger = logging.getLogger(__name__)

RELAYED_SIGNAL_TYPES = ("offer", "answer", "ice_candidate")

TOGGLE_MESSAGE_TYPES = {
    "mic": ("remote_mic_toggled", "mic_enabled"),
    "camera": ("remote_camera_toggled", "camera_enabled"),
}


class SignalingRelay:
    """룸 단위 메시지 전달기.

    Attributes:
        room_manager (RoomManager): 참가자 조회용
        resend_delay (float): call_ended 재전송 지연 (초)
    """

    def __init__(
        self,
        room_manager: RoomManager,
        resend_delay: float = room_config.CALL_ENDED_RESEND_DELAY_SECONDS,
    ):
        self.room_manager = room_manager
        self.resend_delay = resend_delay
        self._resend_tasks: Set[asyncio.Task] = set()

    async def send(self, participant: Participant, message: dict) -> bool:
        """참가자 한 명에게 메시지를 보냅니다. 실패는 로그만 남깁니다."""
        if participant.websocket is None:
            return False
        try:
            await participant.websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"연결 {participant.connection_id[:8]}에 전송 실패: {e}")
            return False

    async def broadcast_to_room(
        self,
        room_id: str,
        message: dict,
        exclude: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """룸의 모든 참가자에게 메시지를 브로드캐스트합니다.

        Args:
            room_id: 메시지를 전송할 룸 ID
            message: 전송할 메시지 딕셔너리
            exclude: 메시지를 받지 않을 connection_id 목록

        Returns:
            List[str]: 전송에 성공한 connection_id 목록
        """
        excluded = set(exclude or ())
        delivered = []
        for participant in self.room_manager.list_participants(room_id):
            if participant.connection_id in excluded:
                continue
            if await self.send(participant, message):
                delivered.append(participant.connection_id)
        return delivered

    async def broadcast_participants(self, room_id: str) -> None:
        """현재 참가자 목록을 룸 전체에 알립니다."""
        participants = self.room_manager.list_participants(room_id)
        await self.broadcast_to_room(room_id, {
            "type": "participants_updated",
            "data": {
                "room_id": room_id,
                "participants": [p.to_public_dict() for p in participants],
            }
        })

    async def relay_signal(
        self,
        room_id: str,
        sender: Participant,
        message_type: str,
        payload,
    ) -> List[str]:
        """offer/answer/ice_candidate 를 보낸 사람을 제외한 룸 참가자에게 전달합니다."""
        if message_type not in RELAYED_SIGNAL_TYPES:
            raise ValueError(f"Not a relayed signal type: {message_type}")

        delivered = await self.broadcast_to_room(
            room_id,
            {
                "type": message_type,
                "data": {"from": sender.connection_id, "payload": payload},
            },
            exclude=[sender.connection_id],
        )
        logger.debug(f"[{message_type}] {sender.connection_id[:8]} → {len(delivered)}명 (room '{room_id}')")
        return delivered

    async def relay_toggle(
        self,
        room_id: str,
        sender: Participant,
        kind: str,
        enabled: bool,
    ) -> List[str]:
        """마이크/카메라 상태 변경을 상대방에게 알립니다."""
        message_type, field_name = TOGGLE_MESSAGE_TYPES[kind]
        if kind == "mic":
            sender.mic_enabled = enabled
        else:
            sender.camera_enabled = enabled

        return await self.broadcast_to_room(
            room_id,
            {
                "type": message_type,
                "data": {
                    "connection_id": sender.connection_id,
                    "display_name": sender.display_name,
                    field_name: enabled,
                },
            },
            exclude=[sender.connection_id],
        )

    async def announce_departure(self, room_id: str, departing: Participant) -> str:
        """통화 종료와 상대 퇴장을 알립니다.

        1. call_ended 를 룸 전체에 전송 (departing 이 아직 룸에 있으면 본인 포함)
        2. user_left 를 departing 을 제외한 참가자에게 전송
        3. resend_delay 후 같은 event_id 로 call_ended 재전송 예약

        Returns:
            str: call_ended event_id
        """
        event_id = str(uuid.uuid4())
        call_ended = {"type": "call_ended", "data": {"room_id": room_id, "event_id": event_id}}

        recipients = await self.broadcast_to_room(room_id, call_ended)
        await self.broadcast_to_room(
            room_id,
            {
                "type": "user_left",
                "data": departing.to_public_dict(),
            },
            exclude=[departing.connection_id],
        )

        recipients = [cid for cid in recipients if cid != departing.connection_id]
        if recipients:
            self._schedule_resend(room_id, call_ended, recipients)
        return event_id

    def _schedule_resend(self, room_id: str, message: dict, recipients: List[str]) -> None:
        task = asyncio.create_task(self._resend_later(room_id, message, set(recipients)))
        self._resend_tasks.add(task)
        task.add_done_callback(self._resend_tasks.discard)

    async def _resend_later(self, room_id: str, message: dict, recipients: Set[str]) -> None:
        await asyncio.sleep(self.resend_delay)
        # 처음 받은 사람 중 아직 룸에 남아 있는 연결에만 재전송
        for participant in self.room_manager.list_participants(room_id):
            if participant.connection_id in recipients:
                await self.send(participant, message)

    async def shutdown(self) -> None:
        """대기 중인 재전송 태스크를 취소합니다."""
        tasks = list(self._resend_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
