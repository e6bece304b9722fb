"""통화 입장/퇴장/정리 조율 모듈.

RoomManager(참가자 상태), SignalingRelay(알림 전송), RecordingAggregator(녹음 세션)를
묶어 한 룸에 대한 모든 변경을 룸 단위 락 안에서 순서대로 실행합니다.

흐름:
    join:       정원 검사 → 등록 → 정리 타이머 취소 → room_joined / participants_updated / user_joined
    leave:      등록 해제 → call_ended + user_left → (남은 인원 있음) participants_updated
                                                → (빈 룸) 유예 시간 정리 타이머 예약
    end_call:   call_ended 를 본인 포함 룸 전체에 보낸 뒤 leave 와 동일하게 처리
    grace 만료: 여전히 비어 있으면 룸 삭제 + Collecting 상태 녹음 세션 폐기 (stale)

정리 타이머는 룸에 붙은 asyncio.Task 이며, 유예 시간 안에 누군가 입장하면 취소됩니다.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..shared import KeyedLock
from .config import room_config
from .relay import SignalingRelay
from .room_manager import LeaveResult, Participant, RoomManager

if TYPE_CHECKING:
    from ..recording import RecordingAggregator

logger = logging.getLogger(__name__)


class CallCoordinator:
    """룸 생명주기 조율자 (Disconnect/Cleanup Coordinator).

    Attributes:
        room_manager (RoomManager): 참가자 레지스트리
        relay (SignalingRelay): 메시지 전달기
        aggregator (RecordingAggregator | None): 녹음 세션 집계기
        grace_seconds (float): 빈 룸 정리 유예 시간
    """

    def __init__(
        self,
        room_manager: RoomManager,
        relay: SignalingRelay,
        aggregator: Optional["RecordingAggregator"] = None,
        grace_seconds: float = room_config.EMPTY_ROOM_GRACE_SECONDS,
    ):
        self.room_manager = room_manager
        self.relay = relay
        self.aggregator = aggregator
        self.grace_seconds = grace_seconds
        self._locks = KeyedLock()

    async def join(
        self,
        room_id: str,
        connection_id: str,
        display_name: str,
        contact: str,
        websocket: Any = None,
    ) -> Participant:
        """연결을 룸에 입장시키고 룸 참가자들에게 알립니다.

        Raises:
            RoomFullError: 룸이 가득 찬 경우 (아무 상태도 바뀌지 않음)
        """
        async with self._locks.hold(room_id):
            participant = self.room_manager.join_room(
                room_id, connection_id, display_name, contact, websocket
            )
            room = self.room_manager.get_room(room_id)
            self._cancel_cleanup(room)

            others = self.room_manager.get_other_participants(room_id, connection_id)
            await self.relay.send(participant, {
                "type": "room_joined",
                "data": {
                    "room_id": room_id,
                    "connection_id": connection_id,
                    "participants": [p.to_public_dict() for p in others],
                }
            })
            await self.relay.broadcast_participants(room_id)
            await self.relay.broadcast_to_room(
                room_id,
                {"type": "user_joined", "data": participant.to_public_dict()},
                exclude=[connection_id],
            )
        return participant

    async def leave(self, connection_id: str) -> Optional[LeaveResult]:
        """연결 끊김 또는 leave_room 처리. 룸에 속하지 않은 연결이면 None."""
        room_id = self.room_manager.get_connection_room(connection_id)
        if room_id is None:
            return None

        async with self._locks.hold(room_id):
            result = self.room_manager.leave_room(connection_id)
            if result is None:
                return None
            await self.relay.announce_departure(room_id, result.participant)
            await self._after_departure(result)
        return result

    async def end_call(self, connection_id: str) -> Optional[LeaveResult]:
        """명시적 통화 종료. call_ended 는 종료를 누른 본인에게도 전달됩니다."""
        room_id = self.room_manager.get_connection_room(connection_id)
        if room_id is None:
            return None

        async with self._locks.hold(room_id):
            participant = self.room_manager.get_participant(connection_id)
            if participant is None:
                return None
            logger.info(f"Call ended in room '{room_id}' by {participant.display_name}")
            await self.relay.announce_departure(room_id, participant)
            result = self.room_manager.leave_room(connection_id)
            if result is not None:
                await self._after_departure(result)
        return result

    async def on_recording_upload(self, room_id: str) -> None:
        """업로드가 들어온 룸이 비어 있으면 (unload beacon 등) 정리 타이머를 예약합니다."""
        async with self._locks.hold(room_id):
            room = self.room_manager.get_room(room_id)
            if room is None or (room.is_empty and room.cleanup_task is None):
                logger.info(f"Upload for empty room '{room_id}', scheduling cleanup")
                self._schedule_cleanup(room_id)

    async def _after_departure(self, result: LeaveResult) -> None:
        if result.remaining:
            await self.relay.broadcast_participants(result.room_id)
        else:
            self._schedule_cleanup(result.room_id)

    def _schedule_cleanup(self, room_id: str) -> None:
        room = self.room_manager.get_or_create_room(room_id)
        if room.cleanup_task is not None and not room.cleanup_task.done():
            return
        room.cleanup_task = asyncio.create_task(self._cleanup_after_grace(room_id))
        logger.info(f"Room '{room_id}' empty, cleanup in {self.grace_seconds}s")

    def _cancel_cleanup(self, room) -> None:
        if room is not None and room.cleanup_task is not None:
            room.cleanup_task.cancel()
            room.cleanup_task = None
            logger.info(f"Room '{room.room_id}' cleanup cancelled (rejoined)")

    async def _cleanup_after_grace(self, room_id: str) -> None:
        await asyncio.sleep(self.grace_seconds)
        async with self._locks.hold(room_id):
            room = self.room_manager.get_room(room_id)
            if room is None:
                return
            room.cleanup_task = None
            if not room.is_empty:
                return
            self.room_manager.delete_room(room_id)
            if self.aggregator is not None:
                try:
                    await self.aggregator.discard_stale(room_id)
                except Exception as e:
                    logger.error(f"Room '{room_id}' stale recording cleanup failed: {e}", exc_info=True)

    async def shutdown(self) -> None:
        """대기 중인 정리 타이머와 재전송 태스크를 취소합니다."""
        tasks = []
        for room in list(self.room_manager.rooms.values()):
            if room.cleanup_task is not None:
                room.cleanup_task.cancel()
                tasks.append(room.cleanup_task)
                room.cleanup_task = None
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.relay.shutdown()
