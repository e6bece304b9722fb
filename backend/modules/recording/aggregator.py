"""녹음 세션 집계 모듈.

룸별로 업로드된 오디오 청크를 모으고, 서로 다른 참가자 2명의 오디오가 모이면
통화 후처리(전사 → 요약 → 메일 → webhook)를 정확히 한 번 시작합니다.

주요 기능:
    - 첫 업로드 시 세션 생성 (COLLECTING)
    - 청크 추가 및 참가자(표시 이름) 수 집계
    - 기준 도달 시 PROCESSING 전이 (룸 락 안에서 triggered 플래그로 중복 방지)
    - 처리 성공/실패와 관계없이 세션 삭제 및 오디오 파일 삭제
    - 룸이 비었을 때 기준 미달 세션 폐기 (STALE)

Architecture:
    - sessions: Dict[str, RecordingSession] - 룸 ID → 진행 중 세션
    - 모든 세션 변경은 KeyedLock(room_id) 안에서만 일어남
    - 처리 태스크는 processing_delay 만큼 기다린 뒤 청크 목록을 고정(snapshot)
      → 통화 종료 직후 늦게 도착한 마지막 청크도 포함됨
    - 처리 중 세션은 stale 정리 대상이 아니며 취소되지 않음

Examples:
    >>> aggregator = RecordingAggregator(AudioStorage(), CallProcessor())
    >>> receipt = await aggregator.add_audio("42", "Alice", "alice@x.com", data, "a.webm")
    >>> receipt.contributors, receipt.expected
    (1, 2)
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from ..shared import KeyedLock
from .config import recording_config
from .session import AudioContribution, RecordingSession, SessionState, UploadReceipt
from .storage import AudioStorage

if TYPE_CHECKING:
    from ..summary import CallProcessor

logger = logging.getLogger(__name__)


class RecordingAggregator:
    """룸별 녹음 세션 집계기.

    Attributes:
        storage (AudioStorage): 오디오 파일 저장소
        processor (CallProcessor): 통화 후처리 파이프라인 (process(room_id, call_date, contributions))
        expected_contributors (int): 처리 트리거 기준 참가자 수
        processing_delay (float): 트리거 후 처리 시작까지 대기 시간 (초)
        sessions (Dict[str, RecordingSession]): 진행 중인 세션
    """

    def __init__(
        self,
        storage: AudioStorage,
        processor: "CallProcessor",
        expected_contributors: int = recording_config.EXPECTED_CONTRIBUTORS,
        processing_delay: float = recording_config.PROCESSING_DELAY_SECONDS,
    ):
        self.storage = storage
        self.processor = processor
        self.expected_contributors = expected_contributors
        self.processing_delay = processing_delay
        self.sessions: Dict[str, RecordingSession] = {}
        self._locks = KeyedLock()
        self._processing_tasks: Set[asyncio.Task] = set()

    async def add_audio(
        self,
        room_id: str,
        contributor: str,
        contact: str,
        data: bytes,
        filename: Optional[str] = None,
    ) -> UploadReceipt:
        """오디오 청크를 저장하고 세션에 추가합니다.

        파일 저장이 먼저 일어나므로, 저장 실패 시 세션과 참가자 수는 변하지 않습니다.

        Raises:
            TransientUploadError: 파일 저장 실패
        """
        path = await self.storage.save(room_id, contributor, data, filename)

        async with self._locks.hold(room_id):
            session = self.sessions.get(room_id)
            if session is None:
                session = RecordingSession(room_id=room_id)
                self.sessions[room_id] = session
                logger.info(f"Recording started for room '{room_id}'")

            session.add(AudioContribution(contributor=contributor, contact=contact, blob_path=path))
            if session.snapshot_size is not None:
                logger.warning(f"Room '{room_id}': {contributor} 청크가 처리 시작 후 도착 (전사 제외, 정리 대상)")
            logger.info(f"Audio of {contributor} recorded for room '{room_id}' "
                        f"({session.contributor_count}/{self.expected_contributors})")

            triggered = session.try_trigger(self.expected_contributors)
            if triggered:
                logger.info(f"Room '{room_id}': 모든 참가자 오디오 수신, {self.processing_delay}s 후 처리 시작")
                self._start_processing(session)

            return UploadReceipt(
                room_id=room_id,
                contributor=contributor,
                contributors=session.contributor_count,
                expected=self.expected_contributors,
                state=session.state,
                triggered=triggered,
            )

    def _start_processing(self, session: RecordingSession) -> None:
        task = asyncio.create_task(self._process(session))
        self._processing_tasks.add(task)
        task.add_done_callback(self._processing_tasks.discard)

    async def _process(self, session: RecordingSession) -> None:
        room_id = session.room_id
        try:
            if self.processing_delay > 0:
                await asyncio.sleep(self.processing_delay)
            async with self._locks.hold(room_id):
                contributions = session.take_snapshot()
            call_date = datetime.now(timezone.utc).isoformat()
            outcome = await self.processor.process(room_id, call_date, contributions)
            logger.info(f"Room '{room_id}' 처리 완료: success={outcome.success}, email_sent={outcome.email_sent}")
        except Exception as e:
            logger.error(f"Room '{room_id}' 통화 처리 실패: {e}", exc_info=True)
        finally:
            async with self._locks.hold(room_id):
                paths = self._detach(session, SessionState.DONE)
            await self._delete_blobs(session, paths)

    async def discard_stale(self, room_id: str) -> bool:
        """COLLECTING 상태 세션을 처리 없이 폐기합니다.

        상태 확인과 세션 분리는 같은 락 구간에서 일어나므로, 대기 중이던 업로드가
        그 사이에 처리를 트리거할 수 없습니다. PROCESSING 중인 세션은 건드리지 않습니다.

        Returns:
            bool: 폐기했으면 True
        """
        async with self._locks.hold(room_id):
            session = self.sessions.get(room_id)
            if session is None or session.state != SessionState.COLLECTING:
                return False
            logger.info(f"Clearing stale recordings for room '{room_id}' "
                        f"({session.contributor_count}/{self.expected_contributors} contributors)")
            paths = self._detach(session, SessionState.STALE)
        await self._delete_blobs(session, paths)
        return True

    def _detach(self, session: RecordingSession, final_state: SessionState) -> List[Path]:
        # 룸 락을 잡은 상태에서만 호출
        if self.sessions.get(session.room_id) is session:
            del self.sessions[session.room_id]
        session.state = final_state
        return session.blob_paths()

    async def _delete_blobs(self, session: RecordingSession, paths: List[Path]) -> None:
        deleted = await self.storage.delete_many(paths)
        logger.info(f"Room '{session.room_id}' recording session {session.state.value}: "
                    f"{deleted}/{len(paths)} files deleted")

    def get_session(self, room_id: str) -> Optional[RecordingSession]:
        return self.sessions.get(room_id)

    @property
    def pending_processing(self) -> int:
        return len(self._processing_tasks)

    async def wait_idle(self) -> None:
        """진행 중인 처리 태스크가 모두 끝날 때까지 기다립니다 (취소하지 않음)."""
        while self._processing_tasks:
            await asyncio.gather(*list(self._processing_tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """서버 종료 시 처리 완료를 기다리고 남은 COLLECTING 세션을 폐기합니다."""
        await self.wait_idle()
        for room_id in list(self.sessions):
            await self.discard_stale(room_id)
