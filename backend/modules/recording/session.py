"""녹음 세션 데이터 모델.

상태 전이:
    (없음) → COLLECTING → PROCESSING → DONE (세션 삭제)
                      └→ STALE (룸이 비었고 참가자 수 미달, 처리 없이 삭제)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class SessionState(str, Enum):
    COLLECTING = "collecting"
    PROCESSING = "processing"
    DONE = "done"
    STALE = "stale"


@dataclass(frozen=True)
class AudioContribution:
    """업로드된 오디오 청크 1개. 추가된 뒤에는 변경되지 않습니다."""
    contributor: str
    contact: str
    blob_path: Path
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RecordingSession:
    """룸 하나의 녹음 집계 상태.

    Attributes:
        room_id (str): 룸 ID
        contributions (List[AudioContribution]): 도착 순서대로 쌓인 청크
        contributors (Dict[str, str]): 표시 이름 → 연락처 (처음 본 순서)
        state (SessionState): 현재 상태
        triggered (bool): 처리가 이미 시작되었는지 여부 (한 번만 True 로 바뀜)
        snapshot_size (int | None): 처리에 사용된 청크 수 (처리 시작 후 설정)
    """
    room_id: str
    contributions: List[AudioContribution] = field(default_factory=list)
    contributors: Dict[str, str] = field(default_factory=dict)
    state: SessionState = SessionState.COLLECTING
    triggered: bool = False
    snapshot_size: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def contributor_count(self) -> int:
        return len(self.contributors)

    def add(self, contribution: AudioContribution) -> bool:
        """청크를 추가합니다. 처음 보는 참가자면 True.

        참가자 구분은 표시 이름 기준입니다. 같은 사람이 재접속해서 보낸 청크가
        참가자 수를 늘리지 않도록 연결 ID 가 아닌 이름을 씁니다.
        """
        self.contributions.append(contribution)
        if contribution.contributor in self.contributors:
            if contribution.contact and not self.contributors[contribution.contributor]:
                self.contributors[contribution.contributor] = contribution.contact
            return False
        self.contributors[contribution.contributor] = contribution.contact
        return True

    def try_trigger(self, expected: int) -> bool:
        """참가자 수가 기준에 도달했고 아직 처리 전이면 PROCESSING 으로 전이합니다.

        같은 룸 락 안에서만 호출되어야 하며, 세션당 최대 한 번 True 를 반환합니다.
        """
        if self.triggered or self.state != SessionState.COLLECTING:
            return False
        if self.contributor_count < expected:
            return False
        self.triggered = True
        self.state = SessionState.PROCESSING
        return True

    def take_snapshot(self) -> List[AudioContribution]:
        """처리에 사용할 청크 목록을 고정합니다."""
        self.snapshot_size = len(self.contributions)
        return list(self.contributions)

    def blob_paths(self) -> List[Path]:
        return [c.blob_path for c in self.contributions]


@dataclass(frozen=True)
class UploadReceipt:
    """업로드 처리 결과 (HTTP 응답용)."""
    room_id: str
    contributor: str
    contributors: int
    expected: int
    state: SessionState
    triggered: bool
