"""녹음 집계 모듈.

참가자별 오디오 청크를 룸 단위로 모으고, 두 참가자의 오디오가 모이면
통화 후처리를 한 번만 시작합니다.

Classes:
    RecordingAggregator: 룸별 세션 집계 및 처리 트리거
    RecordingSession: 세션 상태
    AudioStorage: 오디오 파일 저장/삭제

Config:
    recording_config: 저장 경로, 처리 지연 설정
"""

from .aggregator import RecordingAggregator
from .session import AudioContribution, RecordingSession, SessionState, UploadReceipt
from .storage import AudioStorage, TransientUploadError
from .config import recording_config, RecordingConfig

__all__ = [
    "RecordingAggregator",
    "AudioContribution",
    "RecordingSession",
    "SessionState",
    "UploadReceipt",
    "AudioStorage",
    "TransientUploadError",
    "recording_config",
    "RecordingConfig",
]
