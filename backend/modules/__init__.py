"""Backend modules package.

이 패키지는 1:1 화상 통화 시그널링 서버와 통화 녹음 후처리 모듈을 포함합니다.

Modules:
    webrtc: 룸 관리, 시그널링 릴레이, 퇴장/정리 조율
    recording: 참가자별 오디오 업로드 집계 및 처리 트리거
    summary: 오디오 전사, 통화 요약, 후처리 파이프라인
    notification: 요약 메일, 통화 완료 webhook
    shared: 공용 DTO, 룸 단위 락
"""

from .shared import CallOutcome, ContributorTranscript, KeyedLock
from .webrtc import RoomManager, SignalingRelay, CallCoordinator, RoomFullError
from .recording import RecordingAggregator, AudioStorage, TransientUploadError
from .summary import CallProcessor
from .notification import EmailService, CallWebhook

__all__ = [
    # Shared
    "CallOutcome",
    "ContributorTranscript",
    "KeyedLock",
    # WebRTC
    "RoomManager",
    "SignalingRelay",
    "CallCoordinator",
    "RoomFullError",
    # Recording
    "RecordingAggregator",
    "AudioStorage",
    "TransientUploadError",
    # Summary
    "CallProcessor",
    # Notification
    "EmailService",
    "CallWebhook",
]
