"""공용 테스트 픽스처.

외부 서비스(OpenAI, SendGrid, webhook) 없이 룸/녹음 흐름을 검증하기 위한
가짜 WebSocket, 가짜 후처리 파이프라인, 임시 오디오 저장소를 제공합니다.
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.recording import AudioContribution, AudioStorage, RecordingAggregator
from modules.shared import CallOutcome
from modules.webrtc import CallCoordinator, RoomManager, SignalingRelay


class FakeWebSocket:
    """send_json 으로 받은 메시지를 기록하는 WebSocket 대역."""

    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.fail = fail

    async def send_json(self, message: dict):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def of_type(self, message_type: str) -> List[dict]:
        return [m for m in self.sent if m["type"] == message_type]

    def types(self) -> List[str]:
        return [m["type"] for m in self.sent]


class FakeProcessor:
    """CallProcessor 대역. 호출 기록을 남기고 파일 존재 여부를 확인합니다."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0):
        self.calls: List[dict] = []
        self.error = error
        self.delay = delay

    async def process(self, room_id: str, call_date: str, contributions: Sequence[AudioContribution]) -> CallOutcome:
        self.calls.append({
            "room_id": room_id,
            "call_date": call_date,
            "contributions": list(contributions),
            "files_present": all(Path(c.blob_path).exists() for c in contributions),
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        participants = list(dict.fromkeys(c.contributor for c in contributions))
        return CallOutcome(room_id=room_id, call_date=call_date, participants=participants, success=True)


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01):
    """조건이 참이 될 때까지 이벤트 루프를 양보하며 기다립니다."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def storage(tmp_path) -> AudioStorage:
    return AudioStorage(tmp_path / "recordings")


@pytest.fixture
def processor() -> FakeProcessor:
    return FakeProcessor()


@pytest.fixture
def aggregator(storage, processor) -> RecordingAggregator:
    return RecordingAggregator(storage, processor, processing_delay=0)


@pytest.fixture
def room_manager() -> RoomManager:
    return RoomManager()


@pytest.fixture
def relay(room_manager) -> SignalingRelay:
    return SignalingRelay(room_manager, resend_delay=0.05)


@pytest.fixture
def coordinator(room_manager, relay, aggregator) -> CallCoordinator:
    return CallCoordinator(room_manager, relay, aggregator, grace_seconds=0.1)
