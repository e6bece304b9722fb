"""통화 녹음 업로드 API 라우터.

참가자 브라우저가 보내는 오디오 청크를 받아 RecordingAggregator 에 넘깁니다.
페이지 종료 시 sendBeacon 으로 보내는 요청도 받아야 하므로 응답 본문에
의존하지 않고, 룸이 이미 사라진 뒤 도착한 업로드도 받아들입니다.
"""

import logging
from typing import Optional, TYPE_CHECKING

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from modules.recording import TransientUploadError, recording_config

if TYPE_CHECKING:
    from modules import CallCoordinator, RecordingAggregator, RoomManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recording"])

# 글로벌 매니저 참조 (app.py에서 설정됨)
_aggregator: Optional["RecordingAggregator"] = None
_coordinator: Optional["CallCoordinator"] = None
_room_manager: Optional["RoomManager"] = None


def init_recording(aggregator: "RecordingAggregator", coordinator: "CallCoordinator", room_manager: "RoomManager"):
    """업로드 라우터가 사용할 매니저를 설정합니다."""
    global _aggregator, _coordinator, _room_manager
    _aggregator = aggregator
    _coordinator = coordinator
    _room_manager = room_manager
    logger.info("녹음 라우터 매니저 초기화 완료")


def _first(*values: Optional[str]) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


@router.post("/upload-audio")
async def upload_audio(
    audio: Optional[UploadFile] = File(None),
    room_id: Optional[str] = Form(None),
    display_name: Optional[str] = Form(None),
    contact: Optional[str] = Form(None),
    roomId: Optional[str] = Form(None),
    userName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
):
    """참가자 오디오 청크를 업로드합니다.

    Args:
        audio: 오디오 파일 (webm 등)
        room_id: 룸 ID (구버전 필드명 roomId 도 허용)
        display_name: 표시 이름 (구버전 필드명 userName 도 허용)
        contact: 요약 메일 주소 (구버전 필드명 email 도 허용, 생략 가능)

    Returns:
        dict: {"status": "ok", "room_id", "contributors", "expected"}
    """
    if _aggregator is None or _coordinator is None or _room_manager is None:
        raise HTTPException(status_code=503, detail="Server not ready")

    room = _first(room_id, roomId)
    name = _first(display_name, userName)
    address = _first(contact, email)

    if not room or not name:
        raise HTTPException(status_code=400, detail="room_id and display_name are required")
    if audio is None:
        raise HTTPException(status_code=400, detail="audio file is required")

    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="audio file is empty")
    if len(data) > recording_config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="audio file too large")

    if not address:
        participant = _room_manager.find_participant_by_name(room, name)
        if participant is not None:
            address = participant.contact

    try:
        receipt = await _aggregator.add_audio(room, name, address, data, audio.filename)
    except TransientUploadError as e:
        raise HTTPException(status_code=503, detail=str(e))

    await _coordinator.on_recording_upload(room)

    return {
        "status": "ok",
        "room_id": receipt.room_id,
        "contributors": receipt.contributors,
        "expected": receipt.expected,
    }
