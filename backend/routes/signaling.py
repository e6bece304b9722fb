"""WebRTC 시그널링 WebSocket 라우터.

1:1 화상 통화를 위한 WebSocket 엔드포인트를 제공합니다.
룸 참가/퇴장, offer/answer/ICE candidate 릴레이, 마이크/카메라 토글,
통화 종료 알림을 담당합니다. 서버는 미디어를 다루지 않고 메시지만 전달합니다.
"""

import json
import logging
import uuid
from typing import Optional, TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query

from modules.webrtc import RoomFullError, RELAYED_SIGNAL_TYPES
from .deps import verify_ws_token

if TYPE_CHECKING:
    from modules import CallCoordinator, RoomManager, SignalingRelay

logger = logging.getLogger(__name__)

router = APIRouter()

# 글로벌 매니저 참조 (app.py에서 설정됨)
_room_manager: Optional["RoomManager"] = None
_relay: Optional["SignalingRelay"] = None
_coordinator: Optional["CallCoordinator"] = None


def init_managers(room_manager: "RoomManager", relay: "SignalingRelay", coordinator: "CallCoordinator"):
    """매니저 인스턴스를 초기화합니다.

    app.py에서 호출하여 글로벌 매니저 참조를 설정합니다.

    Args:
        room_manager: RoomManager 인스턴스
        relay: SignalingRelay 인스턴스
        coordinator: CallCoordinator 인스턴스
    """
    global _room_manager, _relay, _coordinator
    _room_manager = room_manager
    _relay = relay
    _coordinator = coordinator
    logger.info("시그널링 라우터 매니저 초기화 완료")


async def _send_error(websocket: WebSocket, message: str):
    await websocket.send_json({"type": "error", "data": {"message": message}})


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """WebRTC 시그널링을 위한 WebSocket 엔드포인트.

    처리하는 메시지 타입:
        - join_room: 룸 참가 (room_id, display_name, contact)
        - offer / answer / ice_candidate: 상대방에게 그대로 전달
        - toggle_mic / toggle_camera: 마이크/카메라 상태 전달
        - end_call: 통화 종료 (룸 전체에 call_ended)
        - leave_room: 현재 룸에서 퇴장
        - get_rooms: 활성 룸 목록 요청

    Args:
        websocket: FastAPI WebSocket 연결 객체
        token: 인증 토큰 (쿼리 파라미터)
    """
    if _room_manager is None or _coordinator is None or _relay is None:
        logger.error("매니저가 초기화되지 않음")
        await websocket.close(code=1011, reason="Server not ready")
        return

    # 연결 수락 전 토큰 검증
    if not verify_ws_token(token):
        await websocket.close(code=4001, reason="Unauthorized")
        return

    await websocket.accept()

    connection_id = str(uuid.uuid4())
    logger.info(f"연결 {connection_id} 수락됨")

    # 클라이언트에 connection ID 전송
    await websocket.send_json({
        "type": "connection_id",
        "data": {"connection_id": connection_id}
    })

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON")
                continue
            if not isinstance(message, dict):
                await _send_error(websocket, "Invalid message")
                continue

            message_type = message.get("type")
            data = message.get("data") or {}

            # offer/answer/ice_candidate payload 는 그대로 전달, 나머지는 객체여야 함
            if message_type not in RELAYED_SIGNAL_TYPES and not isinstance(data, dict):
                await _send_error(websocket, "Invalid message data")
                continue

            if message_type == "join_room":
                await _handle_join_room(websocket, connection_id, data)

            elif message_type in RELAYED_SIGNAL_TYPES:
                await _handle_signal(websocket, connection_id, message_type, data)

            elif message_type in ("toggle_mic", "toggle_camera"):
                await _handle_toggle(websocket, connection_id, message_type, data)

            elif message_type == "end_call":
                await _handle_end_call(websocket, connection_id, data)

            elif message_type == "leave_room":
                result = await _coordinator.leave(connection_id)
                if result is not None:
                    logger.info(f"{result.participant.display_name} ({connection_id[:8]})가 "
                                f"방 '{result.room_id}'에서 퇴장함")

            elif message_type == "get_rooms":
                await websocket.send_json({
                    "type": "rooms_list",
                    "data": {"rooms": _room_manager.get_room_list()}
                })

            else:
                logger.warning(f"알 수 없는 메시지 타입: {message_type}")
                await _send_error(websocket, f"Unknown message type: {message_type}")

    except WebSocketDisconnect:
        logger.info(f"연결 {connection_id} 끊김")
    except Exception as e:
        logger.error(f"연결 {connection_id}의 WebSocket 처리 중 오류: {e}", exc_info=True)
    finally:
        await _coordinator.leave(connection_id)
        logger.info(f"연결 {connection_id} 정리 완료")


async def _handle_join_room(websocket: WebSocket, connection_id: str, data: dict):
    """방 입장 처리."""
    room_id = str(data.get("room_id") or "").strip()
    display_name = str(data.get("display_name") or "").strip() or "Anonymous"
    contact = str(data.get("contact") or "").strip()

    logger.debug(f"[join_room] room={room_id}, display_name={display_name}")

    if not room_id:
        await _send_error(websocket, "Room ID is required")
        return

    current_room = _room_manager.get_connection_room(connection_id)
    if current_room is not None:
        await _send_error(websocket, f"Already in room '{current_room}'")
        return

    try:
        await _coordinator.join(room_id, connection_id, display_name, contact, websocket)
    except RoomFullError as e:
        logger.info(f"{display_name} ({connection_id[:8]}) 입장 거부: {e}")
        await websocket.send_json({
            "type": "room_full",
            "data": {"room_id": room_id, "max_participants": e.max_participants}
        })
        return

    logger.info(f"{display_name} ({connection_id[:8]})가 방 '{room_id}'에 입장함 "
                f"({_room_manager.get_room_count(room_id)}/{_room_manager.max_participants})")


async def _handle_signal(websocket: WebSocket, connection_id: str, message_type: str, payload):
    """offer/answer/ice_candidate 를 같은 방의 상대방에게 전달."""
    room_id = _room_manager.get_connection_room(connection_id)
    sender = _room_manager.get_participant(connection_id)
    if room_id is None or sender is None:
        await _send_error(websocket, f"Join a room before sending {message_type}")
        return

    await _relay.relay_signal(room_id, sender, message_type, payload)


async def _handle_toggle(websocket: WebSocket, connection_id: str, message_type: str, data: dict):
    """마이크/카메라 토글 전달."""
    room_id = _room_manager.get_connection_room(connection_id)
    sender = _room_manager.get_participant(connection_id)
    if room_id is None or sender is None:
        await _send_error(websocket, "Not in a room")
        return

    kind = "mic" if message_type == "toggle_mic" else "camera"
    enabled = data.get(f"{kind}_enabled", True)
    if not isinstance(enabled, bool):
        await _send_error(websocket, f"{kind}_enabled must be a boolean")
        return
    await _relay.relay_toggle(room_id, sender, kind, enabled)


async def _handle_end_call(websocket: WebSocket, connection_id: str, data: dict):
    """통화 종료 처리."""
    room_id = _room_manager.get_connection_room(connection_id)
    if room_id is None:
        await _send_error(websocket, "Not in a room")
        return

    requested = data.get("room_id")
    if requested and str(requested) != room_id:
        await _send_error(websocket, f"Not in room '{requested}'")
        return

    await _coordinator.end_call(connection_id)
