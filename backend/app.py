"""FastAPI WebRTC Signaling Server for 1:1 Video Calls.

이 모듈은 두 사람이 참여하는 화상 통화를 위한 시그널링 서버와
통화 녹음 후처리(전사, 요약, 메일) 서버를 제공합니다.

주요 기능:
    - 룸 기반 참가자 관리 (룸당 최대 2명)
    - WebRTC offer/answer/ICE candidate 릴레이
    - 실시간 참가자 입/퇴장, 마이크/카메라 상태 알림
    - 참가자별 오디오 업로드 집계 및 통화당 1회 후처리
    - 빈 룸 유예 시간 후 정리 (미완료 녹음 폐기)

Architecture:
    - P2P 미디어: 서버는 시그널링 메시지만 중계
    - RoomManager: 룸 및 참가자 상태 관리
    - SignalingRelay: 룸 내 메시지 전달
    - CallCoordinator: 입장/퇴장/정리를 룸 단위 락으로 직렬화
    - RecordingAggregator: 녹음 세션 집계 및 처리 트리거
    - CallProcessor: 전사 → 요약 → 메일 → webhook
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from modules import (
    RoomManager, SignalingRelay, CallCoordinator,
    RecordingAggregator, AudioStorage, CallProcessor,
)
from modules.webrtc import ice_config, room_config
from modules.recording import recording_config
from routes import (
    health_router, init_health,
    recording_router, init_recording,
    signaling_router, init_signaling_managers,
    verify_auth_header,
)
from dotenv import load_dotenv
from pathlib import Path

# Load 환경변수 from config/.env
load_dotenv(Path(__file__).parent / "config" / ".env")


# 로그 설정
os.makedirs("logs", exist_ok=True)
log_filename = f"logs/server_{__import__('datetime').datetime.now().strftime('%Y%m%d')}.log"

# 환경별 로그 레벨 설정 (환경변수로 제어)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENV = os.getenv("ENV", "development")

# 로그 보관 기간 (일) - 기본 60일 (2개월)
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "60"))


def cleanup_old_logs(log_dir: str = "logs", retention_days: int = LOG_RETENTION_DAYS) -> int:
    """오래된 로그 파일을 삭제합니다.

    Args:
        log_dir: 로그 디렉토리 경로
        retention_days: 보관 기간 (일)

    Returns:
        삭제된 파일 수
    """
    import glob
    from datetime import datetime, timedelta

    if not os.path.exists(log_dir):
        return 0

    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in glob.glob(os.path.join(log_dir, "server_*.log")):
        try:
            date_str = os.path.basename(log_file)[len("server_"):-len(".log")]
            if datetime.strptime(date_str, "%Y%m%d") < cutoff_date:
                os.remove(log_file)
                deleted_count += 1
        except (ValueError, OSError):
            continue

    return deleted_count


logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(),  # 콘솔 출력
        logging.FileHandler(log_filename, encoding="utf-8"),  # 파일 저장
    ]
)
logger = logging.getLogger(__name__)
logger.info(f"로깅 초기화 완료: level={LOG_LEVEL}, env={ENV}")


def create_app(
    processor: Optional[CallProcessor] = None,
    storage: Optional[AudioStorage] = None,
    grace_seconds: float = room_config.EMPTY_ROOM_GRACE_SECONDS,
    resend_delay: float = room_config.CALL_ENDED_RESEND_DELAY_SECONDS,
    processing_delay: float = recording_config.PROCESSING_DELAY_SECONDS,
) -> FastAPI:
    """매니저 인스턴스를 만들고 라우터에 연결한 FastAPI 앱을 생성합니다.

    Args:
        processor: 통화 후처리 파이프라인 (기본: OpenAI + SendGrid + webhook)
        storage: 오디오 저장소 (기본: RECORDINGS_DIR)
        grace_seconds: 빈 룸 정리 유예 시간
        resend_delay: call_ended 재전송 지연
        processing_delay: 처리 트리거 후 대기 시간

    Returns:
        FastAPI: 애플리케이션. 매니저들은 app.state 에 보관됩니다.
    """
    room_manager = RoomManager()
    relay = SignalingRelay(room_manager, resend_delay=resend_delay)
    storage = storage or AudioStorage()
    aggregator = RecordingAggregator(
        storage,
        processor or CallProcessor(),
        processing_delay=processing_delay,
    )
    coordinator = CallCoordinator(room_manager, relay, aggregator, grace_seconds=grace_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI 앱의 생명주기를 관리하는 컨텍스트 매니저.

        Note:
            - 시작: 녹음 디렉토리 생성, 오래된 로그 정리
            - 종료: 정리 타이머/재전송 취소, 진행 중 처리 완료 대기 (취소하지 않음),
              남은 Collecting 세션 오디오 삭제
        """
        logger.info("WebRTC 시그널링 서버 시작 중...")

        storage.ensure_dir()
        logger.info(f"녹음 저장 경로: {storage.base_dir}")

        # 오래된 로그 파일 정리 (2개월 이상)
        deleted_logs = cleanup_old_logs()
        if deleted_logs > 0:
            logger.info(f"오래된 로그 파일 {deleted_logs}개 정리 완료 ({LOG_RETENTION_DAYS}일 이상)")

        yield

        logger.info("서버 종료 중...")
        await coordinator.shutdown()
        await aggregator.shutdown()
        logger.info("서버 종료 완료")

    app = FastAPI(title="WebRTC Video Call Signaling Server", lifespan=lifespan)
    app.state.room_manager = room_manager
    app.state.relay = relay
    app.state.coordinator = coordinator
    app.state.aggregator = aggregator

    # CORS - 개발 환경에서는 모든 로컬 네트워크 허용
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://(localhost|127\.0\.0\.1|192\.168\.\d{1,3}\.\d{1,3}|172\.\d{1,3}\.\d{1,3}\.\d{1,3}):\d+$|^https://.*\.ngrok(-free)?\.(app|dev|io)$|^https://.*\.trycloudflare\.com$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(recording_router)
    app.include_router(signaling_router)

    # 라우터에 매니저 인스턴스 전달
    init_signaling_managers(room_manager, relay, coordinator)
    init_recording(aggregator, coordinator, room_manager)
    init_health(room_manager, aggregator)

    @app.get("/")
    async def root():
        """서버 상태 확인 엔드포인트.

        Returns:
            dict: {"status": "ok", "service": 서비스 이름}
        """
        return {"status": "ok", "service": "WebRTC Video Call Signaling Server"}

    @app.get("/api/rooms")
    async def get_rooms_api(_: bool = Depends(verify_auth_header)):
        """활성화된 모든 룸의 목록을 조회합니다.

        각 룸에는 진행 중인 녹음 세션 상태(recording)가 함께 포함됩니다.

        Returns:
            dict: {"rooms": [{room_id, participant_count, participants, awaiting_cleanup, recording}]}
        """
        rooms = room_manager.get_room_list()
        for room in rooms:
            session = aggregator.get_session(room["room_id"])
            room["recording"] = None if session is None else {
                "state": session.state.value,
                "contributors": session.contributor_count,
                "expected": aggregator.expected_contributors,
            }
        return {"rooms": rooms}

    @app.get("/api/turn-credentials")
    async def get_turn_credentials(_: bool = Depends(verify_auth_header)):
        """브라우저 RTCPeerConnection 용 ICE 서버 목록을 제공합니다.

        Environment Variables:
            TURN_SERVER_URL, TURN_USERNAME, TURN_CREDENTIAL: TURN 서버 (세 값 모두 있어야 포함)
            STUN_SERVER_URL: 커스텀 STUN 서버 (선택)

        Returns:
            list: ICE servers 배열 (커스텀 STUN + Google STUN fallback + TURN)
        """
        if ice_config.has_turn_server:
            logger.info("ICE 서버 제공: STUN + TURN")
        else:
            logger.info("ICE 서버 제공: STUN만 (TURN 미설정)")
        return ice_config.ice_servers()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")), log_level="info")
