"""WebRTC 모듈 설정.

TURN/STUN 서버, 룸 정원 및 정리 타이머 등 시그널링 관련 상수와 환경변수 기반 설정.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

# 환경변수 로드 (상위에서 이미 로드됨)
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)


# ============================================================
# ICE Server 설정
# ============================================================

@dataclass(frozen=True)
class ICEServerConfig:
    """ICE 서버 설정."""

    # TURN 서버
    TURN_SERVER_URL: Optional[str] = os.getenv("TURN_SERVER_URL")
    TURN_USERNAME: Optional[str] = os.getenv("TURN_USERNAME")
    TURN_CREDENTIAL: Optional[str] = os.getenv("TURN_CREDENTIAL")

    # STUN 서버
    STUN_SERVER_URL: Optional[str] = os.getenv("STUN_SERVER_URL")

    # 기본 공개 STUN 서버 (fallback)
    DEFAULT_STUN_SERVERS: tuple = (
        "stun:stun.l.google.com:19302",
        "stun:stun1.l.google.com:19302",
    )

    @property
    def has_turn_server(self) -> bool:
        """TURN 서버 설정 완료 여부."""
        return all([self.TURN_SERVER_URL, self.TURN_USERNAME, self.TURN_CREDENTIAL])

    def ice_servers(self) -> List[dict]:
        """브라우저 RTCPeerConnection 에 그대로 넘길 ICE 서버 목록."""
        servers = []
        if self.STUN_SERVER_URL:
            servers.append({"urls": self.STUN_SERVER_URL})
        servers.extend({"urls": url} for url in self.DEFAULT_STUN_SERVERS)
        if self.has_turn_server:
            servers.append({
                "urls": self.TURN_SERVER_URL,
                "username": self.TURN_USERNAME,
                "credential": self.TURN_CREDENTIAL,
            })
        return servers


# ============================================================
# 룸 설정
# ============================================================

@dataclass
class RoomConfig:
    """룸 정원 및 정리 타이머 설정."""

    # 룸당 최대 참가자 수 (1:1 통화)
    MAX_PARTICIPANTS: int = 2

    # 빈 룸 정리 유예 시간 (초) - 새로고침 후 재접속 허용
    EMPTY_ROOM_GRACE_SECONDS: float = field(
        default_factory=lambda: float(os.getenv("ROOM_EMPTY_GRACE_SECONDS", "10"))
    )

    # call_ended 재전송 지연 (초)
    CALL_ENDED_RESEND_DELAY_SECONDS: float = field(
        default_factory=lambda: float(os.getenv("CALL_ENDED_RESEND_DELAY_SECONDS", "1.5"))
    )


# ============================================================
# 싱글톤 인스턴스
# ============================================================

ice_config = ICEServerConfig()
room_config = RoomConfig()


# ============================================================
# 설정 로드 확인 로그
# ============================================================

logger.info(f"[WebRTC Config] .env 경로: {_env_path} (존재: {_env_path.exists()})")
logger.info(f"[WebRTC Config] TURN 서버 설정 완료: {ice_config.has_turn_server}")
if ice_config.STUN_SERVER_URL:
    logger.info(f"[WebRTC Config] STUN URL: {ice_config.STUN_SERVER_URL}")
else:
    logger.info(f"[WebRTC Config] STUN URL: 기본 Google STUN 사용")
logger.info(f"[WebRTC Config] 룸 정원: {room_config.MAX_PARTICIPANTS}명")
logger.info(f"[WebRTC Config] 빈 룸 유예 시간: {room_config.EMPTY_ROOM_GRACE_SECONDS}s")
