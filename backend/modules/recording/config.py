"""Recording 모듈 설정.

녹음 파일 저장 경로, 처리 트리거 인원, 처리 지연 시간 설정.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field

# 환경변수 로드 (상위에서 이미 로드됨)
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)


@dataclass
class RecordingConfig:
    """녹음 세션 설정."""

    # 오디오 파일 저장 디렉토리
    RECORDINGS_DIR: Path = field(
        default_factory=lambda: Path(os.getenv("RECORDINGS_DIR", "recordings"))
    )

    # 처리 트리거 기준 참가자 수 (1:1 통화)
    EXPECTED_CONTRIBUTORS: int = 2

    # 두 번째 참가자 업로드 후 처리 시작까지 대기 (초)
    # 통화 종료 직후 늦게 도착하는 마지막 청크를 기다리기 위함
    PROCESSING_DELAY_SECONDS: float = field(
        default_factory=lambda: float(os.getenv("RECORDING_PROCESSING_DELAY_SECONDS", "3"))
    )

    # 업로드 최대 크기 (bytes)
    MAX_UPLOAD_BYTES: int = field(
        default_factory=lambda: int(os.getenv("RECORDING_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))
    )


# ============================================================
# 싱글톤 인스턴스
# ============================================================

recording_config = RecordingConfig()

logger.info(f"[Recording Config] 저장 경로: {recording_config.RECORDINGS_DIR}")
logger.info(f"[Recording Config] 처리 지연: {recording_config.PROCESSING_DELAY_SECONDS}s")
