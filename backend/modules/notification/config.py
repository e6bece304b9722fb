"""Notification 모듈 설정.

요약 메일(SendGrid) 및 통화 완료 webhook 설정값.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

# 환경변수 로드 (상위에서 이미 로드됨)
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_env_path = Path(__file__).parent.parent.parent / "config" / ".env"
load_dotenv(_env_path)


@dataclass
class EmailConfig:
    """요약 메일 발송 설정."""

    # SendGrid API 키 (없으면 메일 발송 비활성화)
    SENDGRID_API_KEY: Optional[str] = field(
        default_factory=lambda: os.getenv("SENDGRID_API_KEY") or None
    )

    # 발신 주소
    FROM_ADDRESS: str = field(
        default_factory=lambda: os.getenv("EMAIL_FROM_ADDRESS", "no-reply@example.com")
    )

    # 발신자 표시 이름
    FROM_NAME: str = field(
        default_factory=lambda: os.getenv("EMAIL_FROM_NAME", "Video Calling App")
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.SENDGRID_API_KEY)


@dataclass
class WebhookConfig:
    """통화 완료 이벤트 webhook 설정."""

    # 대상 URL (없으면 비활성화)
    URL: Optional[str] = field(
        default_factory=lambda: os.getenv("CALL_WEBHOOK_URL") or None
    )

    # 요청 타임아웃 (초)
    TIMEOUT_SECONDS: float = field(
        default_factory=lambda: float(os.getenv("CALL_WEBHOOK_TIMEOUT_SECONDS", "10"))
    )

    @property
    def enabled(self) -> bool:
        return bool(self.URL)


# ============================================================
# 싱글톤 인스턴스
# ============================================================

email_config = EmailConfig()
webhook_config = WebhookConfig()

if not email_config.is_configured:
    logger.warning("[Notification Config] SENDGRID_API_KEY 미설정 - 요약 메일이 발송되지 않습니다")
logger.info(f"[Notification Config] Webhook: {'enabled' if webhook_config.enabled else 'disabled'}")
