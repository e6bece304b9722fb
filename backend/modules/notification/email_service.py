"""통화 요약 메일 발송 서비스.

참가자 한 명에게 통화 요약을 HTML 메일로 보냅니다 (SendGrid).
요약 내용이 업무 통화로 보이면 격식 있는 인사와 파란색 헤더를,
아니면 가벼운 인사와 초록색 헤더를 사용합니다.

send_call_summary 는 예외를 올리지 않고 성공 여부만 반환합니다.
"""

import asyncio
import html
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from .config import email_config, EmailConfig

logger = logging.getLogger(__name__)

BUSINESS_KEYWORDS = (
    "decision",
    "meeting",
    "action item",
    "professional",
    "business",
    "project",
    "client",
)

BUSINESS_COLOR = "#2563eb"
CASUAL_COLOR = "#22c55e"


def is_business_call(summary: str) -> bool:
    lowered = summary.lower()
    return any(keyword in lowered for keyword in BUSINESS_KEYWORDS)


def format_call_date(call_date: str) -> str:
    """ISO 날짜 문자열을 메일 표시용 날짜로 변환합니다. 파싱 실패 시 원문 그대로."""
    try:
        return datetime.fromisoformat(call_date.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except (ValueError, AttributeError):
        return call_date


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def render_call_summary(user: str, summary: str, call_date: str) -> RenderedEmail:
    """요약 메일 제목과 HTML 본문을 만듭니다."""
    business = is_business_call(summary)
    color = BUSINESS_COLOR if business else CASUAL_COLOR
    date_text = format_call_date(call_date)
    name = html.escape(user)

    if business:
        greeting = f"Dear {name}"
        intro = "Here's a summary of your recent call:"
        title = "Call Summary"
        subject = f"Call Summary - {date_text}"
    else:
        greeting = f"Hi {name}"
        intro = "Here's what you and your contact talked about:"
        title = "Call Recap"
        subject = f"Your call recap - {date_text}"

    body = f"""<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: {color}; color: white; padding: 15px; text-align: center; border-radius: 8px; margin-bottom: 20px; }}
    .summary {{ background: #f9f9f9; padding: 20px; border-radius: 8px; border-left: 4px solid {color}; line-height: 1.7; }}
    .footer {{ margin-top: 20px; color: #666; font-size: 14px; text-align: center; }}
  </style>
</head>
<body>
  <div class="header"><h3>{title}</h3></div>
  <p>{greeting},</p>
  <p>{intro}</p>
  <div class="summary">{html.escape(summary)}</div>
  <div class="footer">
    <p>{html.escape(date_text)}</p>
    <p><em>Auto-generated summary</em></p>
  </div>
</body>
</html>
"""
    return RenderedEmail(subject=subject, html=body)


class EmailService:
    """SendGrid 기반 요약 메일 발송기.

    Attributes:
        config (EmailConfig): 메일 설정
        client (SendGridAPIClient | None): SendGrid 클라이언트 (첫 발송 시 생성)
    """

    def __init__(self, config: EmailConfig = email_config, client: Optional[SendGridAPIClient] = None):
        self.config = config
        self.client = client

    def _get_client(self) -> SendGridAPIClient:
        if self.client is None:
            self.client = SendGridAPIClient(self.config.SENDGRID_API_KEY)
        return self.client

    async def send_call_summary(self, user: str, email: str, summary: str, room_id: str, call_date: str) -> bool:
        """참가자에게 요약 메일을 보냅니다.

        Args:
            user (str): 참가자 표시 이름
            email (str): 수신 주소
            summary (str): 통화 요약
            room_id (str): 룸 ID
            call_date (str): 통화 날짜 (ISO 8601)

        Returns:
            bool: 발송 성공 여부
        """
        if not email:
            logger.warning(f"[메일] {user}: 수신 주소 없음, 발송 생략")
            return False
        if self.client is None and not self.config.is_configured:
            logger.warning(f"[메일] SendGrid 미설정, {user} 메일 발송 생략")
            return False

        rendered = render_call_summary(user, summary, call_date)
        message = Mail(
            from_email=(self.config.FROM_ADDRESS, self.config.FROM_NAME),
            to_emails=email,
            subject=rendered.subject,
            html_content=rendered.html,
        )

        try:
            response = await asyncio.to_thread(self._get_client().send, message)
        except Exception as e:
            logger.error(f"[메일] {user} ({email}) 발송 실패 (room={room_id}): {e}")
            return False

        status = getattr(response, "status_code", None)
        if status is None or not 200 <= int(status) < 300:
            logger.error(f"[메일] {user} ({email}) 발송 실패: status={status}")
            return False

        logger.info(f"[메일] 요약 발송 완료: {user} ({email}), room={room_id}")
        return True
