"""통화 결과 알림 모듈.

Classes:
    EmailService: 참가자별 요약 메일 (SendGrid)
    CallWebhook: 통화 완료 이벤트 webhook (aiohttp)
"""

from .email_service import EmailService, render_call_summary, is_business_call
from .webhook import CallWebhook
from .config import email_config, webhook_config, EmailConfig, WebhookConfig

__all__ = [
    "EmailService",
    "render_call_summary",
    "is_business_call",
    "CallWebhook",
    "email_config",
    "webhook_config",
    "EmailConfig",
    "WebhookConfig",
]
