"""통화 완료 이벤트 webhook.

처리 완료된 통화 결과(CallOutcome)를 설정된 URL 로 POST 합니다.
URL 이 설정되지 않으면 아무 것도 하지 않습니다. 실패는 로그만 남깁니다.
"""

import logging
from typing import Optional

import aiohttp

from ..shared import CallOutcome
from .config import webhook_config, WebhookConfig

logger = logging.getLogger(__name__)


class CallWebhook:
    """aiohttp 기반 webhook 발송기."""

    def __init__(self, config: WebhookConfig = webhook_config, url: Optional[str] = None):
        self.config = config
        self.url = url if url is not None else config.URL

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, outcome: CallOutcome) -> bool:
        """통화 결과를 전송합니다.

        Returns:
            bool: 2xx 응답을 받았으면 True. 비활성화 상태이거나 실패하면 False
        """
        if not self.enabled:
            logger.debug(f"[Webhook] 비활성화됨, room={outcome.room_id} 전송 생략")
            return False

        timeout = aiohttp.ClientTimeout(total=self.config.TIMEOUT_SECONDS)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.url, json=outcome.model_dump()) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(f"[Webhook] room={outcome.room_id} 전송 실패: "
                                     f"status={response.status}, body={body[:200]}")
                        return False
        except Exception as e:
            logger.error(f"[Webhook] room={outcome.room_id} 전송 실패: {e}")
            return False

        logger.info(f"[Webhook] room={outcome.room_id} 전송 완료")
        return True
