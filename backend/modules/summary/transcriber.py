"""오디오 전사 서비스.

OpenAI speech-to-text(Whisper) API 로 참가자 오디오 파일을 텍스트로 변환합니다.
파일 하나의 전사가 실패해도 예외를 올리지 않고 placeholder 텍스트를 반환하여
나머지 참가자 처리가 계속되도록 합니다.

Example:
    >>> transcriber = Transcriber()
    >>> text = await transcriber.transcribe("Alice", Path("recordings/42_Alice_x.webm"))
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from openai import AsyncOpenAI

from .config import transcription_config, TranscriptionConfig

logger = logging.getLogger(__name__)


def failed_transcript(contributor: str) -> str:
    """전사 실패 시 사용하는 placeholder 텍스트."""
    return f"[Transcription failed for {contributor}]"


class Transcriber:
    """OpenAI 오디오 전사 래퍼.

    Attributes:
        config (TranscriptionConfig): 전사 설정
        client (AsyncOpenAI | None): API 클라이언트 (첫 호출 시 생성)
    """

    def __init__(self, config: TranscriptionConfig = transcription_config, client: Optional[AsyncOpenAI] = None):
        self.config = config
        self.client = client

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            self.client = AsyncOpenAI(api_key=self.config.OPENAI_API_KEY)
        return self.client

    async def transcribe(self, contributor: str, path: Path) -> str:
        """오디오 파일 하나를 전사합니다. 실패 시 placeholder 를 반환합니다."""
        if self.client is None and not self.config.is_configured:
            logger.warning(f"[전사] API 키 없음, {contributor} 전사 생략")
            return failed_transcript(contributor)

        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
            if not data:
                logger.warning(f"[전사] 빈 오디오 파일: {path}")
                return failed_transcript(contributor)

            kwargs = {"model": self.config.MODEL, "file": (Path(path).name, data)}
            if self.config.LANGUAGE:
                kwargs["language"] = self.config.LANGUAGE

            start_time = time.time()
            result = await self._get_client().audio.transcriptions.create(**kwargs)
            text = (getattr(result, "text", "") or "").strip()
            logger.info(f"[전사] {contributor} 완료: {len(text)}자, {time.time() - start_time:.2f}s")
            return text
        except Exception as e:
            logger.error(f"[전사] {contributor} 실패 ({path}): {e}", exc_info=True)
            return failed_transcript(contributor)
