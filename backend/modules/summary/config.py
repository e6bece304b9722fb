"""Summary 모듈 설정.

통화 오디오 전사(OpenAI speech-to-text) 및 요약 LLM 설정값.
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


# ============================================================
# 전사 설정
# ============================================================

@dataclass
class TranscriptionConfig:
    """오디오 전사 설정."""

    # OpenAI API 키
    OPENAI_API_KEY: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY")
    )

    # 전사 모델
    MODEL: str = field(
        default_factory=lambda: os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
    )

    # 언어 힌트 (ISO-639-1, 비워두면 자동 감지)
    LANGUAGE: Optional[str] = field(
        default_factory=lambda: os.getenv("TRANSCRIPTION_LANGUAGE") or None
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)


# ============================================================
# 요약 LLM 설정
# ============================================================

@dataclass
class SummaryLLMConfig:
    """통화 요약 생성 LLM 설정."""

    # 모델 식별자 (provider:model)
    MODEL: str = field(
        default_factory=lambda: os.getenv("SUMMARY_LLM_MODEL", "openai:gpt-5-mini")
    )

    # 모델 온도
    TEMPERATURE: float = field(
        default_factory=lambda: float(os.getenv("SUMMARY_LLM_TEMPERATURE", "0"))
    )

    @property
    def model_name(self) -> str:
        """모델 이름만 반환."""
        return self.MODEL.split(":")[-1] if ":" in self.MODEL else self.MODEL


# ============================================================
# 싱글톤 인스턴스
# ============================================================

transcription_config = TranscriptionConfig()
summary_llm_config = SummaryLLMConfig()

logger.info(f"[Summary Config] 전사 모델: {transcription_config.MODEL}")
logger.info(f"[Summary Config] 요약 모델: {summary_llm_config.MODEL}")
if not transcription_config.is_configured:
    logger.warning("[Summary Config] OPENAI_API_KEY 미설정 - 전사가 placeholder 로 대체됩니다")
