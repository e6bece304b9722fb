"""통화 요약 모듈.

Classes:
    Transcriber: OpenAI 오디오 전사
    CallSummarizer: LLM 통화 요약
    CallProcessor: 전사 → 요약 → 메일 → webhook 파이프라인
"""

from .transcriber import Transcriber, failed_transcript
from .summarizer import CallSummarizer, FAILED_SUMMARY_TEXT, build_conversation_text
from .processor import CallProcessor, group_by_contributor
from .config import transcription_config, summary_llm_config, TranscriptionConfig, SummaryLLMConfig

__all__ = [
    "Transcriber",
    "failed_transcript",
    "CallSummarizer",
    "FAILED_SUMMARY_TEXT",
    "build_conversation_text",
    "CallProcessor",
    "group_by_contributor",
    "transcription_config",
    "summary_llm_config",
    "TranscriptionConfig",
    "SummaryLLMConfig",
]
