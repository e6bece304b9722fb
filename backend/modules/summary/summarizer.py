"""통화 요약 생성 모듈.

참가자별 전사 텍스트를 하나의 대화로 합쳐 LLM 으로 짧은 요약을 생성합니다.
LLM 은 langchain init_chat_model 로 한 번만 초기화하여 재사용합니다.
"""

import logging
import time
from typing import Any, List, Optional

from langchain.chat_models import init_chat_model
from langchain_core.messages import SystemMessage, HumanMessage

from ..shared import ContributorTranscript
from .config import summary_llm_config, SummaryLLMConfig

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You summarize a recorded two-person video call for the people who took part in it.
Write a brief summary of the conversation, in under three sentences.
Keep it conversational and address the participants directly.
If a transcript is marked as failed, summarize from what is available."""

FAILED_SUMMARY_TEXT = "AI processing failed due to an error. Please check the logs."


def build_conversation_text(transcripts: List[ContributorTranscript]) -> str:
    """참가자별 전사를 `<이름>: <텍스트>` 블록으로 합칩니다."""
    return "\n\n".join(f"{t.user}: {t.transcript}" for t in transcripts)


class CallSummarizer:
    """LLM 기반 통화 요약기.

    Attributes:
        config (SummaryLLMConfig): 요약 LLM 설정
        llm: langchain chat model (첫 호출 시 생성, 테스트에서 주입 가능)
    """

    def __init__(self, config: SummaryLLMConfig = summary_llm_config, llm: Any = None):
        self.config = config
        self.llm = llm

    def _get_llm(self) -> Any:
        if self.llm is None:
            logger.info(f"[요약] LLM 초기화 중: {self.config.MODEL}")
            self.llm = init_chat_model(self.config.MODEL, temperature=self.config.TEMPERATURE)
        return self.llm

    async def summarize(self, transcripts: List[ContributorTranscript]) -> Optional[str]:
        """요약 텍스트를 생성합니다.

        Returns:
            Optional[str]: 요약 텍스트. LLM 호출이 실패하면 None
        """
        conversation_text = build_conversation_text(transcripts)
        messages = [
            SystemMessage(content=SUMMARY_SYSTEM_PROMPT),
            HumanMessage(content=f"Call transcript:\n\n{conversation_text}"),
        ]

        try:
            llm = self._get_llm()
            logger.info(f"[요약] 요약 생성 중: 참가자 {len(transcripts)}명")
            start_time = time.time()
            result = await llm.ainvoke(messages)
            logger.info(f"[요약] 요약 완료: {time.time() - start_time:.2f}s")
        except Exception as e:
            logger.error(f"[요약] 요약 실패: {e}", exc_info=True)
            return None

        content = getattr(result, "content", result)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        summary = str(content).strip()
        if not summary:
            logger.error("[요약] LLM 이 빈 요약을 반환함")
            return None
        return summary
