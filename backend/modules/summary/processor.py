"""통화 후처리 파이프라인.

녹음 세션이 두 참가자의 오디오를 모두 받으면 다음 순서로 처리합니다:
    1. 참가자별 전사 (파일 단위 실패는 placeholder 로 대체)
    2. 전체 대화 요약 (실패 시 결과를 실패로 표시)
    3. 요약 성공 시 연락처가 있는 참가자마다 요약 메일 (서로 독립)
    4. webhook 으로 통화 결과 전송 (실패는 로그만)

process() 는 예외를 올리지 않습니다. 오디오 파일 삭제는 호출하는 쪽
(RecordingAggregator) 의 책임입니다.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..notification import CallWebhook, EmailService
from ..recording import AudioContribution
from ..shared import AudioFileRef, CallOutcome, CallSummaryResult, ContributorTranscript
from .summarizer import CallSummarizer, FAILED_SUMMARY_TEXT
from .transcriber import Transcriber, failed_transcript

logger = logging.getLogger(__name__)


def group_by_contributor(contributions: Sequence[AudioContribution]) -> Dict[str, List[AudioContribution]]:
    """청크를 참가자별로 묶습니다 (처음 본 순서 유지)."""
    grouped: Dict[str, List[AudioContribution]] = {}
    for contribution in contributions:
        grouped.setdefault(contribution.contributor, []).append(contribution)
    return grouped


def _contact_of(chunks: List[AudioContribution]) -> str:
    for chunk in reversed(chunks):
        if chunk.contact:
            return chunk.contact
    return ""


class CallProcessor:
    """전사 → 요약 → 메일 → webhook 파이프라인.

    Attributes:
        transcriber (Transcriber): 오디오 전사기
        summarizer (CallSummarizer): 요약기
        email_service (EmailService): 메일 발송기
        webhook (CallWebhook): 통화 결과 webhook
    """

    def __init__(
        self,
        transcriber: Optional[Transcriber] = None,
        summarizer: Optional[CallSummarizer] = None,
        email_service: Optional[EmailService] = None,
        webhook: Optional[CallWebhook] = None,
    ):
        self.transcriber = transcriber or Transcriber()
        self.summarizer = summarizer or CallSummarizer()
        self.email_service = email_service or EmailService()
        self.webhook = webhook or CallWebhook()

    async def _transcribe_contributor(self, user: str, chunks: List[AudioContribution]) -> ContributorTranscript:
        texts = []
        for chunk in chunks:
            text = await self.transcriber.transcribe(user, chunk.blob_path)
            if text and text != failed_transcript(user):
                texts.append(text)
        transcript = " ".join(texts) if texts else failed_transcript(user)
        return ContributorTranscript(user=user, email=_contact_of(chunks), transcript=transcript)

    async def transcribe_and_summarize(self, contributions: Sequence[AudioContribution]) -> CallSummaryResult:
        """참가자별 전사와 전체 요약을 만듭니다."""
        grouped = group_by_contributor(contributions)
        transcripts = await asyncio.gather(*[
            self._transcribe_contributor(user, chunks) for user, chunks in grouped.items()
        ])

        summary = await self.summarizer.summarize(list(transcripts))
        if summary is None:
            return CallSummaryResult(transcriptions=list(transcripts), summary=FAILED_SUMMARY_TEXT, success=False)
        return CallSummaryResult(transcriptions=list(transcripts), summary=summary, success=True)

    async def _send_emails(self, result: CallSummaryResult, room_id: str, call_date: str) -> Dict[str, bool]:
        recipients = [t for t in result.transcriptions if t.email]
        if not recipients:
            logger.warning(f"[처리] room={room_id}: 메일 수신자 없음")
            return {}

        sent = await asyncio.gather(*[
            self.email_service.send_call_summary(t.user, t.email, result.summary, room_id, call_date)
            for t in recipients
        ], return_exceptions=True)

        emails: Dict[str, bool] = {}
        for transcript, ok in zip(recipients, sent):
            if isinstance(ok, Exception):
                logger.error(f"[처리] room={room_id}: {transcript.user} 메일 발송 중 예외: {ok}")
                ok = False
            emails[transcript.user] = bool(ok)
        return emails

    async def process(self, room_id: str, call_date: str, contributions: Sequence[AudioContribution]) -> CallOutcome:
        """통화 1건을 처리하고 결과를 반환합니다."""
        grouped = group_by_contributor(contributions)
        outcome = CallOutcome(
            room_id=room_id,
            call_date=call_date,
            participants=list(grouped),
            audio_files=[
                AudioFileRef(user=c.contributor, file_name=Path(c.blob_path).name) for c in contributions
            ],
        )
        logger.info(f"[처리] room={room_id} 시작: 참가자 {outcome.participants}, 청크 {len(contributions)}개")

        try:
            result = await self.transcribe_and_summarize(contributions)
            outcome.transcripts = result.transcriptions
            outcome.summary = result.summary
            outcome.success = result.success

            if result.success:
                outcome.emails = await self._send_emails(result, room_id, call_date)
                outcome.email_sent = any(outcome.emails.values())
            else:
                outcome.error = True
                outcome.error_message = "summarization failed"
                logger.error(f"[처리] room={room_id}: 요약 실패, 메일 발송 생략")
        except Exception as e:
            logger.error(f"[처리] room={room_id} 처리 중 예외: {e}", exc_info=True)
            outcome.success = False
            outcome.error = True
            outcome.error_message = str(e)
            if not outcome.summary:
                outcome.summary = FAILED_SUMMARY_TEXT

        try:
            await self.webhook.send(outcome)
        except Exception as e:
            logger.error(f"[처리] room={room_id} webhook 전송 중 예외: {e}")

        return outcome
