"""Lightweight shared DTOs for cross-service communication."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ContributorTranscript(BaseModel):
    """참가자 한 명의 전사 결과."""

    user: str = Field(description="표시 이름")
    email: str = Field(default="", description="요약 메일 수신 주소")
    transcript: str = Field(default="", description="전사 텍스트 (실패 시 placeholder)")


class CallSummaryResult(BaseModel):
    """전사 + 요약 단계의 결과.

    success=False 는 요약 단계 자체가 실패했음을 의미합니다.
    개별 전사 실패는 placeholder 로 대체되므로 success 에 영향을 주지 않습니다.
    """

    transcriptions: List[ContributorTranscript] = Field(default_factory=list)
    summary: str = ""
    success: bool = False


class AudioFileRef(BaseModel):
    """webhook 페이로드에 포함되는 오디오 파일 정보."""

    user: str
    file_name: str


class CallOutcome(BaseModel):
    """통화 1건의 처리 결과 (downstream webhook 페이로드)."""

    room_id: str
    call_date: str
    participants: List[str] = Field(default_factory=list)
    audio_files: List[AudioFileRef] = Field(default_factory=list)
    transcripts: List[ContributorTranscript] = Field(default_factory=list)
    summary: str = ""
    success: bool = False
    email_sent: bool = False
    emails: Dict[str, bool] = Field(default_factory=dict)
    error: bool = False
    error_message: Optional[str] = None
