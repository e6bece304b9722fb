"""Shared DTOs and type definitions used across services.

Only lightweight, common data models should live here. Do not place
service-specific logic or heavy dependencies (e.g., LangChain, SendGrid)
in this package.
"""

from .dto import (
    ContributorTranscript,
    CallSummaryResult,
    AudioFileRef,
    CallOutcome,
)
from .locks import KeyedLock

__all__ = [
    "ContributorTranscript",
    "CallSummaryResult",
    "AudioFileRef",
    "CallOutcome",
    "KeyedLock",
]
