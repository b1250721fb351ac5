"""nippo schemas."""

from nippo.schemas.report import ReportRequest, ReportResponse, VoiceResponse
from nippo.schemas.session import (
    HealthResponse,
    ManualTextRequest,
    QuestionListResponse,
    RecognitionErrorRequest,
    SessionCreateRequest,
    SessionStatusResponse,
    TranscriptEventRequest,
)

__all__ = [
    "HealthResponse",
    "ManualTextRequest",
    "QuestionListResponse",
    "RecognitionErrorRequest",
    "ReportRequest",
    "ReportResponse",
    "SessionCreateRequest",
    "SessionStatusResponse",
    "TranscriptEventRequest",
    "VoiceResponse",
]
