from pydantic import BaseModel, Field

from nippo.services.pipeline.controller import SessionStatus


class SessionCreateRequest(BaseModel):
    question_index: int = Field(ge=0)
    initial_text: str = ""
    recognition_supported: bool = True


class SessionStatusResponse(BaseModel):
    session_id: str
    question_index: int
    question: str
    status: SessionStatus
    processing: bool
    text: str
    interim_text: str = ""
    last_applied_sequence: int = -1
    manually_edited: bool = False
    listening_session_id: str | None = None
    error: str | None = None
    warning: str | None = None
    pending_sequences: list[int] = []


class TranscriptEventRequest(BaseModel):
    text: str
    is_final: bool = False


class RecognitionErrorRequest(BaseModel):
    code: str


class ManualTextRequest(BaseModel):
    text: str


class QuestionListResponse(BaseModel):
    questions: list[str]


class HealthResponse(BaseModel):
    llm_reachable: bool
    active_sessions: int
