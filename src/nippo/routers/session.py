from fastapi import APIRouter, Depends, HTTPException

from nippo.dependencies import get_answer_session, get_session_store
from nippo.exceptions import RecognitionUnsupportedError, SessionStateError
from nippo.schemas.report import VoiceResponse
from nippo.schemas.session import (
    ManualTextRequest,
    RecognitionErrorRequest,
    SessionCreateRequest,
    SessionStatusResponse,
    TranscriptEventRequest,
)
from nippo.services.session_store import AnswerSession, AnswerSessionStore

router = APIRouter(prefix="/api/v1", tags=["sessions"])


def _status(session: AnswerSession) -> SessionStatusResponse:
    snapshot = session.controller.snapshot()
    return SessionStatusResponse(
        session_id=session.session_id,
        question_index=session.question_index,
        question=session.question,
        status=snapshot.status,
        processing=snapshot.processing,
        text=snapshot.text,
        interim_text=snapshot.interim_text,
        last_applied_sequence=snapshot.last_applied_sequence,
        manually_edited=snapshot.manually_edited,
        listening_session_id=snapshot.listening_session_id,
        error=snapshot.error,
        warning=snapshot.warning,
        pending_sequences=list(snapshot.pending_sequences),
    )


@router.post("/sessions", response_model=SessionStatusResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest,
    store: AnswerSessionStore = Depends(get_session_store),
) -> SessionStatusResponse:
    """Open an answer session for one question."""
    try:
        session = store.create(
            body.question_index,
            initial_text=body.initial_text,
            recognition_supported=body.recognition_supported,
        )
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _status(session)


@router.get("/sessions/{session_id}", response_model=SessionStatusResponse)
async def get_session(
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    """Current buffer text, live interim preview and status."""
    return _status(session)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    store: AnswerSessionStore = Depends(get_session_store),
) -> None:
    if not store.remove(session_id):
        raise HTTPException(status_code=404, detail="Session not found")


@router.post("/sessions/{session_id}/start", response_model=SessionStatusResponse)
async def start_listening(
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    try:
        await session.controller.start()
    except RecognitionUnsupportedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _status(session)


@router.post("/sessions/{session_id}/stop", response_model=SessionStatusResponse)
async def stop_listening(
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    try:
        await session.controller.stop()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _status(session)


@router.post("/sessions/{session_id}/cancel", response_model=SessionStatusResponse)
async def cancel_listening(
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    session.controller.cancel()
    return _status(session)


@router.post("/sessions/{session_id}/clear", response_model=SessionStatusResponse)
async def clear_answer(
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    session.controller.clear()
    return _status(session)


@router.post("/sessions/{session_id}/events", response_model=SessionStatusResponse)
async def push_event(
    body: TranscriptEventRequest,
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    """Relay one recognizer result from the client."""
    if not session.engine.feed(body.text, body.is_final):
        raise HTTPException(status_code=409, detail="Session is not listening")
    return _status(session)


@router.post("/sessions/{session_id}/errors", response_model=SessionStatusResponse)
async def push_error(
    body: RecognitionErrorRequest,
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    """Relay a client-side recognizer error; listening ends."""
    if not session.engine.fail(body.code):
        raise HTTPException(status_code=409, detail="Session is not listening")
    return _status(session)


@router.put("/sessions/{session_id}/text", response_model=SessionStatusResponse)
async def set_text(
    body: ManualTextRequest,
    session: AnswerSession = Depends(get_answer_session),
) -> SessionStatusResponse:
    """Overwrite the answer with the user's edit."""
    session.controller.set_manual_text(body.text)
    return _status(session)


@router.post("/sessions/{session_id}/complete", response_model=VoiceResponse)
async def complete_answer(
    session: AnswerSession = Depends(get_answer_session),
) -> VoiceResponse:
    """Stop listening, wait for pending corrections and return the answer."""
    answer = await session.controller.complete()
    if not answer:
        raise HTTPException(status_code=422, detail="Answer is empty")
    return VoiceResponse(
        question=session.question,
        answer=answer,
        question_index=session.question_index,
    )
