from fastapi import Depends, HTTPException, Request

from nippo.services.corrector import CorrectorService
from nippo.services.report import ReportService
from nippo.services.session_store import AnswerSession, AnswerSessionStore


def get_session_store(request: Request) -> AnswerSessionStore:
    """Retrieve the AnswerSessionStore singleton from app state."""
    return request.app.state.session_store


def get_report_service(request: Request) -> ReportService:
    """Retrieve the ReportService singleton from app state."""
    return request.app.state.report_service


def get_corrector(request: Request) -> CorrectorService:
    """Retrieve the CorrectorService singleton from app state."""
    return request.app.state.corrector


def get_answer_session(
    session_id: str,
    store: AnswerSessionStore = Depends(get_session_store),
) -> AnswerSession:
    """Look up the answer session named in the path, or 404."""
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
