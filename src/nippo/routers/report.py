from fastapi import APIRouter, Depends, HTTPException, Path

from nippo.dependencies import get_corrector, get_report_service, get_session_store
from nippo.exceptions import ReportError
from nippo.schemas.report import ReportRequest, ReportResponse
from nippo.schemas.session import HealthResponse, QuestionListResponse
from nippo.services.corrector import CorrectorService
from nippo.services.report import ReportService
from nippo.services.session_store import AnswerSessionStore

router = APIRouter(prefix="/api/v1", tags=["reports"])


@router.get("/questions", response_model=QuestionListResponse)
async def list_questions(
    store: AnswerSessionStore = Depends(get_session_store),
) -> QuestionListResponse:
    return QuestionListResponse(questions=store.questions.all())


@router.post("/reports", response_model=ReportResponse, status_code=201)
async def create_report(
    body: ReportRequest,
    service: ReportService = Depends(get_report_service),
) -> ReportResponse:
    """Format the collected answers into a daily report and persist it."""
    try:
        return await service.create(body)
    except ReportError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: str = Path(pattern=r"^[0-9a-f]{32}$"),
    service: ReportService = Depends(get_report_service),
) -> ReportResponse:
    report = service.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report

@router.get("/health", response_model=HealthResponse)
async def health(
    corrector: CorrectorService = Depends(get_corrector),
    store: AnswerSessionStore = Depends(get_session_store),
) -> HealthResponse:
    """Check service health: LLM reachable and open answer sessions."""
    llm_reachable = await corrector.is_reachable()
    return HealthResponse(llm_reachable=llm_reachable, active_sessions=len(store))
