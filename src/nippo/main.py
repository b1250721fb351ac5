import logging
from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nippo.config import settings
from nippo.exceptions import NippoError, SessionStateError
from nippo.services.corrector import CorrectorService
from nippo.services.llm import OllamaClient
from nippo.services.persistence import PersistenceService
from nippo.services.questions import QuestionSource
from nippo.services.report import ReportService
from nippo.services.session_store import AnswerSessionStore
from nippo.routers import report, session

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the LLM client and stores on startup, release on shutdown."""
    logger.info("Starting nippo service ...")

    llm_client = OllamaClient(settings)
    try:
        corrector = CorrectorService(llm_client, settings)
        persistence = PersistenceService(settings.data_dir)
        app.state.corrector = corrector
        app.state.session_store = AnswerSessionStore(
            corrector=corrector,
            questions=QuestionSource.from_settings(settings),
            settings=settings,
        )
        app.state.report_service = ReportService(persistence, settings, client=llm_client)

        logger.info("nippo service ready.")
        yield
    finally:
        logger.info("Shutting down nippo service ...")
        store = getattr(app.state, "session_store", None)
        if store is not None:
            store.close()
        await llm_client.close()


app = FastAPI(
    title="nippo",
    description="Dictated daily-report answers with streaming transcript correction",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session.router)
app.include_router(report.router)


@app.exception_handler(SessionStateError)
async def session_state_error_handler(request: Request, exc: SessionStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NippoError)
async def nippo_error_handler(request: Request, exc: NippoError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})
