import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from nippo.config import Settings
from nippo.exceptions import CorrectionError
from nippo.services.corrector import CorrectorService
from nippo.services.persistence import PersistenceService
from nippo.services.questions import QuestionSource
from nippo.services.report import ReportService
from nippo.services.session_store import AnswerSessionStore

QUESTIONS = ["今日はどんなお客様の対応をしましたか？", "明日の目標は？"]


class FakeCorrector:
    """Corrector double: wraps text in <>, with per-text gates and failures."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.failures: set[str] = set()
        self.delays: dict[str, float] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def gate(self, text: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[text] = event
        return event

    async def correct(self, raw_text: str, context_hint: str | None = None) -> str:
        self.calls.append((raw_text, context_hint))
        if raw_text in self.delays:
            await asyncio.sleep(self.delays[raw_text])
        gate = self._gates.get(raw_text)
        if gate is not None:
            await gate.wait()
        if raw_text in self.failures:
            raise CorrectionError("service unavailable")
        return f"<{raw_text}>"


async def _settle(rounds: int = 20) -> None:
    """Let queued callbacks and ready tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    return _settle


@pytest.fixture
def fake_corrector() -> FakeCorrector:
    return FakeCorrector()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        report_questions=QUESTIONS,
        correction_min_chars=3,
        session_max_in_memory=10,
    )


@pytest.fixture
def mock_corrector() -> MagicMock:
    """Mocked CorrectorService that brackets the text it is given."""
    corrector = MagicMock(spec=CorrectorService)
    corrector.correct = AsyncMock(side_effect=lambda text, hint=None: f"[{text}]")
    corrector.is_reachable = AsyncMock(return_value=True)
    return corrector


@pytest.fixture
def session_store(mock_corrector: MagicMock, test_settings: Settings) -> AnswerSessionStore:
    return AnswerSessionStore(
        corrector=mock_corrector,
        questions=QuestionSource.from_settings(test_settings),
        settings=test_settings,
    )


@pytest.fixture
def test_app(mock_corrector: MagicMock, session_store: AnswerSessionStore, test_settings: Settings):
    """Create a test FastAPI app with a real session store and mocked LLM."""
    from fastapi import FastAPI
    from nippo.routers.report import router as report_router
    from nippo.routers.session import router as session_router

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        session_store.close()

    app = FastAPI(lifespan=lifespan)
    app.state.corrector = mock_corrector
    app.state.session_store = session_store
    app.state.report_service = ReportService(
        PersistenceService(test_settings.data_dir), test_settings
    )
    app.include_router(session_router)
    app.include_router(report_router)
    return app


@pytest.fixture
def client(test_app):
    # one event loop for the whole test so listening tasks survive between requests
    with TestClient(test_app) as client:
        yield client
