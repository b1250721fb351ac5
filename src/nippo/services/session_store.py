import logging
import time
import uuid

from nippo.config import Settings
from nippo.services.pipeline.controller import SessionController, SessionState
from nippo.services.pipeline.dispatcher import Corrector
from nippo.services.pipeline.models import SessionSnapshot
from nippo.services.pipeline.recognition import RemoteRecognitionEngine
from nippo.services.questions import QuestionSource

logger = logging.getLogger(__name__)


class AnswerSession:
    __slots__ = (
        "session_id",
        "question_index",
        "question",
        "controller",
        "engine",
        "updated_at",
        "_last_status",
    )

    def __init__(
        self,
        session_id: str,
        question_index: int,
        question: str,
        controller: SessionController,
        engine: RemoteRecognitionEngine,
    ) -> None:
        self.session_id = session_id
        self.question_index = question_index
        self.question = question
        self.controller = controller
        self.engine = engine
        self.updated_at = time.monotonic()
        self._last_status = controller.status.value

    def on_change(self, snapshot: SessionSnapshot) -> None:
        self.updated_at = time.monotonic()
        if snapshot.status != self._last_status:
            logger.info(
                "Answer session %s: %s -> %s",
                self.session_id,
                self._last_status,
                snapshot.status,
            )
            self._last_status = snapshot.status

    @property
    def busy(self) -> bool:
        return self.controller.state != SessionState.IDLE or self.controller.processing


class AnswerSessionStore:
    """Holds one :class:`SessionController` per question being answered."""

    def __init__(
        self,
        corrector: Corrector,
        questions: QuestionSource,
        settings: Settings,
    ) -> None:
        self._corrector = corrector
        self._questions = questions
        self._language = settings.recognition_language
        self._min_chars = settings.correction_min_chars
        self._max_sessions = settings.session_max_in_memory
        self._sessions: dict[str, AnswerSession] = {}

    @property
    def questions(self) -> QuestionSource:
        return self._questions

    def __len__(self) -> int:
        return len(self._sessions)

    def create(
        self,
        question_index: int,
        *,
        initial_text: str = "",
        recognition_supported: bool = True,
    ) -> AnswerSession:
        """Create an answer session. Raises IndexError for an unknown question."""
        question = self._questions.get(question_index)
        engine = RemoteRecognitionEngine(
            supported=recognition_supported, language=self._language
        )
        controller = SessionController(
            engine,
            self._corrector,
            context_hint=question,
            initial_text=initial_text,
            min_chars=self._min_chars,
        )
        session = AnswerSession(
            uuid.uuid4().hex, question_index, question, controller, engine
        )
        controller.add_listener(session.on_change)
        self._sessions[session.session_id] = session
        self._evict_idle(keep=session.session_id)
        logger.info(
            "Answer session %s created for question %d", session.session_id, question_index
        )
        return session

    def get(self, session_id: str) -> AnswerSession | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.controller.cancel()
        logger.info("Answer session %s removed", session_id)
        return True

    def close(self) -> None:
        """Cancel every session; used on shutdown."""
        for session in self._sessions.values():
            session.controller.cancel()
        self._sessions.clear()

    def _evict_idle(self, keep: str | None = None) -> None:
        """Remove least recently updated idle sessions beyond the memory limit."""
        excess = len(self._sessions) - self._max_sessions
        if excess <= 0:
            return
        candidates = sorted(
            (s for s in self._sessions.values() if not s.busy and s.session_id != keep),
            key=lambda s: s.updated_at,
        )
        for session in candidates[:excess]:
            del self._sessions[session.session_id]
        logger.info(
            "Evicted %d idle answer sessions (total: %d)",
            min(excess, len(candidates)),
            len(self._sessions),
        )
