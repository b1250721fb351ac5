"""Answer session controller: listening lifecycle over the correction pipeline.

Every state change happens on the event loop. The only suspension points are
the recognizer queue and the correction calls, so no locking is needed.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from enum import StrEnum

from nippo.exceptions import RecognitionError, RecognitionUnsupportedError, SessionStateError
from nippo.services.pipeline.dispatcher import CorrectionDispatcher, Corrector
from nippo.services.pipeline.merger import DraftMerger
from nippo.services.pipeline.models import Segment, SessionSnapshot
from nippo.services.pipeline.recognition import (
    END_OF_STREAM,
    RecognitionEngine,
    RecognitionFailure,
    RecognitionSession,
    describe_error,
)
from nippo.services.pipeline.sequencer import SegmentSequencer

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]

CORRECTION_WARNING = "Correction unavailable, uncorrected text was used"


class SessionState(StrEnum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"


class SessionStatus(StrEnum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPING = "stopping"
    PROCESSING = "processing"
    ERROR = "error"


class SessionController:
    """Owns the pipeline state of one question's answer.

    Policy: only one listening session at a time; ``start()`` while listening
    or stopping raises :class:`SessionStateError`.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        corrector: Corrector,
        *,
        context_hint: str | None = None,
        initial_text: str = "",
        min_chars: int = 3,
    ) -> None:
        self._engine = engine
        self._context_hint = context_hint
        self._sequencer = SegmentSequencer()
        self._merger = DraftMerger(initial_text)
        self._dispatcher = CorrectionDispatcher(
            corrector,
            self._on_segment_resolved,
            min_chars=min_chars,
            on_warning=self._on_correction_warning,
        )
        self._state = SessionState.IDLE
        self._recognition: RecognitionSession | None = None
        self._consumer: asyncio.Task | None = None
        self._error: str | None = None
        self._warning: str | None = None
        self._listeners: list[Listener] = []

    # -- read-only views -----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def processing(self) -> bool:
        return self._dispatcher.in_flight > 0

    @property
    def status(self) -> SessionStatus:
        if self._state == SessionState.LISTENING:
            return SessionStatus.LISTENING
        if self._state == SessionState.STOPPING:
            return SessionStatus.STOPPING
        if self._error:
            return SessionStatus.ERROR
        if self.processing:
            return SessionStatus.PROCESSING
        return SessionStatus.IDLE

    @property
    def listening_session_id(self) -> str | None:
        return self._sequencer.session_id

    @property
    def engine(self) -> RecognitionEngine:
        return self._engine

    @property
    def merger(self) -> DraftMerger:
        return self._merger

    def get_text(self) -> str:
        return self._merger.get_text()

    def snapshot(self) -> SessionSnapshot:
        buffer = self._merger.buffer
        return SessionSnapshot(
            status=self.status.value,
            processing=self.processing,
            text=buffer.text,
            interim_text=self._sequencer.interim_text,
            last_applied_sequence=buffer.last_applied_sequence,
            manually_edited=buffer.manually_edited,
            listening_session_id=self._sequencer.session_id,
            error=self._error,
            warning=self._warning,
            pending_sequences=tuple(self._dispatcher.pending_sequences()),
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Subscribe to snapshots; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> str:
        """Begin a new listening session and return its id.

        Corrections of earlier sessions keep running and merge in order
        alongside the new session's segments.
        """
        if self._state != SessionState.IDLE:
            raise SessionStateError(f"cannot start while {self._state.value}")

        if not self._engine.is_supported():
            self._error = describe_error("unsupported")
            self._notify()
            raise RecognitionUnsupportedError(self._error)

        session_id = uuid.uuid4().hex
        recognition = RecognitionSession(self._engine, session_id)
        try:
            recognition.open()
        except RecognitionError as e:
            self._error = str(e)
            self._notify()
            raise

        self._sequencer.bind(session_id)
        self._recognition = recognition
        self._error = None
        self._warning = None
        self._state = SessionState.LISTENING
        self._consumer = asyncio.create_task(
            self._consume(recognition), name=f"recognition-{session_id[:8]}"
        )

        logger.info("Listening session %s started", session_id)
        self._notify()
        return session_id

    async def stop(self) -> None:
        """Stop listening, flushing trailing interim text as a final segment."""
        if self._state != SessionState.LISTENING:
            raise SessionStateError(f"cannot stop while {self._state.value}")

        recognition = self._recognition
        consumer = self._consumer
        self._state = SessionState.STOPPING
        self._notify()

        if recognition is not None:
            recognition.close()
        if consumer is not None:
            try:
                await asyncio.shield(consumer)
            except asyncio.CancelledError:
                if not consumer.cancelled():
                    raise
                # cancel() took over while we were draining
                return

        if self._recognition is not recognition or self._state != SessionState.STOPPING:
            # a recognition error ended the session while draining
            return

        segment = self._sequencer.promote_interim()
        if segment is not None:
            logger.info("Promoted trailing interim text to segment %d", segment.sequence_number)
            self._dispatcher.dispatch(segment, self._context_hint)

        self._sequencer.bind(None)
        self._recognition = None
        self._consumer = None
        self._state = SessionState.IDLE
        logger.info("Listening session %s stopped", recognition.session_id if recognition else None)
        self._notify()

    def cancel(self) -> None:
        """Stop listening without flushing; the session's results are dropped.

        Corrections of sessions that were already stopped are not affected.
        """
        session_id = self._sequencer.session_id
        listening = self._state != SessionState.IDLE
        if self._recognition is not None:
            self._recognition.close()
        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
        self._recognition = None
        self._consumer = None

        if listening and session_id is not None:
            cancelled = self._dispatcher.cancel_session(session_id)
            self._merger.discard_session(session_id, cancelled)
            logger.info("Listening session %s cancelled", session_id)
        self._sequencer.bind(None)
        self._state = SessionState.IDLE
        self._notify()

    def set_manual_text(self, text: str) -> None:
        self._merger.set_manual_text(text)
        self._notify()

    def clear(self) -> None:
        """Cancel listening and every pending correction, then reset the answer."""
        self.cancel()
        for session_id, cancelled in self._dispatcher.cancel_all().items():
            self._merger.discard_session(session_id, cancelled)
        self._merger.clear()
        self._sequencer.restart()
        self._error = None
        self._warning = None
        self._notify()

    async def drain(self) -> None:
        await self._dispatcher.drain()

    async def complete(self) -> str:
        """Finish dictation and return the final answer text."""
        if self._state == SessionState.LISTENING:
            await self.stop()
        elif self._consumer is not None:
            await asyncio.shield(self._consumer)
        await self.drain()
        return self.get_text().strip()

    # -- pipeline ------------------------------------------------------------

    async def _consume(self, recognition: RecognitionSession) -> None:
        while True:
            item = await recognition.events.get()
            if item is END_OF_STREAM:
                return
            if isinstance(item, RecognitionFailure):
                self._on_recognition_failure(recognition, item)
                return

            segment = self._sequencer.accept(item)
            if segment is not None:
                logger.debug("Accepted segment %d: %r", segment.sequence_number, segment.raw_text[:50])
                self._dispatcher.dispatch(segment, self._context_hint)
            self._notify()

    def _on_recognition_failure(
        self, recognition: RecognitionSession, failure: RecognitionFailure
    ) -> None:
        if self._recognition is not recognition:
            return
        # Already-dispatched segments keep going; only listening ends
        self._sequencer.bind(None)
        self._recognition = None
        self._consumer = None
        self._state = SessionState.IDLE
        self._error = failure.message
        logger.warning("Listening session %s ended by engine error: %s", failure.session_id, failure.code)
        self._notify()

    def _on_segment_resolved(self, segment: Segment) -> None:
        if self._merger.apply(segment):
            logger.debug(
                "Applied up to segment %d", self._merger.buffer.last_applied_sequence
            )
        self._notify()

    def _on_correction_warning(self, segment: Segment, error: Exception) -> None:
        self._warning = CORRECTION_WARNING
