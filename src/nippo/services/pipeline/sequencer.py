import logging

from nippo.services.pipeline.models import Segment, TranscriptEvent

logger = logging.getLogger(__name__)


class SegmentSequencer:
    """Turns recognizer events into numbered segments.

    Sequence numbers belong to the answer, not to one listening session, so
    segments of consecutive sessions keep a single order.

    Interim text is kept only as a live preview. A final is accepted when it is
    non-blank and differs from the previously accepted final of the session;
    recognizers tend to re-emit an identical final around trailing noise.
    """

    def __init__(self) -> None:
        self._session_id: str | None = None
        self._last_sequence = -1
        self._last_final_text: str | None = None
        self._interim_text = ""

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def interim_text(self) -> str:
        return self._interim_text

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    def bind(self, session_id: str | None) -> None:
        """Follow a new listening session. Numbering continues across sessions."""
        self._session_id = session_id
        self._last_final_text = None
        self._interim_text = ""

    def restart(self) -> None:
        """Unbind and number the next segment 0 again."""
        self.bind(None)
        self._last_sequence = -1

    def accept(self, event: TranscriptEvent) -> Segment | None:
        if self._session_id is None or event.session_id != self._session_id:
            logger.debug(
                "Ignoring event from stale session %s (current %s)",
                event.session_id,
                self._session_id,
            )
            return None

        if not event.is_final:
            self._interim_text = event.text
            return None

        self._interim_text = ""
        return self._accept_final(event.text)

    def promote_interim(self) -> Segment | None:
        """Promote the trailing interim preview to a final segment."""
        if self._session_id is None:
            return None
        text = self._interim_text
        self._interim_text = ""
        return self._accept_final(text)

    def _accept_final(self, text: str) -> Segment | None:
        stripped = text.strip()
        if not stripped:
            return None
        if stripped == self._last_final_text:
            logger.debug("Duplicate final suppressed: %r", stripped[:50])
            return None

        self._last_final_text = stripped
        self._last_sequence += 1
        return Segment(
            session_id=self._session_id,
            sequence_number=self._last_sequence,
            raw_text=stripped,
        )
