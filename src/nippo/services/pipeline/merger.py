import logging

from nippo.services.pipeline.models import DraftBuffer, Segment
from nippo.utils.text import append_text

logger = logging.getLogger(__name__)


class DraftMerger:
    """Applies resolved segments to the answer buffer in sequence order.

    Segments may resolve in any order. One that arrives ahead of its
    predecessor is held back and flushed once the gap is filled, so the
    visible text never has sentences out of order.

    Sequence numbers run across listening sessions, so a session that was
    stopped keeps merging while the next one listens. A discarded (cancelled)
    session never contributes: its late results are dropped and its sequence
    numbers are skipped.
    """

    def __init__(self, initial_text: str = "") -> None:
        self._buffer = DraftBuffer(text=initial_text)
        self._held: dict[int, Segment] = {}
        self._skipped: set[int] = set()
        self._discarded_sessions: set[str] = set()

    @property
    def buffer(self) -> DraftBuffer:
        return self._buffer

    @property
    def held_sequences(self) -> list[int]:
        return sorted(self._held)

    def get_text(self) -> str:
        return self._buffer.text

    def apply(self, segment: Segment) -> bool:
        """Apply or hold ``segment``. Returns True when the text changed."""
        if segment.session_id in self._discarded_sessions:
            logger.debug(
                "Discarding segment %d of cancelled session %s",
                segment.sequence_number,
                segment.session_id,
            )
            return False

        seq = segment.sequence_number
        if seq <= self._buffer.last_applied_sequence or seq in self._held:
            logger.debug("Discarding stale segment %d", seq)
            return False

        self._held[seq] = segment
        return self._flush()

    def discard_session(self, session_id: str, sequences: list[int] | None = None) -> bool:
        """Drop ``session_id`` and skip its unresolved ``sequences``.

        Held segments of the session are dropped too. Returns True when later
        segments could be flushed as a result.
        """
        sequences = sequences or []
        self._discarded_sessions.add(session_id)
        dropped = [seq for seq, s in self._held.items() if s.session_id == session_id]
        for seq in dropped:
            del self._held[seq]
        last = self._buffer.last_applied_sequence
        self._skipped.update(seq for seq in (*dropped, *sequences) if seq > last)
        if dropped or sequences:
            logger.info(
                "Skipping %d segments of cancelled session %s",
                len(dropped) + len(sequences),
                session_id,
            )
        return self._flush()

    def _flush(self) -> bool:
        changed = False
        while True:
            seq = self._buffer.last_applied_sequence + 1
            if seq in self._skipped:
                self._skipped.discard(seq)
                self._buffer.last_applied_sequence = seq
                continue
            segment = self._held.pop(seq, None)
            if segment is None:
                return changed
            self._buffer.text = append_text(self._buffer.text, segment.merged_text)
            self._buffer.last_applied_sequence = seq
            changed = True

    def set_manual_text(self, text: str) -> None:
        self._buffer.text = text
        self._buffer.manually_edited = True

    def clear(self) -> None:
        """Reset the buffer to its initial state.

        Sessions discarded so far stay discarded.
        """
        self._buffer = DraftBuffer()
        self._held.clear()
        self._skipped.clear()
