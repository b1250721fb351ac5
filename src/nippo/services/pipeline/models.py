"""Pipeline data model: transcript events, segments and the draft buffer."""

from dataclasses import dataclass
from enum import StrEnum


class EventKind(StrEnum):
    INTERIM = "interim"
    FINAL = "final"


class SegmentState(StrEnum):
    PENDING = "pending"
    CORRECTED = "corrected"
    FAILED = "failed"


@dataclass(frozen=True)
class TranscriptEvent:
    """One recognizer result, tagged with the listening session it belongs to."""

    session_id: str
    text: str
    kind: EventKind
    emitted_at: float

    @property
    def is_final(self) -> bool:
        return self.kind == EventKind.FINAL


@dataclass
class Segment:
    """A finalized chunk of speech tracked through correction and merging."""

    session_id: str
    sequence_number: int
    raw_text: str
    state: SegmentState = SegmentState.PENDING
    corrected_text: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.session_id, self.sequence_number)

    def resolve(self, corrected_text: str) -> None:
        self.state = SegmentState.CORRECTED
        self.corrected_text = corrected_text

    def fail(self) -> None:
        # failed segments still yield their raw text
        self.state = SegmentState.FAILED
        self.corrected_text = self.raw_text

    @property
    def merged_text(self) -> str:
        if self.corrected_text is None:
            return self.raw_text
        return self.corrected_text


@dataclass
class CorrectionRequest:
    segment: Segment
    context_hint: str | None = None
    submitted_at: float = 0.0


@dataclass
class DraftBuffer:
    text: str = ""
    last_applied_sequence: int = -1
    manually_edited: bool = False


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of an answer session handed to subscribers."""

    status: str
    processing: bool
    text: str
    interim_text: str
    last_applied_sequence: int
    manually_edited: bool
    listening_session_id: str | None = None
    error: str | None = None
    warning: str | None = None
    pending_sequences: tuple[int, ...] = ()
