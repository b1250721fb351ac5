"""Streaming transcript capture and correction pipeline.

Recognition session -> segment sequencer -> correction dispatcher ->
draft merger, orchestrated per answer by :class:`SessionController`.
"""

from nippo.services.pipeline.controller import SessionController, SessionState, SessionStatus
from nippo.services.pipeline.dispatcher import CorrectionDispatcher
from nippo.services.pipeline.merger import DraftMerger
from nippo.services.pipeline.models import (
    CorrectionRequest,
    DraftBuffer,
    EventKind,
    Segment,
    SegmentState,
    SessionSnapshot,
    TranscriptEvent,
)
from nippo.services.pipeline.recognition import (
    RecognitionEngine,
    RecognitionSession,
    RemoteRecognitionEngine,
)
from nippo.services.pipeline.sequencer import SegmentSequencer

__all__ = [
    "CorrectionDispatcher",
    "CorrectionRequest",
    "DraftBuffer",
    "DraftMerger",
    "EventKind",
    "RecognitionEngine",
    "RecognitionSession",
    "RemoteRecognitionEngine",
    "Segment",
    "SegmentSequencer",
    "SegmentState",
    "SessionController",
    "SessionSnapshot",
    "SessionState",
    "SessionStatus",
    "TranscriptEvent",
]
