"""Recognition engine contract and the listening-session message channel.

Engines report results through callbacks. :class:`RecognitionSession` turns
those callbacks into items on an ``asyncio.Queue`` so the controller consumes
them in emission order from a single task.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from nippo.exceptions import RecognitionUnsupportedError
from nippo.services.pipeline.models import EventKind, TranscriptEvent

logger = logging.getLogger(__name__)

ResultCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[str], None]

VOICE_INPUT_UNAVAILABLE = "Cannot use voice input, please use text entry"

# Error codes follow the browser speech-recognition API
_ERROR_DETAILS = {
    "unsupported": "speech recognition is not supported on this device",
    "not-allowed": "microphone permission denied",
    "service-not-allowed": "speech service not allowed",
    "audio-capture": "no microphone available",
    "network": "network error during recognition",
    "no-speech": "no speech detected",
    "aborted": "recognition aborted",
    "language-not-supported": "recognition language not supported",
}


def describe_error(code: str) -> str:
    """User-facing message for an engine error code."""
    detail = _ERROR_DETAILS.get(code, code or "unknown error")
    return f"{VOICE_INPUT_UNAVAILABLE} ({detail})"


class RecognitionEngine(Protocol):
    def is_supported(self) -> bool: ...

    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None: ...

    def stop_listening(self) -> None: ...


class RemoteRecognitionEngine:
    """Engine adapter for a recognizer running in the client (browser).

    The client posts its results and errors; this adapter relays them to the
    callbacks registered by ``start_listening`` while listening.
    """

    def __init__(self, *, supported: bool = True, language: str = "ja-JP") -> None:
        self._supported = supported
        self.language = language
        self._on_result: ResultCallback | None = None
        self._on_error: ErrorCallback | None = None

    @property
    def is_listening(self) -> bool:
        return self._on_result is not None

    def is_supported(self) -> bool:
        return self._supported

    def start_listening(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        if not self._supported:
            raise RecognitionUnsupportedError(describe_error("unsupported"))
        if self.is_listening:
            return
        self._on_result = on_result
        self._on_error = on_error

    def stop_listening(self) -> None:
        self._on_result = None
        self._on_error = None

    def feed(self, text: str, is_final: bool) -> bool:
        """Relay one client result. Returns False when not listening."""
        if self._on_result is None:
            return False
        self._on_result(text, is_final)
        return True

    def fail(self, code: str) -> bool:
        """Relay a client-side engine error; listening ends."""
        on_error = self._on_error
        self.stop_listening()
        if on_error is None:
            return False
        on_error(code)
        return True


@dataclass(frozen=True)
class RecognitionFailure:
    session_id: str
    code: str

    @property
    def message(self) -> str:
        return describe_error(self.code)


class EndOfStream:
    """Queue marker: the engine confirmed it stopped."""


END_OF_STREAM = EndOfStream()

QueueItem = TranscriptEvent | RecognitionFailure | EndOfStream


class RecognitionSession:
    """One start-to-stop span of the recognizer, identified by ``session_id``."""

    def __init__(self, engine: RecognitionEngine, session_id: str) -> None:
        self._engine = engine
        self.session_id = session_id
        self.events: asyncio.Queue[QueueItem] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        if not self._engine.is_supported():
            raise RecognitionUnsupportedError(describe_error("unsupported"))
        self._engine.start_listening(self._on_result, self._on_error)
        logger.info("Recognition session %s listening", self.session_id)

    def close(self) -> None:
        """Stop the engine; queued events stay readable, then END_OF_STREAM."""
        if self._closed:
            return
        self._closed = True
        self._engine.stop_listening()
        self.events.put_nowait(END_OF_STREAM)
        logger.info("Recognition session %s closed", self.session_id)

    def _on_result(self, text: str, is_final: bool) -> None:
        if self._closed:
            return
        self.events.put_nowait(
            TranscriptEvent(
                session_id=self.session_id,
                text=text,
                kind=EventKind.FINAL if is_final else EventKind.INTERIM,
                emitted_at=time.monotonic(),
            )
        )

    def _on_error(self, code: str) -> None:
        if self._closed:
            return
        self._closed = True
        logger.warning("Recognition session %s failed: %s", self.session_id, code)
        self.events.put_nowait(RecognitionFailure(self.session_id, code))
