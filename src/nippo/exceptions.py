class NippoError(Exception):
    """Base exception for the nippo service."""


class RecognitionError(NippoError):
    """Raised when the speech recognition engine fails."""


class RecognitionUnsupportedError(RecognitionError):
    """Raised when no speech recognition engine is available."""


class CorrectionError(NippoError):
    """Raised when LLM text correction fails."""


class SessionStateError(NippoError):
    """Raised when a lifecycle operation is invalid in the current state."""


class ReportError(NippoError):
    """Raised when a report cannot be formatted or persisted."""
