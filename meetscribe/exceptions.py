"""Exception hierarchy for meetscribe."""


class MeetscribeError(Exception):
    """Base exception class for meetscribe errors."""

    pass


class ConfigurationError(MeetscribeError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


class StartupError(MeetscribeError):
    """Raised when a session cannot start (gateway not ready, capture failed)."""

    pass


class InvalidOperationError(MeetscribeError):
    """Raised when a lifecycle operation is not valid in the current state."""

    pass


class ServiceError(MeetscribeError):
    """Raised by a transcription gateway on auth, network or API failure."""

    pass


class TransientChunkError(MeetscribeError):
    """A single frame failed to transcribe. Recorded, never raised to callers."""

    def __init__(self, sequence_number: int, cause: Exception):
        super().__init__(f"Frame {sequence_number} failed: {cause}")
        self.sequence_number = sequence_number
        self.cause = cause


class CaptureError(MeetscribeError):
    """Raised or reported when the upstream audio byte source fails."""

    pass
