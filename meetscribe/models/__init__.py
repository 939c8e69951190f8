"""Data models for the meetscribe application."""

from .audio import AudioFrame, CaptureStats
from .transcription import TranscriptEntry, format_timestamp
from .session import SessionState, PauseReason, SessionSettings, SessionStatus
from .events import (
    StatusChangeEvent,
    StartedEvent,
    PausedEvent,
    ResumedEvent,
    StoppedEvent,
    SilenceDetectedEvent,
    AudioDetectedEvent,
    WarningEvent,
    CaptureErrorEvent,
)

__all__ = [
    "AudioFrame",
    "CaptureStats",
    "TranscriptEntry",
    "format_timestamp",
    "SessionState",
    "PauseReason",
    "SessionSettings",
    "SessionStatus",
    # Lifecycle events
    "StatusChangeEvent",
    "StartedEvent",
    "PausedEvent",
    "ResumedEvent",
    "StoppedEvent",
    "SilenceDetectedEvent",
    "AudioDetectedEvent",
    "WarningEvent",
    "CaptureErrorEvent",
]
