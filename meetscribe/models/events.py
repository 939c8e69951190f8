"""Lifecycle events published by a transcription session."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Optional

from .session import PauseReason


@dataclass(frozen=True)
class StatusChangeEvent:
    """Base class for all session status events. `type` is the union tag."""
    type: ClassVar[str] = "status"
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class StartedEvent(StatusChangeEvent):
    type: ClassVar[str] = "started"


@dataclass(frozen=True)
class PausedEvent(StatusChangeEvent):
    type: ClassVar[str] = "paused"
    reason: PauseReason = PauseReason.MANUAL
    message: str = ""


@dataclass(frozen=True)
class ResumedEvent(StatusChangeEvent):
    type: ClassVar[str] = "resumed"
    previous_reason: Optional[PauseReason] = None


@dataclass(frozen=True)
class StoppedEvent(StatusChangeEvent):
    type: ClassVar[str] = "stopped"
    chunks_processed: int = 0
    duration_seconds: float = 0.0
    errors: int = 0


@dataclass(frozen=True)
class SilenceDetectedEvent(StatusChangeEvent):
    type: ClassVar[str] = "silence_detected"
    count: int = 0


@dataclass(frozen=True)
class AudioDetectedEvent(StatusChangeEvent):
    type: ClassVar[str] = "audio_detected"


@dataclass(frozen=True)
class WarningEvent(StatusChangeEvent):
    type: ClassVar[str] = "warning"
    message: str = ""
    elapsed_minutes: int = 0


@dataclass(frozen=True)
class CaptureErrorEvent(StatusChangeEvent):
    type: ClassVar[str] = "capture_error"
    message: str = ""
