"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(Enum):
    """Lifecycle state of a transcription session."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED_MANUAL = "paused_manual"
    PAUSED_SILENCE = "paused_silence"
    STOPPED = "stopped"

    @property
    def is_active(self) -> bool:
        return self in (SessionState.RUNNING, SessionState.PAUSED_MANUAL, SessionState.PAUSED_SILENCE)

    @property
    def is_paused(self) -> bool:
        return self in (SessionState.PAUSED_MANUAL, SessionState.PAUSED_SILENCE)


class PauseReason(Enum):
    """Why a session is paused."""
    MANUAL = "manual"
    SILENCE = "silence"


@dataclass
class SessionSettings:
    """Tunables for a transcription session."""
    sample_rate: int = 16000
    channels: int = 1
    chunk_seconds: float = 8
    silence_threshold_chunks: int = 4
    max_concurrent_requests: int = 4
    stop_grace_seconds: float = 5.0
    cost_per_minute: float = 0.006
    inactivity_timeout_minutes: Optional[float] = 30
    warning_interval_minutes: Optional[float] = 60
    monitor_interval_seconds: float = 30.0
    system_messages: bool = True


@dataclass(frozen=True)
class SessionStatus:
    """Immutable snapshot of a session's state and counters."""
    state: SessionState
    is_running: bool
    start_time: Optional[datetime]
    chunks_processed: int
    last_transcript_time: Optional[datetime]
    errors: int
    consecutive_silent_chunks: int
    silent_chunks_skipped: int
    is_paused: bool
    pause_reason: Optional[PauseReason]
    warning: Optional[str]
    last_interaction_time: Optional[datetime] = None
    estimated_cost: float = 0.0
    cost_saved: float = 0.0
