"""Services layer for meetscribe session logic."""

from .session_engine import TranscriptionSession, generate_session_id
from .monitor import SessionMonitor
from .policy import FrameOutcome, Transition, next_state, validate_command
from .factory import create_session, create_gateway, create_audio_source, create_settings

__all__ = [
    "TranscriptionSession",
    "generate_session_id",
    "SessionMonitor",
    "FrameOutcome",
    "Transition",
    "next_state",
    "validate_command",
    "create_session",
    "create_gateway",
    "create_audio_source",
    "create_settings",
]
