"""Transcription gateways and status publishing for meetscribe."""

from .base import AbstractTranscriptionGateway
from ..models.transcription import TranscriptEntry
from .google_backend import GoogleSpeechGateway
from .whisper_backend import WhisperGateway
from .publisher import StatusPublisher

__all__ = [
    "AbstractTranscriptionGateway",
    "TranscriptEntry",
    "GoogleSpeechGateway",
    "WhisperGateway",
    "StatusPublisher",
]
