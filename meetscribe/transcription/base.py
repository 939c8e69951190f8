"""Abstract base class for transcription gateways."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..audio.silence import is_silent_audio, DEFAULT_AMPLITUDE_THRESHOLD
from ..models.audio import AudioFrame
from ..models.transcription import TranscriptEntry

logger = logging.getLogger(__name__)


class AbstractTranscriptionGateway(ABC):
    """Turns one audio frame into an optional transcript entry.

    Frames whose peak amplitude is at or below `silence_threshold` are answered
    locally as silence and never reach the remote service.
    """

    service_name = "abstract"

    def __init__(self, silence_threshold: int = DEFAULT_AMPLITUDE_THRESHOLD):
        self.silence_threshold = silence_threshold

    def is_silent(self, frame: AudioFrame) -> bool:
        return is_silent_audio(frame.data, self.silence_threshold)

    def transcribe(self, frame: AudioFrame) -> Optional[TranscriptEntry]:
        """Transcribe a frame.

        Args:
            frame: Audio frame to transcribe

        Returns:
            TranscriptEntry, or None if the frame is silent

        Raises:
            ServiceError: on auth, network or API failure
        """
        if self.is_silent(frame):
            logger.debug(f"Frame #{frame.sequence_number} is silent, skipping {self.service_name}")
            return None
        return self._transcribe_speech(frame)

    @abstractmethod
    def _transcribe_speech(self, frame: AudioFrame) -> Optional[TranscriptEntry]:
        """Send a non-silent frame to the service."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Verify the service is reachable and credentials are valid.

        Returns:
            True if the gateway is ready, False otherwise
        """
        pass

    def cleanup(self) -> None:
        """Clean up gateway resources."""
        pass
