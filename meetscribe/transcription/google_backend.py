"""Google Speech-to-Text transcription gateway."""

import time
import logging
from typing import Optional

from .base import AbstractTranscriptionGateway
from ..exceptions import ServiceError
from ..models.audio import AudioFrame
from ..models.transcription import TranscriptEntry, format_timestamp

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleSpeechGateway(AbstractTranscriptionGateway):
    """Google Speech-to-Text API gateway."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 channels: int = 1,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 model: str = "latest_long",
                 request_timeout: float = 30.0,
                 silence_threshold: int = 100):
        """Initialize Google Speech gateway.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the frames that will be sent
            channels: Channel count of the frames that will be sent
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            model: Recognition model name
            request_timeout: Per-request deadline in seconds
            silence_threshold: Peak amplitude at or below which a frame is silent
        """
        super().__init__(silence_threshold)
        if not credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.credentials_path = credentials_path
        self.language = language
        self.request_timeout = request_timeout
        self.client = None
        self.project_id = None
        self.config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=language,
            use_enhanced=use_enhanced,
            enable_automatic_punctuation=enable_automatic_punctuation,
            model=model,
        )

    def health_check(self) -> bool:
        """Load service account credentials and build the Speech client."""
        try:
            logger.info(f"Loading Google credentials from: {self.credentials_path}")
            credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
            self.client = speech.SpeechClient(credentials=credentials)
            self.project_id = credentials.project_id
        except Exception as e:
            logger.error(f"Google Speech health check failed: {e}")
            return False

        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def _transcribe_speech(self, frame: AudioFrame) -> Optional[TranscriptEntry]:
        if self.client is None:
            raise ServiceError("Google Speech client is not initialized; run health_check() first")

        start_time = time.time()
        chunk_id = f"frame_{frame.sequence_number}"
        logger.debug(f"Chunk ID: {chunk_id}; Audio size: {len(frame.data)} bytes; Language: {self.language}")

        audio = speech.RecognitionAudio(content=frame.data)
        try:
            response = self.client.recognize(config=self.config, audio=audio, timeout=self.request_timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded for chunk %s", chunk_id)
            raise ServiceError(f"Google Speech recognize timeout (chunk={chunk_id}): {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable for chunk %s", chunk_id)
            raise ServiceError(f"Google Speech service unavailable (chunk={chunk_id}): {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error for chunk %s: %s", chunk_id, e)
            raise ServiceError(f"Google Speech API error (chunk={chunk_id}): {e}") from e
        processing_time = time.time() - start_time

        # Long frames may come back split across several results
        parts = [result.alternatives[0].transcript.strip()
                 for result in response.results if result.alternatives]
        text = " ".join(part for part in parts if part)

        if not text:
            logger.debug(f"--- NO SPEECH DETECTED ({chunk_id}, {processing_time:.3f}s) ---")
            return None

        logger.debug(f"✅ TRANSCRIPTION SUCCESS: '{text}' (processing_time: {processing_time:.3f}s)")
        return TranscriptEntry(timestamp=format_timestamp(frame.captured_at), text=text)
