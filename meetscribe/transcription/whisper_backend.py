"""OpenAI Whisper transcription gateway over the HTTP API."""

import asyncio
import logging
from typing import Optional

import aiohttp

from .base import AbstractTranscriptionGateway
from ..exceptions import ServiceError
from ..models.audio import AudioFrame
from ..models.transcription import TranscriptEntry, format_timestamp

logger = logging.getLogger(__name__)


class WhisperGateway(AbstractTranscriptionGateway):
    """Sends WAV-wrapped frames to the OpenAI audio transcription endpoint."""

    service_name = "OpenAI Whisper"

    def __init__(self,
                 api_key: str,
                 model: str = "whisper-1",
                 base_url: str = "https://api.openai.com/v1",
                 request_timeout: float = 30.0,
                 silence_threshold: int = 100):
        """Initialize Whisper gateway.

        Args:
            api_key: OpenAI API key
            model: Transcription model to use
            base_url: API base URL
            request_timeout: Total timeout for one HTTP request in seconds
            silence_threshold: Peak amplitude at or below which a frame is silent
        """
        super().__init__(silence_threshold)
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

        logger.info(f"WhisperGateway initialized with model: {model}")

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _post_transcription(self, wav_bytes: bytes) -> str:
        form = aiohttp.FormData()
        form.add_field("model", self.model)
        form.add_field("file", wav_bytes, filename="chunk.wav", content_type="audio/wav")

        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(f"{self.base_url}/audio/transcriptions",
                                    headers=self._headers(), data=form) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ServiceError(f"Transcription API error: {response.status} - {error_text}")
                result = await response.json()
                return result.get("text") or ""

    async def _list_models(self) -> int:
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(f"{self.base_url}/models", headers=self._headers()) as response:
                return response.status

    def _transcribe_speech(self, frame: AudioFrame) -> Optional[TranscriptEntry]:
        try:
            text = asyncio.run(self._post_transcription(frame.to_wav()))
        except ServiceError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ServiceError(f"Transcription API error: {e}") from e

        text = text.strip()
        if not text:
            return None
        logger.debug(f"Frame #{frame.sequence_number} transcribed: '{text}'")
        return TranscriptEntry(timestamp=format_timestamp(frame.captured_at), text=text)

    def health_check(self) -> bool:
        """Verify the API key by listing models (a lightweight call)."""
        try:
            status = asyncio.run(self._list_models())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"OpenAI health check failed: {e}")
            return False
        if status != 200:
            logger.error(f"OpenAI health check returned HTTP {status}")
            return False
        return True
