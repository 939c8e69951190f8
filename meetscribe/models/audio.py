"""Audio-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class CaptureStats:
    """Audio capture statistics."""
    is_capturing: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    channels: int
    total_chunks: int
    total_bytes: int
    device_name: Optional[str] = None


@dataclass(frozen=True)
class AudioFrame:
    """A fixed-duration slice of 16-bit PCM audio, ready for transcription."""
    data: bytes
    sample_rate: int
    channels: int
    duration_seconds: float
    sequence_number: int
    captured_at: float  # Unix timestamp when the frame was completed

    def to_wav(self) -> bytes:
        """Return the frame wrapped in a WAV container."""
        from ..audio.wav import pcm_to_wav
        return pcm_to_wav(self.data, self.sample_rate, self.channels)
