"""Frame assembler that slices a raw PCM byte stream into fixed-duration frames."""

import time
import logging
import threading
from typing import Callable, List

from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)


class FrameAssembler:
    """Accumulates pushed PCM bytes and emits exact-size frames in arrival order."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1, frame_duration_seconds: float = 8):
        """Initialize frame assembler.

        Args:
            sample_rate: Audio sample rate
            channels: Number of audio channels
            frame_duration_seconds: Duration of each emitted frame
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.frame_duration_seconds = frame_duration_seconds
        self.bytes_per_sample = 2  # 16-bit audio

        # Whole sample frames only, so a frame never splits a sample
        samples_per_frame = int(sample_rate * frame_duration_seconds)
        self.frame_size_bytes = samples_per_frame * channels * self.bytes_per_sample
        if self.frame_size_bytes <= 0:
            raise ValueError(
                f"Frame size must be positive (sample_rate={sample_rate}, "
                f"channels={channels}, duration={frame_duration_seconds})")

        self.buffer = bytearray()
        self.lock = threading.Lock()
        self.frames_emitted = 0

        logger.info(f"FrameAssembler initialized: {frame_duration_seconds}s frames, "
                   f"{self.frame_size_bytes} bytes per frame")

    def append(self, audio_data: bytes, consumer: Callable[[AudioFrame], None]) -> int:
        """Add bytes to the buffer and hand every completed frame to `consumer`.

        Args:
            audio_data: Raw PCM bytes of any length
            consumer: Called once per complete frame, in arrival order

        Returns:
            Number of frames emitted by this call
        """
        if not audio_data:
            return 0

        frames: List[AudioFrame] = []
        with self.lock:
            self.buffer.extend(audio_data)

            offset = 0
            while len(self.buffer) - offset >= self.frame_size_bytes:
                payload = bytes(self.buffer[offset:offset + self.frame_size_bytes])
                offset += self.frame_size_bytes
                self.frames_emitted += 1
                frames.append(AudioFrame(
                    data=payload,
                    sample_rate=self.sample_rate,
                    channels=self.channels,
                    duration_seconds=self.frame_duration_seconds,
                    sequence_number=self.frames_emitted,
                    captured_at=time.time()
                ))
            if offset:
                del self.buffer[:offset]

        # Consumer runs outside the lock
        for frame in frames:
            logger.debug(f"Emitting frame #{frame.sequence_number} ({len(frame.data)} bytes)")
            consumer(frame)
        return len(frames)

    @property
    def pending_bytes(self) -> int:
        """Bytes buffered towards the next frame."""
        with self.lock:
            return len(self.buffer)

    def reset(self) -> int:
        """Discard any partial frame.

        Returns:
            Number of bytes dropped
        """
        with self.lock:
            dropped = len(self.buffer)
            self.buffer.clear()
        if dropped:
            logger.debug(f"Frame assembler reset, dropped {dropped} partial bytes")
        return dropped
