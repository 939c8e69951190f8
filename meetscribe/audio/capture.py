"""Audio capture module: continuous microphone/loopback capture pushing raw PCM bytes."""

import pyaudio
import logging
from threading import Thread, Event, current_thread
from typing import Optional, Callable, List, Dict, Any
from datetime import datetime

from ..exceptions import CaptureError
from ..models.audio import CaptureStats

logger = logging.getLogger(__name__)


def list_input_devices() -> List[Dict[str, Any]]:
    """List audio input devices as dicts with index, name and max_input_channels."""
    pa = pyaudio.PyAudio()
    try:
        devices = []
        for index in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(index)
            if info.get('maxInputChannels', 0) > 0:
                devices.append({
                    "index": index,
                    "name": info.get('name', ''),
                    "max_input_channels": info.get('maxInputChannels', 0),
                })
        return devices
    finally:
        pa.terminate()


class AudioCapture:
    """Continuous audio capture that pushes raw 16-bit PCM chunks to a callback."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        device_name: Optional[str] = None,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            sample_rate: Audio sample rate
            chunk_size: Size of each read in samples
            channels: Number of audio channels (1 for mono)
            device_name: Substring of the input device name (e.g. 'BlackHole');
                None uses the default input device
            format: Audio format (16-bit signed int)
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.device_name = device_name
        self.format = format

        self.on_data: Optional[Callable[[bytes], None]] = None
        self.on_error: Optional[Callable[[Exception], None]] = None

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.total_bytes = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    def start(self, on_data: Callable[[bytes], None], on_error: Callable[[Exception], None]) -> None:
        """Start continuous capture in a background thread.

        Args:
            on_data: Receives every raw PCM chunk read from the device
            on_error: Receives a CaptureError if the stream fails
        """
        if self.is_recording:
            logger.warning("Capture already in progress")
            return

        logger.info("Starting audio capture")
        self.on_data = on_data
        self.on_error = on_error
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.total_bytes = 0

        # Open the stream here so device errors surface to the caller
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = self.__open_audio_stream()
        except Exception as e:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            raise CaptureError(f"Could not open audio input: {e}") from e

        self.recording_thread = Thread(target=self._record_continuously, args=(stream,), daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()

    def stop(self) -> None:
        """Stop capturing and clean up resources."""
        if not self.is_recording:
            logger.debug("No capture in progress")
            return

        logger.info("Stopping audio capture")
        self.stop_event.set()

        if (self.recording_thread and self.recording_thread.is_alive()
                and self.recording_thread is not current_thread()):
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Capture stopped. Total chunks: {self.total_chunks}")

    def _resolve_device_index(self) -> Optional[int]:
        """Find the input device whose name contains `device_name`, else the default."""
        if not self.device_name:
            return None
        wanted = self.device_name.lower()
        fallback = None
        for index in range(self.pyaudio_instance.get_device_count()):
            info = self.pyaudio_instance.get_device_info_by_index(index)
            if info.get('maxInputChannels', 0) <= 0:
                continue
            if fallback is None:
                fallback = index
            if wanted in str(info.get('name', '')).lower():
                logger.info(f"Using input device [{index}] {info.get('name')}")
                return index
        logger.warning(f"No input device matching '{self.device_name}', "
                       f"falling back to device {fallback}")
        return fallback

    def __open_audio_stream(self) -> pyaudio.Stream:
        device_index = self._resolve_device_index()
        stream = self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")
        return stream

    def __read_audio_chunk(self, stream: pyaudio.Stream) -> bytes:
        audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        self.total_bytes += len(audio_chunk)
        return audio_chunk

    def _record_continuously(self, stream: pyaudio.Stream) -> None:
        """Internal method: continuous capture loop in background thread."""
        try:
            while not self.stop_event.is_set():
                audio_chunk = self.__read_audio_chunk(stream)
                self.on_data(audio_chunk)
        except Exception as e:
            logger.error(f"Audio capture failed: {e}")
            if self.on_error:
                self.on_error(CaptureError(f"Audio capture failed: {e}"))
        finally:
            stream.stop_stream()
            stream.close()
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
            self.is_recording = False

    def get_capture_stats(self) -> CaptureStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return CaptureStats(
            is_capturing=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            channels=self.channels,
            total_chunks=self.total_chunks,
            total_bytes=self.total_bytes,
            device_name=self.device_name,
        )
