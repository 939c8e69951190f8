"""Replay a WAV file as a push-style PCM byte source."""

import wave
import logging
from threading import Thread, Event, current_thread
from typing import Optional, Callable

from ..exceptions import CaptureError

logger = logging.getLogger(__name__)


class WavFileSource:
    """Pushes the PCM payload of a 16-bit WAV file in fixed-size reads.

    Has the same start/stop interface as AudioCapture, so a recorded meeting
    can be run through a session instead of a live device.
    """

    def __init__(self, file_path: str, chunk_size: int = 1024, realtime: bool = True):
        self.file_path = file_path
        self.chunk_size = chunk_size
        self.realtime = realtime

        with wave.open(file_path, 'rb') as wf:
            if wf.getsampwidth() != 2:
                raise CaptureError(f"{file_path}: only 16-bit PCM WAV files are supported")
            self.sample_rate = wf.getframerate()
            self.channels = wf.getnchannels()

        self.stop_event = Event()
        self.thread: Optional[Thread] = None
        self.finished = Event()

    def start(self, on_data: Callable[[bytes], None], on_error: Callable[[Exception], None]) -> None:
        self.stop_event.clear()
        self.finished.clear()
        self.thread = Thread(target=self._replay, args=(on_data, on_error), daemon=True)
        self.thread.name = "WavReplayThread"
        self.thread.start()
        logger.info(f"Replaying {self.file_path} ({self.sample_rate}Hz, {self.channels} ch)")

    def stop(self) -> None:
        self.stop_event.set()
        if self.thread and self.thread.is_alive() and self.thread is not current_thread():
            self.thread.join(timeout=2.0)

    def _replay(self, on_data: Callable[[bytes], None], on_error: Callable[[Exception], None]) -> None:
        chunk_seconds = self.chunk_size / float(self.sample_rate)
        try:
            with wave.open(self.file_path, 'rb') as wf:
                while not self.stop_event.is_set():
                    data = wf.readframes(self.chunk_size)
                    if not data:
                        break
                    on_data(data)
                    if self.realtime:
                        self.stop_event.wait(chunk_seconds)
        except Exception as e:
            logger.error(f"WAV replay failed: {e}")
            on_error(CaptureError(f"WAV replay failed: {e}"))
        finally:
            self.finished.set()
            logger.info(f"Replay of {self.file_path} finished")

    def wait_finished(self, timeout: Optional[float] = None) -> bool:
        """Block until the whole file has been pushed (or stop() was called)."""
        return self.finished.wait(timeout)
