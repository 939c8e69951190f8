"""Pytest configuration and fixtures for meetscribe tests."""

import pytest
import tempfile
import logging
import threading
import wave
from pathlib import Path
from typing import Callable, List, Optional
from unittest.mock import Mock, patch
import numpy as np

from meetscribe.exceptions import ServiceError
from meetscribe.models.audio import AudioFrame
from meetscribe.models.session import SessionSettings
from meetscribe.models.transcription import TranscriptEntry, format_timestamp
from meetscribe.services.session_engine import TranscriptionSession
from meetscribe.storage.transcript_sink import TranscriptSink
from meetscribe.transcription.base import AbstractTranscriptionGateway


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Small frames keep the session tests fast: 1000 Hz mono, 1 s per frame
TEST_SAMPLE_RATE = 1000
TEST_FRAME_BYTES = TEST_SAMPLE_RATE * 2


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "integration: multi-component tests")
    config.addinivalue_line("markers", "hardware: tests that need a real audio input device")


def make_pcm(pattern: str = "sine", duration_seconds: float = 1.0, sample_rate: int = 16000,
             amplitude: int = 1000) -> bytes:
    """Generate 16-bit PCM test audio ('sine', 'noise', 'silence' or 'constant')."""
    samples = int(duration_seconds * sample_rate)
    if pattern == "sine":
        t = np.linspace(0, duration_seconds, samples, False)
        data = np.sin(2 * np.pi * 440 * t) * 32767
    elif pattern == "noise":
        data = np.random.uniform(-32767, 32767, samples)
    elif pattern == "silence":
        data = np.zeros(samples)
    elif pattern == "constant":
        data = np.full(samples, amplitude)
    else:
        raise ValueError(f"Unknown pattern: {pattern}")
    return data.astype(np.int16).tobytes()


@pytest.fixture
def audio_test_data():
    """Factory for PCM test audio."""
    return make_pcm


@pytest.fixture
def loud_frame_bytes():
    """One test-sized frame of clearly non-silent audio."""
    return make_pcm("constant", 1.0, TEST_SAMPLE_RATE, amplitude=1000)


@pytest.fixture
def silent_frame_bytes():
    """One test-sized frame of digital silence."""
    return make_pcm("silence", 1.0, TEST_SAMPLE_RATE)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_file(temp_data_dir):
    """Create a 2-second 16 kHz mono WAV file of a sine tone."""
    file_path = Path(temp_data_dir) / "test_audio.wav"
    with wave.open(str(file_path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        wf.writeframes(make_pcm("sine", 2.0, 16000))
    return str(file_path)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    pytest.importorskip("pyaudio")
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio

        # Built-in mic, an output-only device and a loopback input
        devices = [
            {'name': 'MacBook Pro Microphone', 'maxInputChannels': 1},
            {'name': 'Speakers', 'maxInputChannels': 0},
            {'name': 'BlackHole 2ch', 'maxInputChannels': 2},
        ]
        mock_pyaudio_instance.get_device_count.return_value = len(devices)
        mock_pyaudio_instance.get_device_info_by_index.side_effect = lambda index: devices[index]

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


class FakeAudioSource:
    """Byte source driven by the test: push() delivers bytes synchronously."""

    def __init__(self, fail_on_start: bool = False):
        self.fail_on_start = fail_on_start
        self.on_data: Optional[Callable[[bytes], None]] = None
        self.on_error: Optional[Callable[[Exception], None]] = None
        self.started = False
        self.stopped = False
        self.start_calls = 0

    def start(self, on_data, on_error=None) -> None:
        self.start_calls += 1
        if self.fail_on_start:
            raise OSError("device busy")
        self.on_data = on_data
        self.on_error = on_error
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def push(self, data: bytes) -> None:
        self.on_data(data)

    def fail(self, error: Exception) -> None:
        self.on_error(error)


class ScriptedGateway(AbstractTranscriptionGateway):
    """Gateway that returns scripted text for non-silent frames.

    Silent frames are answered by the real amplitude gate. Every non-silent
    frame pops the next script item: a string becomes an entry, an Exception
    is raised, None means the service heard nothing.
    """

    service_name = "Scripted"

    def __init__(self, script: Optional[List] = None, healthy: bool = True, default_text: str = "speech"):
        super().__init__()
        self.script = list(script or [])
        self.healthy = healthy
        self.default_text = default_text
        self.health_checks = 0
        self.calls: List[AudioFrame] = []
        self.cleaned_up = False
        self.block: Optional[threading.Event] = None
        self._lock = threading.Lock()

    def health_check(self) -> bool:
        self.health_checks += 1
        return self.healthy

    def _transcribe_speech(self, frame: AudioFrame) -> Optional[TranscriptEntry]:
        if self.block is not None:
            self.block.wait(5.0)
        with self._lock:
            self.calls.append(frame)
            item = self.script.pop(0) if self.script else self.default_text
        if isinstance(item, Exception):
            raise item
        if item is None:
            return None
        return TranscriptEntry(timestamp=format_timestamp(frame.captured_at), text=item)

    def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture
def fake_source():
    return FakeAudioSource()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def test_settings():
    """Settings with 1-second, 2000-byte frames and a single worker for ordered completions."""
    return SessionSettings(
        sample_rate=TEST_SAMPLE_RATE,
        channels=1,
        chunk_seconds=1,
        silence_threshold_chunks=4,
        max_concurrent_requests=1,
        stop_grace_seconds=2.0,
        inactivity_timeout_minutes=30,
        warning_interval_minutes=60,
        monitor_interval_seconds=3600,
    )


@pytest.fixture
def transcript_path(temp_data_dir):
    return str(Path(temp_data_dir) / "transcript.md")


@pytest.fixture
def make_session(fake_source, gateway, transcript_path, test_settings):
    """Factory for sessions wired to the fake source and scripted gateway."""
    sessions = []

    def factory(source=None, gateway_=None, settings=None, path=None) -> TranscriptionSession:
        session = TranscriptionSession(
            source or fake_source,
            gateway_ or gateway,
            TranscriptSink(path or transcript_path),
            settings=settings or test_settings,
        )
        sessions.append(session)
        return session

    yield factory

    for session in sessions:
        session.stop()


@pytest.fixture
def event_recorder():
    """Collects published events; pass `recorder.listener` to session.subscribe()."""

    class Recorder:
        def __init__(self):
            self.events = []

        def listener(self, event):
            self.events.append(event)

        @property
        def types(self):
            return [event.type for event in self.events]

    return Recorder()


@pytest.fixture
def service_error():
    return ServiceError("503 Service Unavailable")


@pytest.fixture
def source_factory():
    """FakeAudioSource class, for tests that need extra or failing sources."""
    return FakeAudioSource


@pytest.fixture
def gateway_factory():
    """ScriptedGateway class, for tests that need a differently configured gateway."""
    return ScriptedGateway
