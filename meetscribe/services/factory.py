"""Builds sessions and their collaborators from configuration."""

import logging
from pathlib import Path
from typing import Optional

from ..config import MeetscribeConfig
from ..exceptions import ConfigurationError
from ..models.session import SessionSettings
from ..storage.transcript_sink import TranscriptSink, generate_transcript_filename
from ..transcription.base import AbstractTranscriptionGateway
from .session_engine import AudioSource, TranscriptionSession

logger = logging.getLogger(__name__)

BACKENDS = ("whisper", "google")


def create_settings(config: MeetscribeConfig) -> SessionSettings:
    """Session tunables from the audio, transcription and monitoring sections."""
    return SessionSettings(
        sample_rate=config.get('audio.sample_rate', 16000),
        channels=config.get('audio.channels', 1),
        chunk_seconds=config.get('transcription.chunk_seconds', 8),
        silence_threshold_chunks=config.get('transcription.silence_threshold_chunks', 4),
        max_concurrent_requests=config.get('transcription.max_concurrent_requests', 4),
        stop_grace_seconds=config.get('transcription.stop_grace_seconds', 5.0),
        cost_per_minute=config.get('transcription.cost_per_minute', 0.006),
        inactivity_timeout_minutes=config.get('monitoring.inactivity_timeout_minutes', 30),
        warning_interval_minutes=config.get('monitoring.warning_interval_minutes', 60),
        monitor_interval_seconds=config.get('monitoring.check_interval_seconds', 30.0),
        system_messages=config.get('transcription.system_messages', True),
    )


def create_gateway(config: MeetscribeConfig, backend: Optional[str] = None) -> AbstractTranscriptionGateway:
    """Create the configured transcription gateway.

    Args:
        config: Application configuration
        backend: 'whisper' or 'google'; overrides transcription.backend

    Raises:
        ConfigurationError: for an unknown backend or missing credentials
    """
    backend = (backend or config.get('transcription.backend', 'whisper')).lower()
    silence_threshold = config.get('transcription.silence_amplitude_threshold', 100)
    request_timeout = config.get('transcription.request_timeout_seconds', 30.0)
    logger.info(f"Creating {backend} transcription gateway")

    if backend == "whisper":
        from ..transcription.whisper_backend import WhisperGateway
        return WhisperGateway(
            api_key=config.get_openai_api_key(),
            model=config.get('openai.model', 'whisper-1'),
            base_url=config.get('openai.base_url', 'https://api.openai.com/v1'),
            request_timeout=request_timeout,
            silence_threshold=silence_threshold,
        )

    if backend == "google":
        from ..transcription.google_backend import GoogleSpeechGateway
        return GoogleSpeechGateway(
            credentials_path=config.get_google_credentials_path(),
            sample_rate=config.get('audio.sample_rate', 16000),
            channels=config.get('audio.channels', 1),
            language=config.get('google_cloud.language', 'en-US'),
            use_enhanced=config.get('google_cloud.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
            model=config.get('google_cloud.model', 'latest_long'),
            request_timeout=request_timeout,
            silence_threshold=silence_threshold,
        )

    raise ConfigurationError(f"Unknown transcription backend '{backend}' (expected one of {', '.join(BACKENDS)})")


def create_audio_source(config: MeetscribeConfig, wav_file: Optional[str] = None) -> AudioSource:
    """Create the byte source: a WAV file replay or live pyaudio capture."""
    chunk_size = config.get('audio.chunk_size', 1024)
    if wav_file:
        from ..audio.file_source import WavFileSource
        source = WavFileSource(wav_file, chunk_size=chunk_size)
        if (source.sample_rate != config.get('audio.sample_rate', 16000)
                or source.channels != config.get('audio.channels', 1)):
            logger.info(f"Using WAV format {source.sample_rate}Hz/{source.channels}ch instead of configured audio format")
            config.set('audio.sample_rate', source.sample_rate)
            config.set('audio.channels', source.channels)
        return source

    # pyaudio is only needed for live capture
    from ..audio.capture import AudioCapture
    return AudioCapture(
        sample_rate=config.get('audio.sample_rate', 16000),
        chunk_size=chunk_size,
        channels=config.get('audio.channels', 1),
        device_name=config.get('audio.device_name'),
    )


def create_session(config: MeetscribeConfig,
                   outfile: Optional[str] = None,
                   backend: Optional[str] = None,
                   wav_file: Optional[str] = None) -> TranscriptionSession:
    """Wire source, gateway and sink into a new session.

    Args:
        config: Application configuration
        outfile: Transcript path; defaults to a timestamped file in the transcripts directory
        backend: Gateway override
        wav_file: Replay this WAV file instead of capturing live audio
    """
    source = create_audio_source(config, wav_file)
    gateway = create_gateway(config, backend)

    if outfile is None:
        outfile = str(Path(config.get_transcripts_directory()) / generate_transcript_filename())
    sink = TranscriptSink(outfile)

    return TranscriptionSession(source, gateway, sink, settings=create_settings(config))
