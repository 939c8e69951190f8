"""Markdown transcript storage."""

import logging
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Union

from ..models.transcription import TranscriptEntry, format_timestamp

logger = logging.getLogger(__name__)

TRANSCRIPT_HEADER = "# Meeting Transcript\n\n"


def generate_transcript_filename(moment: datetime = None) -> str:
    """Build a per-session transcript file name.

    Returns:
        File name like 'transcript_2025-01-15_14-30-05-123.md'
    """
    moment = moment or datetime.now()
    stamp = moment.strftime("%Y-%m-%d_%H-%M-%S")
    return f"transcript_{stamp}-{moment.microsecond // 1000:03d}.md"


class TranscriptSink:
    """Append-only Markdown transcript file.

    Each entry is written and flushed before `append` returns. The file layout is:

        # Meeting Transcript

        **2025-01-15 14:30:05**  Hello everyone.
    """

    def __init__(self, file_path: Union[str, Path]):
        """Initialize transcript sink.

        Args:
            file_path: Path of the Markdown transcript file
        """
        self.file_path = Path(file_path)
        self._lock = Lock()
        logger.info(f"TranscriptSink initialized with file: {self.file_path}")

    def initialize(self) -> None:
        """Create the transcript with its header if it does not exist yet."""
        with self._lock:
            self._initialize_locked()

    def _initialize_locked(self) -> None:
        if self.file_path.exists():
            logger.debug(f"Transcript already exists: {self.file_path}")
            return
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.file_path, 'w', encoding='utf-8') as f:
            f.write(TRANSCRIPT_HEADER)
        logger.info(f"Created transcript file: {self.file_path}")

    def append(self, entry: TranscriptEntry) -> None:
        """Append one entry to the transcript.

        Args:
            entry: Transcript entry to persist

        Raises:
            OSError: if the file cannot be written
        """
        self._write(f"\n**{entry.timestamp}**  {entry.text}\n")
        logger.debug(f"Appended transcript entry at {entry.timestamp}")

    def append_system_message(self, message: str) -> None:
        """Append a system marker (pause, resume and similar) to the transcript."""
        timestamp = format_timestamp()
        self._write(f"\n---\n\n**{timestamp}** _[SYSTEM]_ {message}\n\n---\n")
        logger.info(f"System message written to transcript: {message.splitlines()[0] if message else ''}")

    def _write(self, text: str) -> None:
        with self._lock:
            if not self.file_path.exists():
                self._initialize_locked()
            with open(self.file_path, 'a', encoding='utf-8') as f:
                f.write(text)
                f.flush()

    def get_content(self) -> str:
        """Return the whole transcript, or an empty string if there is none."""
        with self._lock:
            if not self.file_path.exists():
                return ""
            return self.file_path.read_text(encoding='utf-8')

    def clear(self) -> None:
        """Delete the transcript content and start over with a bare header."""
        with self._lock:
            if self.file_path.exists():
                self.file_path.unlink()
            self._initialize_locked()
        logger.info(f"Transcript cleared: {self.file_path}")

    def delete(self) -> None:
        """Remove the transcript file."""
        with self._lock:
            if self.file_path.exists():
                self.file_path.unlink()
                logger.info(f"Transcript deleted: {self.file_path}")

    def get_file_path(self) -> str:
        return str(self.file_path.absolute())
