"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: Optional[float] = None) -> str:
    """Format a unix timestamp (default: now) as 'YYYY-MM-DD HH:MM:SS' UTC."""
    if moment is None:
        dt = datetime.now(timezone.utc)
    else:
        dt = datetime.fromtimestamp(moment, tz=timezone.utc)
    return dt.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class TranscriptEntry:
    """One transcribed, non-silent frame."""
    timestamp: str
    text: str
