"""Transcript storage for meetscribe."""

from .transcript_sink import TranscriptSink, generate_transcript_filename, TRANSCRIPT_HEADER

__all__ = ['TranscriptSink', 'generate_transcript_filename', 'TRANSCRIPT_HEADER']
