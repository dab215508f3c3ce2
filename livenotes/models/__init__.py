"""Data models for the LiveNotes application."""

from .audio import AudioChunk, AudioStats
from .session import SessionStatus, SessionSnapshot
from .transcript import Transcript
from .transcription import TranscriptionResult

__all__ = [
    "AudioChunk",
    "AudioStats",
    "SessionStatus",
    "SessionSnapshot",
    "Transcript",
    "TranscriptionResult",
]
