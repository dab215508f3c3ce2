"""Transcription module for LiveNotes."""

from .base import AbstractTranscriptionGateway
from ..models.transcription import TranscriptionResult
from .google_backend import GoogleSpeechGateway
from .whisper_gateway import WhisperTranscriptionGateway
from .sequencer import ChunkQueue, TranscriptionSequencer

__all__ = [
    "AbstractTranscriptionGateway",
    "TranscriptionResult",
    "GoogleSpeechGateway",
    "WhisperTranscriptionGateway",
    "ChunkQueue",
    "TranscriptionSequencer",
]
