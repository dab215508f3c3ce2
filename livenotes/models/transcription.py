"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class TranscriptionResult:
    """Result of a single chunk transcription."""
    text: str
    confidence: float
    processing_time: float
    timestamp: datetime
    service: str
    language: str = "en-US"
    chunk_id: Optional[str] = None
