"""Session-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionStatus(Enum):
    """Coarse status reported to the surrounding application."""
    IDLE = "idle"
    CAPTURING = "capturing"
    TRANSCRIBING_CHUNK = "transcribing_chunk"
    SUMMARIZING = "summarizing"
    ERROR = "error"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of one session's state."""
    generation: int
    status: SessionStatus
    transcript: str
    notes: str
    last_error: Optional[str] = None
    is_processing_chunk: bool = False  # Only meaningful while CAPTURING
