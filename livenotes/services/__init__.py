"""Services layer for LiveNotes application logic."""

from .session_controller import SessionController, status_message
from .session_publisher import SessionPublisher
from .notes_service import NotesService

__all__ = [
    "SessionController",
    "SessionPublisher",
    "NotesService",
    "status_message",
]
