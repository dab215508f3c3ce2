"""LiveNotes: live audio transcription with continuously refreshed notes."""

__version__ = "0.1.0"
