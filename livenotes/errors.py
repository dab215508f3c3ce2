"""Failure types that end a LiveNotes session."""


class LiveNotesError(RuntimeError):
    """Base class for session-fatal failures."""


class CaptureStartFailure(LiveNotesError):
    """The audio device could not be opened (missing device, permission denied)."""


class TranscriptionFailure(LiveNotesError):
    """The speech-to-text call was rejected or returned a malformed result."""


class SummarizationFailure(LiveNotesError):
    """The summarization call was rejected or returned a malformed result."""
