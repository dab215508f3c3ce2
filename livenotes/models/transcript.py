"""Append-only transcript text."""


class Transcript:
    """Single growing text value built from chunk transcriptions in arrival order."""

    SEPARATOR = " "

    def __init__(self):
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def append(self, segment: str) -> bool:
        """Append a chunk's text, returning False when it contributed nothing."""
        segment = segment.strip()
        if not segment:
            return False
        if self._text:
            self._text = f"{self._text}{self.SEPARATOR}{segment}"
        else:
            self._text = segment
        return True

    def content_length(self) -> int:
        """Length used for the minimum-content threshold (surrounding whitespace ignored)."""
        return len(self._text.strip())

    def clear(self) -> None:
        self._text = ""

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text
