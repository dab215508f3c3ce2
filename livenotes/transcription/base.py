"""Abstract base class for speech-to-text gateways."""

from abc import ABC, abstractmethod
import logging

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractTranscriptionGateway(ABC):
    """One remote operation: audio chunk in, text out."""

    def __init__(self, language: str = "en-US"):
        """Initialize gateway with language preference."""
        self.language = language

    @abstractmethod
    async def transcribe(self, chunk_id: str, payload: bytes) -> TranscriptionResult:
        """Transcribe one audio chunk.

        Args:
            chunk_id: Identifier used for logging and result tagging
            payload: Encoded audio bytes of a single chunk

        Returns:
            TranscriptionResult whose text may be empty for silence

        Raises:
            TranscriptionFailure: If the remote call is rejected or the result is malformed
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize gateway resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up gateway resources."""
        pass
