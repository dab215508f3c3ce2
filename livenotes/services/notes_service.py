"""Notes service: high-level API that wires configuration into a session controller."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..audio.base import AbstractAudioCapture
from ..audio.capture import MicrophoneCapture
from ..config import LiveNotesConfig, OrchestrationSettings
from ..models.session import SessionSnapshot
from ..summarization.base import AbstractSummarizationGateway
from ..summarization.chatgpt_gateway import ChatGPTSummarizationGateway
from ..transcription.base import AbstractTranscriptionGateway
from ..transcription.google_backend import GoogleSpeechGateway
from ..transcription.whisper_gateway import WhisperTranscriptionGateway
from .session_controller import SessionController
from .session_publisher import SessionPublisher

logger = logging.getLogger(__name__)

DEFAULT_NOTES_FILENAME = "recruiter_notes.txt"


def create_transcription_gateway(config: LiveNotesConfig) -> AbstractTranscriptionGateway:
    """Create and initialize the configured speech-to-text gateway."""
    backend = config.get('transcription.backend', 'google')
    sample_rate = config.get('audio.sample_rate', 16000)
    language = config.get('transcription.language', 'en-US')

    if backend == 'google':
        logger.info("Initializing Google Speech gateway...")
        gateway = GoogleSpeechGateway(
            credentials_path=config.get_google_credentials_path(),
            sample_rate=sample_rate,
            language=config.get('google_cloud.language', language),
            use_enhanced=config.get('google_cloud.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        )
    elif backend == 'whisper':
        logger.info("Initializing Whisper gateway...")
        gateway = WhisperTranscriptionGateway(
            api_key=config.get_openai_api_key(),
            model=config.get('openai.transcription_model', 'whisper-1'),
            sample_rate=sample_rate,
            channels=config.get('audio.channels', 1),
            language=language,
        )
    else:
        raise ValueError(f"Unknown transcription backend: {backend}")

    if not gateway.initialize():
        raise RuntimeError(f"{backend} transcription gateway failed to initialize")
    return gateway


def create_summarization_gateway(config: LiveNotesConfig,
                                 settings: OrchestrationSettings) -> AbstractSummarizationGateway:
    return ChatGPTSummarizationGateway(
        api_key=config.get_openai_api_key(),
        model=config.get('openai.summary_model', 'gpt-4o-mini'),
        temperature=config.get('openai.temperature', 0.3),
        max_tokens=config.get('openai.max_tokens', 2000),
        placeholder=settings.placeholder_notes,
    )


def create_capture(config: LiveNotesConfig) -> MicrophoneCapture:
    return MicrophoneCapture(
        sample_rate=config.get('audio.sample_rate', 16000),
        chunk_size=config.get('audio.chunk_size', 1024),
        channels=config.get('audio.channels', 1),
        chunk_duration_seconds=config.get('audio.chunk_duration_seconds', 10.0),
    )


class NotesService:
    """High-level service the surrounding application talks to.

    Exposes the session toggle, a read-only snapshot, and notes export. Must be
    created and used on the event loop that drives the session.
    """

    def __init__(self,
                 config: LiveNotesConfig,
                 transcription_gateway: Optional[AbstractTranscriptionGateway] = None,
                 summarization_gateway: Optional[AbstractSummarizationGateway] = None,
                 capture: Optional[AbstractAudioCapture] = None,
                 publisher: Optional[SessionPublisher] = None):
        """Initialize notes service.

        Args:
            config: Application configuration
            transcription_gateway: Overrides the configured speech-to-text gateway
            summarization_gateway: Overrides the configured notes gateway
            capture: Overrides the microphone capture
            publisher: Snapshot publisher; a default one is created if omitted
        """
        self.config = config
        self.settings = OrchestrationSettings.from_config(config)
        self.transcription_gateway = transcription_gateway or create_transcription_gateway(config)
        self.summarization_gateway = summarization_gateway or create_summarization_gateway(config, self.settings)
        self.capture = capture or create_capture(config)
        self.publisher = publisher or SessionPublisher(config.get('session.topic', 'session.snapshot'))

        self.controller = SessionController(
            transcription_gateway=self.transcription_gateway,
            summarization_gateway=self.summarization_gateway,
            capture=self.capture,
            settings=self.settings,
            publisher=self.publisher,
            sample_rate=config.get('audio.sample_rate', 16000),
            channels=config.get('audio.channels', 1),
        )

        logger.info("NotesService initialized")

    def toggle_session(self) -> SessionSnapshot:
        return self.controller.toggle_session()

    def snapshot(self) -> SessionSnapshot:
        return self.controller.snapshot()

    async def wait_until_settled(self, timeout: Optional[float] = None) -> SessionSnapshot:
        return await self.controller.wait_until_settled(timeout)

    def has_exportable_notes(self) -> bool:
        notes = self.controller.export_notes()
        return bool(notes.strip()) and notes != self.settings.placeholder_notes

    def export_notes(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the current notes to a UTF-8 text file.

        Args:
            path: Target file; defaults to export.notes_filename inside export.directory

        Returns:
            Path of the written file

        Raises:
            ValueError: If there are no notes to export yet
        """
        if not self.has_exportable_notes():
            raise ValueError("No summary available to export")

        if path is None:
            directory = Path(self.config.get('export.directory', '.'))
            path = directory / self.config.get('export.notes_filename', DEFAULT_NOTES_FILENAME)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.controller.export_notes())

        logger.info(f"Exported notes to {path}")
        return path

    def cleanup(self) -> None:
        """Release gateway resources and stop any active capture."""
        if self.controller.is_capturing:
            self.controller.stop_session()
        self.transcription_gateway.cleanup()
        logger.info("NotesService cleaned up")
