"""Google Speech-to-Text transcription gateway."""

import asyncio
import time
import logging
from datetime import datetime
from typing import Optional

from .base import AbstractTranscriptionGateway
from ..errors import TranscriptionFailure
from ..models.transcription import TranscriptionResult

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleSpeechGateway(AbstractTranscriptionGateway):
    """Google Speech-to-Text API gateway for LINEAR16 PCM chunks."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 30.0):
        """Initialize Google Speech gateway.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the PCM payloads in Hz
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Per-request deadline in seconds
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"
        self.config = speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=sample_rate,
                language_code=self.language,
                use_enhanced=self.use_enhanced,
                enable_automatic_punctuation=self.enable_automatic_punctuation,
            )

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)

        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

        logger.info("Google Speech-to-Text gateway initialized successfully")
        return True

    async def transcribe(self, chunk_id: str, payload: bytes) -> TranscriptionResult:
        """Transcribe a chunk without blocking the event loop."""
        if self.client is None:
            raise TranscriptionFailure("Google Speech gateway used before initialize()")

        start_time = time.time()
        logger.debug(f"Chunk ID: {chunk_id}; Audio chunk size: {len(payload)} bytes; Language: {self.language}")

        audio = speech.RecognitionAudio(content=payload)
        loop = asyncio.get_running_loop()
        # The gRPC client is blocking; run it on the default executor
        try:
            response = await loop.run_in_executor(
                None,
                lambda: self.client.recognize(config=self.config, audio=audio, timeout=self.request_timeout),
            )
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded for chunk %s", chunk_id)
            raise TranscriptionFailure(f"Google Speech recognize timeout (chunk={chunk_id}): {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable for chunk %s", chunk_id)
            raise TranscriptionFailure(f"Google Speech service unavailable (chunk={chunk_id}): {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error for chunk %s: %s", chunk_id, e)
            raise TranscriptionFailure(f"Google Speech API error (chunk={chunk_id}): {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug(f"--- NO SPEECH DETECTED --- ({chunk_id})")
            return TranscriptionResult(
                text="",
                confidence=0.0,
                processing_time=processing_time,
                timestamp=datetime.now(),
                service=self.service_name,
                language=self.language,
                chunk_id=chunk_id,
            )

        return self.__extract_transcription_result(response, processing_time, chunk_id)

    def __extract_transcription_result(self, response: speech.RecognizeResponse, processing_time: float, chunk_id: str) -> TranscriptionResult:
        # Synchronous recognition splits long audio into consecutive results
        texts = []
        confidences = []
        for recognition_result in response.results:
            if not recognition_result.alternatives:
                continue
            alternative = recognition_result.alternatives[0]
            texts.append(alternative.transcript.strip())
            confidences.append(alternative.confidence)

        text = " ".join(t for t in texts if t)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        logger.debug(f"TRANSCRIPTION SUCCESS: '{text}' "
                     f"(confidence: {confidence:.2f}, processing_time: {processing_time:.3f}s)")
        return TranscriptionResult(
            text=text,
            confidence=confidence,
            processing_time=processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
            chunk_id=chunk_id,
        )

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        if self.client is not None:
            transport = getattr(self.client, "transport", None)
            if transport is not None:
                transport.close()
            self.client = None
