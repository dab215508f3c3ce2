"""OpenAI Whisper transcription gateway for sending audio chunks over HTTP."""

import io
import time
import wave
import logging
from datetime import datetime

import aiohttp

from .base import AbstractTranscriptionGateway
from ..errors import TranscriptionFailure
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


def pcm_to_wav(payload: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(payload)
    return buffer.getvalue()


class WhisperTranscriptionGateway(AbstractTranscriptionGateway):
    """Transcribes chunks with the OpenAI audio transcription endpoint."""

    def __init__(self, api_key: str, model: str = "whisper-1", sample_rate: int = 16000,
                 channels: int = 1, language: str = "en-US", request_timeout: float = 60.0):
        """Initialize Whisper gateway.

        Args:
            api_key: OpenAI API key
            model: Transcription model name
            sample_rate: Sample rate of the PCM payloads in Hz
            channels: Channel count of the PCM payloads
            language: Language code; only the primary subtag is sent
            request_timeout: Total request timeout in seconds
        """
        super().__init__(language)
        self.api_key = api_key
        self.model = model
        self.sample_rate = sample_rate
        self.channels = channels
        self.request_timeout = request_timeout
        self.base_url = "https://api.openai.com/v1/audio/transcriptions"
        self.service_name = "OpenAI Whisper"

        logger.info(f"WhisperTranscriptionGateway initialized with model: {model}")

    def initialize(self) -> bool:
        if not self.api_key:
            logger.error("OpenAI API key is empty")
            return False
        return True

    async def transcribe(self, chunk_id: str, payload: bytes) -> TranscriptionResult:
        """Upload one chunk and return its text.

        Raises:
            TranscriptionFailure: If the API call fails or the response has no text field
        """
        start_time = time.time()
        form = aiohttp.FormData()
        form.add_field("model", self.model)
        form.add_field("language", self.language.split("-")[0])
        form.add_field("response_format", "json")
        form.add_field(
            "file",
            pcm_to_wav(payload, self.sample_rate, self.channels),
            filename=f"{chunk_id}.wav",
            content_type="audio/wav",
        )
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug(f"Uploading chunk {chunk_id} ({len(payload)} bytes) to {self.model}")
        try:
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise TranscriptionFailure(
                            f"Whisper API error (chunk={chunk_id}): {response.status} - {error_text}")
                    result = await response.json()
        except aiohttp.ClientError as e:
            logger.error("Whisper request failed for chunk %s: %s", chunk_id, e)
            raise TranscriptionFailure(f"Whisper request failed (chunk={chunk_id}): {e}") from e

        text = result.get("text") if isinstance(result, dict) else None
        if not isinstance(text, str):
            raise TranscriptionFailure(f"Whisper response for chunk {chunk_id} has no text field")

        return TranscriptionResult(
            text=text.strip(),
            confidence=1.0,
            processing_time=time.time() - start_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
            chunk_id=chunk_id,
        )

    def cleanup(self) -> None:
        pass
