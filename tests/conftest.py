"""Pytest configuration and fixtures for LiveNotes tests."""

import asyncio
import pytest
import tempfile
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from unittest.mock import Mock, patch
import numpy as np

from livenotes.audio.base import AbstractAudioCapture
from livenotes.config import OrchestrationSettings
from livenotes.errors import CaptureStartFailure, TranscriptionFailure, SummarizationFailure
from livenotes.models.transcription import TranscriptionResult
from livenotes.services.session_controller import SessionController
from livenotes.summarization.base import AbstractSummarizationGateway
from livenotes.transcription.base import AbstractTranscriptionGateway


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "slow: tests that wait on real timers or threads")


class FakeTranscriptionGateway(AbstractTranscriptionGateway):
    """Transcribes a payload to its UTF-8 text, with per-payload latency, gates and failures."""

    def __init__(self,
                 delays: Optional[Dict[bytes, float]] = None,
                 failures: Optional[Set[bytes]] = None,
                 malformed: Optional[Set[bytes]] = None):
        super().__init__()
        self.delays = delays or {}
        self.failures = failures or set()
        self.malformed = malformed or set()
        self.gates: Dict[bytes, asyncio.Event] = {}
        self.calls: List[bytes] = []
        self.completed: List[bytes] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def hold(self, payload: bytes) -> asyncio.Event:
        """Block the call for ``payload`` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[payload] = gate
        return gate

    async def transcribe(self, chunk_id: str, payload: bytes) -> TranscriptionResult:
        self.calls.append(payload)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if payload in self.gates:
                await self.gates[payload].wait()
            await asyncio.sleep(self.delays.get(payload, 0.0))
            if payload in self.failures:
                raise TranscriptionFailure(f"rejected {chunk_id}")
            if payload in self.malformed:
                return None
            return TranscriptionResult(
                text=payload.decode("utf-8"),
                confidence=0.99,
                processing_time=0.0,
                timestamp=datetime.now(),
                service="fake",
                chunk_id=chunk_id,
            )
        finally:
            self.in_flight -= 1
            self.completed.append(payload)

    def initialize(self) -> bool:
        return True

    def cleanup(self) -> None:
        pass


class FakeSummarizationGateway(AbstractSummarizationGateway):
    """Returns numbered notes and records each transcript snapshot with the loop time it was sent."""

    def __init__(self, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Tuple[float, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    @property
    def snapshots(self) -> List[str]:
        return [transcript for _, transcript in self.calls]

    async def summarize(self, transcript: str) -> str:
        self.calls.append((asyncio.get_running_loop().time(), transcript))
        call_number = len(self.calls)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            if self.fail:
                raise SummarizationFailure("summarizer rejected the request")
            return f"notes #{call_number}: {transcript}"
        finally:
            self.in_flight -= 1


class FakeCapture(AbstractAudioCapture):
    """Capture collaborator driven by the test; reports stop on the next loop iteration."""

    def __init__(self, fail_start: bool = False):
        self.fail_start = fail_start
        self.is_recording = False
        self.start_count = 0
        self.stop_count = 0
        self._on_chunk = None
        self._on_stopped = None

    def start(self, on_chunk_available, on_capture_stopped) -> None:
        self.start_count += 1
        if self.fail_start:
            raise CaptureStartFailure("microphone permission denied")
        self._on_chunk = on_chunk_available
        self._on_stopped = on_capture_stopped
        self.is_recording = True

    def emit(self, payload: bytes) -> None:
        self._on_chunk(payload)

    def stop(self) -> None:
        self.stop_count += 1
        self.is_recording = False
        asyncio.get_running_loop().call_soon(self._on_stopped)


FAST_SETTINGS = OrchestrationSettings(
    min_transcript_length=10,
    debounce_seconds=0.05,
    finalization_poll_seconds=0.01,
)


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def eventually():
    return wait_until


@pytest.fixture
def fast_settings():
    return FAST_SETTINGS


@pytest.fixture
def make_controller():
    """Factory for a controller wired to fresh fakes."""
    def factory(settings: Optional[OrchestrationSettings] = None,
                transcription: Optional[FakeTranscriptionGateway] = None,
                summarization: Optional[FakeSummarizationGateway] = None,
                capture: Optional[FakeCapture] = None,
                publisher=None) -> SessionController:
        return SessionController(
            transcription_gateway=transcription or FakeTranscriptionGateway(),
            summarization_gateway=summarization or FakeSummarizationGateway(),
            capture=capture or FakeCapture(),
            settings=settings or FAST_SETTINGS,
            publisher=publisher,
        )
    return factory


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (440 Hz sine)
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
