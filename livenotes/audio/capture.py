"""Microphone capture that groups PCM frames into timeslice chunks."""

import asyncio
import pyaudio
import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime
import numpy as np

from .base import AbstractAudioCapture
from ..errors import CaptureStartFailure
from ..models.audio import AudioStats

logger = logging.getLogger(__name__)


class MicrophoneCapture(AbstractAudioCapture):
    """Continuous microphone capture delivering one chunk per timeslice."""

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        chunk_duration_seconds: float = 10.0,
        format: int = pyaudio.paInt16,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Frames per device read
            channels: Number of audio channels (1 for mono)
            chunk_duration_seconds: Seconds of audio per delivered chunk
            format: Audio format (16-bit signed int)
            loop: Event loop the callbacks are delivered on; defaults to the
                  loop running when ``start`` is called
        """
        if chunk_duration_seconds <= 0:
            raise ValueError("chunk_duration_seconds must be > 0")
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.chunk_duration_seconds = chunk_duration_seconds
        self.format = format
        self.bytes_per_chunk = int(sample_rate * chunk_duration_seconds) * channels * 2
        self.loop = loop

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_frames = 0
        self.total_chunks = 0
        self.peak_level = 0.0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self._on_chunk: Optional[Callable[[bytes], None]] = None
        self._on_stopped: Optional[Callable[[], None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def start(self,
              on_chunk_available: Callable[[bytes], None],
              on_capture_stopped: Callable[[], None]) -> None:
        """Open the device and start recording in a background thread."""
        if self.is_recording and not self.stop_event.is_set():
            raise CaptureStartFailure("Recording already in progress")

        # A stopped recording may still be blocked in a read or releasing the device
        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                raise CaptureStartFailure("Previous recording has not released the device")

        self._loop = self.loop or asyncio.get_running_loop()
        self._on_chunk = on_chunk_available
        self._on_stopped = on_capture_stopped

        stream = self.__open_audio_stream()

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_frames = 0
        self.total_chunks = 0
        self.peak_level = 0.0

        self.recording_thread = Thread(target=self._record_continuously, args=(stream,), daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()

    def stop(self) -> None:
        """Signal the recording thread to flush its last chunk and release the device."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

    def __open_audio_stream(self) -> pyaudio.Stream:
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except OSError as e:
            logger.error(f"Could not open microphone: {e}")
            self.__release_pyaudio()
            raise CaptureStartFailure(f"Error accessing microphone: {e}") from e
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/read, {self.chunk_duration_seconds}s chunks")
        return stream

    def __release_pyaudio(self) -> None:
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def __read_audio_frame(self, stream: pyaudio.Stream) -> bytes:
        frame = stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_frames += 1
        if frame:
            samples = np.frombuffer(frame, dtype=np.int16)
            if samples.size:
                level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
                self.peak_level = max(self.peak_level, level)
        return frame

    def __deliver(self, callback: Callable, *args) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError as e:
            # Event loop already closed
            logger.warning(f"Dropping capture event: {e}")

    def _record_continuously(self, stream: pyaudio.Stream) -> None:
        """Internal method: continuous recording loop in background thread."""
        buffer = bytearray()
        try:
            while not self.stop_event.is_set():
                buffer.extend(self.__read_audio_frame(stream))
                if len(buffer) >= self.bytes_per_chunk:
                    self.total_chunks += 1
                    self.__deliver(self._on_chunk, bytes(buffer))
                    buffer.clear()
        except OSError as e:
            logger.error(f"Audio device error while recording: {e}")
        finally:
            # Final partial chunk
            if buffer:
                self.total_chunks += 1
                self.__deliver(self._on_chunk, bytes(buffer))
            try:
                stream.stop_stream()
                stream.close()
            finally:
                self.__release_pyaudio()
                self.is_recording = False
                logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")
                self.__deliver(self._on_stopped)

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_frames=self.total_frames,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )
