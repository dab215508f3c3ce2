"""Session controller: the state machine that drives capture, transcription and notes.

One controller instance owns every piece of per-session state: the chunk
queue and transcript (through the sequencer), the notes and debounce timer
(through the scheduler), the capture flags, and the last error. All methods
run on a single asyncio event loop.

Each session start bumps ``generation``. Every asynchronous callback carries
the generation it was issued under and is ignored once a newer session has
started, so late results from a superseded session can never touch the
current one.
"""

import asyncio
import functools
import logging
from typing import Optional, Set

from ..audio.base import AbstractAudioCapture
from ..config import OrchestrationSettings
from ..errors import LiveNotesError, CaptureStartFailure
from ..models.audio import AudioChunk
from ..models.session import SessionStatus, SessionSnapshot
from ..summarization.base import AbstractSummarizationGateway
from ..summarization.scheduler import SummarizationScheduler
from ..transcription.base import AbstractTranscriptionGateway
from ..transcription.sequencer import TranscriptionSequencer
from .session_publisher import SessionPublisher

logger = logging.getLogger(__name__)


class SessionController:
    """Aggregates the pipeline into one status and owns the post-stop finalization."""

    def __init__(self,
                 transcription_gateway: AbstractTranscriptionGateway,
                 summarization_gateway: AbstractSummarizationGateway,
                 capture: AbstractAudioCapture,
                 settings: Optional[OrchestrationSettings] = None,
                 publisher: Optional[SessionPublisher] = None,
                 sample_rate: int = 16000,
                 channels: int = 1):
        """Initialize session controller.

        Args:
            transcription_gateway: Speech-to-text gateway
            summarization_gateway: Notes gateway
            capture: Audio capture collaborator
            settings: Debounce, threshold and polling settings
            publisher: Optional snapshot publisher
            sample_rate: Sample rate recorded on each chunk
            channels: Channel count recorded on each chunk
        """
        self.settings = settings or OrchestrationSettings()
        self.capture = capture
        self.publisher = publisher
        self.sample_rate = sample_rate
        self.channels = channels

        self.sequencer = TranscriptionSequencer(transcription_gateway, self)
        self.scheduler = SummarizationScheduler(summarization_gateway, self, self.settings)

        self.generation = 0
        self._capturing = False
        self._finalizing = False
        self._error: Optional[LiveNotesError] = None
        self._chunk_counter = 0

        self._finalize_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._settled: Optional[asyncio.Event] = None
        self._last_snapshot: Optional[SessionSnapshot] = None

    # -- state queries -----------------------------------------------------

    @property
    def is_error(self) -> bool:
        return self._error is not None

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    @property
    def is_finalizing(self) -> bool:
        return self._finalizing

    @property
    def last_error(self) -> Optional[LiveNotesError]:
        return self._error

    @property
    def transcript_text(self) -> str:
        return self.sequencer.transcript.text

    @property
    def notes(self) -> str:
        return self.scheduler.notes

    @property
    def status(self) -> SessionStatus:
        if self._error is not None:
            return SessionStatus.ERROR
        if self.scheduler.is_summarizing:
            return SessionStatus.SUMMARIZING
        if self._capturing:
            return SessionStatus.CAPTURING
        if self._finalizing or not self.sequencer.is_drained():
            return SessionStatus.TRANSCRIBING_CHUNK
        return SessionStatus.IDLE

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            generation=self.generation,
            status=self.status,
            transcript=self.transcript_text,
            notes=self.notes,
            last_error=str(self._error) if self._error is not None else None,
            is_processing_chunk=self._capturing and self.sequencer.in_flight,
        )

    def export_notes(self) -> str:
        """Current notes as plain text."""
        return self.notes

    def refresh_status(self) -> None:
        """Publish the snapshot if anything visible changed."""
        snapshot = self.snapshot()
        previous = self._last_snapshot
        if snapshot == previous:
            return
        if previous is None or previous.status != snapshot.status:
            logger.info(f"Session {snapshot.generation} status -> {snapshot.status.value}")
        self._last_snapshot = snapshot
        if self.publisher is not None:
            self.publisher.publish_snapshot(snapshot)

    # -- commands ----------------------------------------------------------

    def toggle_session(self) -> SessionSnapshot:
        """Start a session when capture is not active, otherwise request stop."""
        if self._capturing:
            self.stop_session()
        else:
            self.start_session()
        return self.snapshot()

    def start_session(self) -> None:
        """Reset all per-session state and start capturing."""
        self.generation += 1
        generation = self.generation
        logger.info(f"Starting session {generation}")

        self.sequencer.reset()
        self.scheduler.reset()
        self._error = None
        self._finalizing = False
        self._chunk_counter = 0
        self._finalize_task = None
        # Waiters on the superseded session return immediately
        self._settle()
        self._settled = asyncio.Event()

        try:
            self.capture.start(
                on_chunk_available=functools.partial(self.on_chunk_available, generation),
                on_capture_stopped=functools.partial(self.on_capture_stopped, generation),
            )
        except CaptureStartFailure as e:
            self._capturing = False
            self.report_failure(generation, e)
            return
        except Exception as e:
            self._capturing = False
            failure = CaptureStartFailure(f"Failed to start capture: {e}")
            failure.__cause__ = e
            self.report_failure(generation, failure)
            return

        self._capturing = True
        self.refresh_status()

    def stop_session(self) -> None:
        """Ask the capture collaborator to stop; finalization starts when it reports back."""
        if not self._capturing:
            logger.warning("Stop requested but capture is not active")
            return

        logger.info(f"Stopping session {self.generation}")
        self._capturing = False
        self.scheduler.cancel_pending()
        if not self.is_error:
            self._finalizing = True
        self.refresh_status()
        self.capture.stop()

    async def wait_until_settled(self, timeout: Optional[float] = None) -> SessionSnapshot:
        """Wait until the current session has finished finalizing or failed."""
        if self._settled is not None:
            await asyncio.wait_for(self._settled.wait(), timeout)
        return self.snapshot()

    # -- collaborator callbacks -------------------------------------------

    def on_chunk_available(self, generation: int, payload: bytes) -> None:
        if generation != self.generation:
            logger.debug(f"Ignoring chunk from superseded session {generation}")
            return
        if self.is_error:
            logger.debug("Session is in error; dropping audio chunk")
            return
        if not payload:
            return

        self._chunk_counter += 1
        chunk = AudioChunk(
            payload=payload,
            sequence_number=self._chunk_counter,
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        self.sequencer.enqueue(chunk)

    def on_capture_stopped(self, generation: int) -> None:
        if generation != self.generation:
            logger.debug(f"Ignoring capture-stopped from superseded session {generation}")
            return
        if self._finalize_task is not None:
            logger.warning(f"Duplicate capture-stopped for session {generation}")
            return

        self._capturing = False
        if self.is_error:
            logger.info(f"Session {generation} stopped in error state; skipping finalization")
            self._finalizing = False
            self._settle()
            self.refresh_status()
            return

        self._finalizing = True
        self.refresh_status()
        self._finalize_task = asyncio.get_running_loop().create_task(self._finalize(generation))
        self._tasks.add(self._finalize_task)
        self._finalize_task.add_done_callback(self._tasks.discard)

    # -- pipeline callbacks -------------------------------------------------

    def on_transcript_grew(self, generation: int) -> None:
        if generation != self.generation:
            return
        self.scheduler.observe(self.transcript_text)
        self.refresh_status()

    def report_failure(self, generation: int, error: LiveNotesError) -> None:
        """Move the session to the sticky error state."""
        if generation != self.generation:
            logger.debug(f"Ignoring failure from superseded session {generation}: {error}")
            return
        if self._error is not None:
            logger.warning(f"Additional failure after session error: {error}")
            return

        logger.error(f"Session {generation} failed: {type(error).__name__}: {error}")
        self._error = error
        self._finalizing = False
        self.scheduler.cancel_pending()
        self._settle()
        self.refresh_status()

    # -- finalization -------------------------------------------------------

    async def _finalize(self, generation: int) -> None:
        """Wait for queued and in-flight chunks, then run the final summarization."""
        while True:
            if generation != self.generation or self.is_error:
                return
            if self.sequencer.is_drained():
                break
            logger.debug(f"Finalization waiting: {len(self.sequencer.queue)} queued, "
                         f"in flight={self.sequencer.in_flight}")
            self.refresh_status()
            await asyncio.sleep(self.settings.finalization_poll_seconds)

        self.scheduler.cancel_pending()
        await self.scheduler.run_final(generation)

        if generation != self.generation or self.is_error:
            return
        self._finalizing = False
        logger.info(f"Session {generation} finalized ({len(self.transcript_text)} chars of transcript)")
        self._settle()
        self.refresh_status()

    def _settle(self) -> None:
        if self._settled is not None:
            self._settled.set()


def status_message(snapshot: SessionSnapshot) -> str:
    """Short human-readable description of a snapshot's status."""
    if snapshot.status is SessionStatus.ERROR:
        return f"Error: {snapshot.last_error}" if snapshot.last_error else "An error occurred. Please try again."
    if snapshot.status is SessionStatus.CAPTURING:
        return "Transcribing in real-time..." if snapshot.is_processing_chunk else "Listening..."
    if snapshot.status is SessionStatus.TRANSCRIBING_CHUNK:
        return "Processing final audio..."
    if snapshot.status is SessionStatus.SUMMARIZING:
        return "Updating notes..."
    return "Ready to record."
