"""Ordered chunk queue and the single-flight transcription sequencer.

Chunks are transcribed strictly one at a time in arrival order. The next
chunk is dequeued only after the previous call's result has been applied, so
transcript segments land in enqueue order no matter how long each remote call
takes. ``drain()`` is the only thing that moves the queue forward; it runs
after every enqueue and after every finished attempt.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Optional, Set, TYPE_CHECKING

from .base import AbstractTranscriptionGateway
from ..errors import TranscriptionFailure
from ..models.audio import AudioChunk
from ..models.transcript import Transcript

if TYPE_CHECKING:
    from ..services.session_controller import SessionController

logger = logging.getLogger(__name__)


class ChunkQueue:
    """FIFO buffer of audio chunks waiting for transcription. Unbounded."""

    def __init__(self):
        self._chunks: Deque[AudioChunk] = deque()

    def enqueue(self, chunk: AudioChunk) -> None:
        self._chunks.append(chunk)

    def dequeue(self) -> Optional[AudioChunk]:
        if not self._chunks:
            return None
        return self._chunks.popleft()

    def is_empty(self) -> bool:
        return not self._chunks

    def clear(self) -> None:
        self._chunks.clear()

    def __len__(self) -> int:
        return len(self._chunks)


class TranscriptionSequencer:
    """Drains the chunk queue through the transcription gateway, one call at a time."""

    def __init__(self, gateway: AbstractTranscriptionGateway, session: "SessionController"):
        """Initialize sequencer.

        Args:
            gateway: Speech-to-text gateway
            session: Owning controller, consulted for generation and error state
        """
        self.gateway = gateway
        self.session = session
        self.queue = ChunkQueue()
        self.transcript = Transcript()

        self._in_flight = False
        self._active: Optional[asyncio.Task] = None
        self._superseded: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        self.chunks_transcribed = 0
        self.empty_results = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def reset(self) -> None:
        """Forget the previous session's queue and transcript.

        Calls still outstanding from the previous session are not cancelled;
        their results are discarded when they arrive, and the next call waits
        until the old one has returned.
        """
        if self._active is not None and not self._active.done():
            self._superseded = self._active
            self._superseded.add_done_callback(self._on_superseded_done)
        self._active = None
        self.queue.clear()
        self.transcript.clear()
        self._in_flight = False
        self.chunks_transcribed = 0
        self.empty_results = 0

    def _on_superseded_done(self, task: asyncio.Task) -> None:
        if task is self._superseded:
            self._superseded = None
            self.drain()

    def is_drained(self) -> bool:
        return self.queue.is_empty() and not self._in_flight

    def enqueue(self, chunk: AudioChunk) -> None:
        self.queue.enqueue(chunk)
        logger.debug(f"Enqueued chunk {chunk.sequence_number} ({len(chunk.payload)} bytes); "
                     f"queue length={len(self.queue)}")
        self.drain()

    def drain(self) -> None:
        """Start the next transcription if nothing is in flight. Safe to call any time."""
        if self._in_flight or self.queue.is_empty() or self.session.is_error:
            return
        if self._superseded is not None:
            logger.debug("Waiting for a superseded session's transcription to return")
            return

        chunk = self.queue.dequeue()
        self._in_flight = True
        generation = self.session.generation

        task = asyncio.get_running_loop().create_task(self._transcribe(chunk, generation))
        self._active = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.session.refresh_status()

    async def _transcribe(self, chunk: AudioChunk, generation: int) -> None:
        chunk_id = f"s{generation}-chunk_{chunk.sequence_number}"
        logger.info(f"Transcribing chunk: {chunk_id} ({chunk.duration_seconds:.1f}s of audio)")

        failure: Optional[TranscriptionFailure] = None
        text = ""
        try:
            result = await self.gateway.transcribe(chunk_id, chunk.payload)
            text = getattr(result, "text", None)
            if not isinstance(text, str):
                raise TranscriptionFailure(f"Malformed transcription result for {chunk_id}: {result!r}")
        except TranscriptionFailure as e:
            failure = e
        except Exception as e:
            failure = TranscriptionFailure(f"Transcription of {chunk_id} failed: {e}")
            failure.__cause__ = e

        if generation != self.session.generation:
            logger.debug(f"Discarding result for {chunk_id}: session {generation} is no longer current")
            return

        self._in_flight = False
        self._active = None
        if self.session.is_error:
            # Transcript stays as it was when the session failed
            logger.info(f"Session is in error; discarding result for {chunk_id}")
            self.session.refresh_status()
            return
        if failure is not None:
            self.session.report_failure(generation, failure)
        elif self.transcript.append(text):
            self.chunks_transcribed += 1
            logger.info(f"Transcript grew to {len(self.transcript)} chars after {chunk_id}")
            self.session.on_transcript_grew(generation)
        else:
            self.empty_results += 1
            logger.warning(f"Transcription for {chunk_id} was empty")

        self.drain()
        self.session.refresh_status()
