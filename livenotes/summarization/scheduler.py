"""Debounced, single-flight summarization of the growing transcript."""

import asyncio
import logging
from typing import Optional, Set, TYPE_CHECKING

from .base import AbstractSummarizationGateway
from ..config import OrchestrationSettings
from ..errors import SummarizationFailure

if TYPE_CHECKING:
    from ..services.session_controller import SessionController

logger = logging.getLogger(__name__)


class SummarizationScheduler:
    """Turns transcript growth into notes.

    Trigger policy:
     - Below ``min_transcript_length`` characters no call is made; notes hold the placeholder
     - Otherwise every growth (re)starts a ``debounce_seconds`` timer
     - The timer fires only while capturing, without an error, and with no call in flight
     - A call that finishes while capturing re-arms the timer if the transcript grew
       after its snapshot was taken
     - ``run_final`` issues the mandatory post-stop call and is never dropped
    """

    def __init__(self,
                 gateway: AbstractSummarizationGateway,
                 session: "SessionController",
                 settings: OrchestrationSettings):
        self.gateway = gateway
        self.session = session
        self.settings = settings

        self.notes: str = settings.placeholder_notes

        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._superseded: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        self.calls_issued = 0
        self.dropped_firings = 0

    @property
    def is_summarizing(self) -> bool:
        return self._in_flight is not None

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def reset(self) -> None:
        """Start over for a new session; an outstanding call still blocks the next one."""
        self.cancel_pending()
        if self._in_flight is not None and not self._in_flight.done():
            self._superseded = self._in_flight
            self._superseded.add_done_callback(self._on_superseded_done)
        self._in_flight = None
        self.notes = self.settings.placeholder_notes
        self.calls_issued = 0
        self.dropped_firings = 0

    def _on_superseded_done(self, task: asyncio.Task) -> None:
        if task is not self._superseded:
            return
        self._superseded = None
        if self.session.is_capturing and not self.session.is_error \
                and self.meets_threshold(self.session.transcript_text):
            self._arm()

    def meets_threshold(self, transcript: str) -> bool:
        return len(transcript.strip()) >= self.settings.min_transcript_length

    def observe(self, transcript: str) -> None:
        """Called on every transcript growth."""
        if self.session.is_error:
            return
        if not self.meets_threshold(transcript):
            self.notes = self.settings.placeholder_notes
            return
        self._arm()

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self) -> None:
        self.cancel_pending()
        generation = self.session.generation
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.settings.debounce_seconds, self._on_timer_fired, generation)
        logger.debug(f"Summarization timer armed for {self.settings.debounce_seconds}s")

    def _on_timer_fired(self, generation: int) -> None:
        if generation != self.session.generation:
            return
        self._timer = None

        if self.session.is_error:
            return
        if self._in_flight is not None or self._superseded is not None:
            self.dropped_firings += 1
            logger.debug("Summarization already in flight; dropping timer firing")
            return
        if not self.session.is_capturing:
            logger.debug("Capture no longer active; leaving summarization to finalization")
            return

        transcript = self.session.transcript_text
        if not self.meets_threshold(transcript):
            return
        self._start_call(transcript, generation, final=False)

    def _start_call(self, transcript: str, generation: int, final: bool) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._summarize(transcript, generation, final))
        self._in_flight = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.session.refresh_status()
        return task

    async def _summarize(self, transcript: str, generation: int, final: bool) -> None:
        self.calls_issued += 1
        kind = "final" if final else "intermediate"
        logger.info(f"Starting {kind} summarization over {len(transcript)} chars")

        failure: Optional[SummarizationFailure] = None
        notes = None
        try:
            notes = await self.gateway.summarize(transcript)
            if not isinstance(notes, str):
                raise SummarizationFailure(f"Malformed summarization result: {notes!r}")
        except SummarizationFailure as e:
            failure = e
        except Exception as e:
            failure = SummarizationFailure(f"Summarization failed: {e}")
            failure.__cause__ = e

        if generation != self.session.generation:
            logger.debug(f"Discarding {kind} summarization for superseded session {generation}")
            return

        self._in_flight = None
        if self.session.is_error:
            # Notes stay as they were when the session failed
            logger.info(f"Session is in error; discarding {kind} summarization")
            self.session.refresh_status()
            return
        if failure is not None:
            self.session.report_failure(generation, failure)
            return

        self.notes = notes
        logger.info(f"Notes updated by {kind} summarization ({len(notes)} chars)")

        if final:
            # The controller publishes once finalization completes
            return
        if self.session.is_capturing and not self.session.is_error:
            current = self.session.transcript_text
            if len(current) > len(transcript) and self.meets_threshold(current):
                self._arm()
        self.session.refresh_status()

    async def run_final(self, generation: int) -> None:
        """Issue the mandatory final summarization for a stopped session.

        Waits for an intermediate call that is still outstanding, then runs
        over the complete transcript so its result supersedes anything earlier.
        """
        self.cancel_pending()

        outstanding = {task for task in (self._in_flight, self._superseded) if task is not None}
        if outstanding:
            logger.info("Waiting for earlier summarization before the final call")
            await asyncio.wait(outstanding)

        if generation != self.session.generation or self.session.is_error:
            return

        transcript = self.session.transcript_text
        if not self.meets_threshold(transcript):
            self.notes = self.settings.placeholder_notes
            logger.info("Transcript below minimum length; skipping final summarization")
            return

        await asyncio.wait({self._start_call(transcript, generation, final=True)})
