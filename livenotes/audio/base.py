"""Abstract interface for the audio capture collaborator."""

from abc import ABC, abstractmethod
from typing import Callable


class AbstractAudioCapture(ABC):
    """Delivers encoded audio chunks while capturing.

    Both callbacks must be invoked on the controller's event loop thread.
    ``on_capture_stopped`` fires exactly once per ``start`` after the device
    has been released.
    """

    @abstractmethod
    def start(self,
              on_chunk_available: Callable[[bytes], None],
              on_capture_stopped: Callable[[], None]) -> None:
        """Begin capturing.

        Raises:
            CaptureStartFailure: If the device cannot be opened
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Request capture to stop; completion is signalled by ``on_capture_stopped``."""
        pass
