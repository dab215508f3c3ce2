"""Abstract base class for summarization gateways."""

from abc import ABC, abstractmethod


class AbstractSummarizationGateway(ABC):
    """One remote operation: the whole transcript so far in, notes text out.

    Gateways keep no state between calls; the full transcript is sent every time.
    """

    @abstractmethod
    async def summarize(self, transcript: str) -> str:
        """Summarize the cumulative transcript.

        Raises:
            SummarizationFailure: If the remote call is rejected or the response is malformed
        """
        pass
