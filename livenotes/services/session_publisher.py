"""Session snapshot publisher for pub/sub notifications."""

import logging
from typing import Callable
from pubsub import pub

from ..models.session import SessionSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_TOPIC = "session.snapshot"


class SessionPublisher:
    """Publishes session snapshots using pubsub.pub so the UI can follow along."""

    def __init__(self, topic: str = SNAPSHOT_TOPIC):
        """Initialize session publisher.

        Args:
            topic: Pub/sub topic name for session snapshots
        """
        self.topic = topic
        logger.info(f"SessionPublisher initialized with topic: {topic}")

    def publish_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Publish a snapshot to the pub/sub topic.

        Args:
            snapshot: Current session snapshot
        """
        pub.sendMessage(self.topic, snapshot=snapshot)
        logger.debug(f"Published snapshot: session {snapshot.generation} {snapshot.status.value}")

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> None:
        """Register a listener taking a single ``snapshot`` keyword argument."""
        pub.subscribe(listener, self.topic)

    def unsubscribe(self, listener: Callable[[SessionSnapshot], None]) -> None:
        pub.unsubscribe(listener, self.topic)
