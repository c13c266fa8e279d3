"""In-memory buffer between webhook deliveries and the mention poller."""

import logging
import threading

from ..hub import APIMessage

logger = logging.getLogger(__name__)


class MentionQueue:
    """Casts received by webhook, keyed by their unix timestamp in seconds.

    Two casts with the same timestamp share a key, so the later one replaces
    the earlier one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._casts: dict[int, APIMessage] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._casts)

    def record(self, timestamp: int, event: APIMessage) -> None:
        """Store an event under its timestamp."""
        with self._lock:
            if timestamp in self._casts:
                logger.debug("Replacing queued cast at timestamp %d", timestamp)
            self._casts[timestamp] = event

    def drain_since(self, watermark: int) -> tuple[list[APIMessage], int]:
        """Take every queued event and return those newer than ``watermark``.

        The queue is emptied whether or not an event qualifies.

        Returns:
            The qualifying events and the highest timestamp among them, or
            ``watermark`` when none qualified.
        """
        events: list[APIMessage] = []
        last_timestamp = watermark
        with self._lock:
            for timestamp, event in sorted(self._casts.items()):
                if timestamp > watermark:
                    events.append(event)
                    last_timestamp = timestamp
            self._casts = {}
        return events, last_timestamp
