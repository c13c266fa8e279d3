"""Periodic consumer of the webhook mention queue."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .hub import APIMessage
from .neynar_client import NeynarAPI

logger = logging.getLogger(__name__)

MentionCallback = Callable[[APIMessage], Awaitable[None]]


class MentionPoller:
    """Drains new casts from a NeynarAPI and hands them to a callback."""

    def __init__(
        self,
        neynar: NeynarAPI,
        poll_interval: int,
        on_mention: Optional[MentionCallback] = None,
        watermark: int = 0,
    ) -> None:
        self.neynar = neynar
        self.poll_interval = poll_interval
        self.on_mention = on_mention
        self.watermark = watermark

    async def run_once(self) -> int:
        """Run a single polling cycle.

        Returns:
            Number of casts drained.
        """
        logger.debug("Checking for new casts since %d...", self.watermark)

        messages, self.watermark = await self.neynar.last_mentions(self.watermark)
        if messages:
            logger.info("Found %d new cast(s), watermark now %d", len(messages), self.watermark)

        for message in messages:
            if self.on_mention is None:
                logger.info("Cast %s", message)
                continue
            try:
                await self.on_mention(message)
            except Exception as e:
                logger.error("Error handling cast %s: %s", message.hash, e, exc_info=True)

        return len(messages)

    async def run(self) -> None:
        """Poll the queue until cancelled."""
        logger.info("Polling mentions for @%s", self.neynar.username)
        logger.info("Poll interval: %d seconds", self.poll_interval)

        while True:
            await self.run_once()
            await asyncio.sleep(self.poll_interval)
