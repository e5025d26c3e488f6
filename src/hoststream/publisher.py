"""Per-connection publishing loop."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from hoststream.config import SETTINGS
from hoststream.errors import ConsumerGone
from hoststream.sampler import Sampler
from hoststream.snapshot import serialize, snapshot_from_tick

logger = logging.getLogger(__name__)

Send = Callable[[str], Awaitable[None]]


class PublisherState(Enum):
    """Lifecycle of one consumer connection."""

    CONNECTED = "connected"
    CLOSED = "closed"


class PublisherEvent(Enum):
    """Things that can happen to a connection."""

    SENT = "sent"
    SEND_FAILED = "send_failed"
    DISCONNECTED = "disconnected"


def next_state(state: PublisherState, event: PublisherEvent) -> PublisherState:
    """Return the state after ``event``. CLOSED is terminal."""
    if state is PublisherState.CLOSED:
        return PublisherState.CLOSED
    if event is PublisherEvent.SENT:
        return PublisherState.CONNECTED
    return PublisherState.CLOSED


class StreamPublisher:
    """
    Streams one snapshot per tick to a single consumer.

    The loop stops for good on the first failed send or once ``close()`` is
    called. There is no retry: a returning consumer gets a new publisher.
    """

    def __init__(
        self,
        sampler: Sampler,
        send: Send,
        interval: float = SETTINGS.tick_interval,
        name: str = "consumer",
    ) -> None:
        """
        Initialize the StreamPublisher.

        Args:
            sampler: Sampler owned by this connection; closed when the loop ends.
            send: Coroutine writing one text frame; raises ConsumerGone or
                OSError when the consumer is gone.
            interval: Seconds to wait between payloads.
            name: Label for log messages.
        """
        self._sampler = sampler
        self._send = send
        self._interval = interval
        self._name = name
        self._state = PublisherState.CONNECTED
        self._closed = asyncio.Event()
        self._sent = 0

    @property
    def state(self) -> PublisherState:
        return self._state

    @property
    def sent_count(self) -> int:
        """Number of payloads delivered so far."""
        return self._sent

    @property
    def is_closed(self) -> bool:
        return self._state is PublisherState.CLOSED

    def close(self) -> None:
        """Mark the consumer as gone; the loop exits at its next check."""
        self._apply(PublisherEvent.DISCONNECTED)

    def _apply(self, event: PublisherEvent) -> None:
        self._state = next_state(self._state, event)
        if self._state is PublisherState.CLOSED:
            self._closed.set()

    async def publish_once(self) -> bool:
        """
        Sample, build, serialize and send one payload.

        Returns:
            True if a payload was delivered.
        """
        if self.is_closed:
            return False

        try:
            # OS queries block, keep them off the event loop
            tick = await asyncio.to_thread(self._sampler.sample)
            payload = serialize(snapshot_from_tick(tick))
        except Exception:
            logger.exception("Skipping tick for %s: snapshot could not be built", self._name)
            return False

        if self.is_closed:
            return False

        try:
            await self._send(payload)
        except (ConsumerGone, OSError) as exc:
            logger.info("Consumer %s went away: %s", self._name, exc)
            self._apply(PublisherEvent.SEND_FAILED)
            return False

        self._sent += 1
        self._apply(PublisherEvent.SENT)
        return True

    async def run(self) -> int:
        """
        Publish until the consumer is gone.

        Returns:
            Number of payloads delivered.
        """
        logger.info("Streaming to %s every %.1fs", self._name, self._interval)
        try:
            while not self.is_closed:
                await self.publish_once()
                if self.is_closed:
                    break
                try:
                    await asyncio.wait_for(self._closed.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._sampler.close()
        logger.info("Stream to %s closed after %d payload(s)", self._name, self._sent)
        return self._sent
