"""Background snapshot producer for the console viewer."""

import logging
import threading
from queue import Queue

from hoststream.config import SETTINGS
from hoststream.models import Snapshot
from hoststream.sampler import Sampler
from hoststream.snapshot import snapshot_from_tick

logger = logging.getLogger(__name__)


class SnapshotMonitor:
    """
    Produces snapshots of the local host on a daemon thread.

    Uses the same sampling pipeline as the WebSocket stream, with its own
    private Sampler, and pushes each Snapshot to a thread-safe Queue.
    """

    def __init__(
        self,
        update_queue: Queue[Snapshot],
        poll_rate: float = SETTINGS.tick_interval,
        sampler: Sampler | None = None,
    ) -> None:
        """
        Initialize the SnapshotMonitor.

        Args:
            update_queue: Thread-safe queue to push snapshots to.
            poll_rate: How often to sample (in seconds).
            sampler: Sampler to use; defaults to one reading the local host.
        """
        self._queue = update_queue
        self._poll_rate = poll_rate
        self._sampler = sampler
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        if self._sampler is None:
            self._sampler = Sampler.for_local_host()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(self._sampler,),
            daemon=True,
            name="SnapshotMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread and release the sampler.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._sampler is not None:
            self._sampler.close()
            self._sampler = None

    def _poll_loop(self, sampler: Sampler) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(snapshot_from_tick(sampler.sample()))
            except Exception:
                logger.exception("Snapshot failed; retrying next tick")

            self._stop_event.wait(timeout=self._poll_rate)
