"""Tests for the SnapshotMonitor class."""

from queue import Queue

from fakes import FakeGpu, FakeHost

from hoststream.models import Snapshot
from hoststream.monitor import SnapshotMonitor
from hoststream.sampler import Sampler


def fake_sampler(gpu: FakeGpu | None = None) -> Sampler:
    return Sampler(FakeHost(), gpu or FakeGpu())


class TestSnapshotMonitor:
    """Tests for SnapshotMonitor class."""

    def test_monitor_creation(self):
        """Test SnapshotMonitor can be instantiated."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, sampler=fake_sampler())

        assert monitor.poll_rate == 1.0
        assert not monitor.is_running

    def test_poll_rate_minimum(self):
        """Test poll rate has a minimum value."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, sampler=fake_sampler())

        monitor.poll_rate = 0.01  # Very small value
        assert monitor.poll_rate >= 0.1  # Should be clamped to minimum

    def test_monitor_start_stop(self):
        """Test SnapshotMonitor can be started and stopped."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1, sampler=fake_sampler())

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running

    def test_monitor_start_idempotent(self):
        """Test starting an already running monitor is safe."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1, sampler=fake_sampler())

        monitor.start()
        thread1 = monitor._thread

        monitor.start()  # Should not create a new thread
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_monitor_collects_snapshots(self):
        """Test SnapshotMonitor queues snapshots."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1, sampler=fake_sampler())

        monitor.start()
        try:
            snapshot1 = queue.get(timeout=2.0)
            snapshot2 = queue.get(timeout=2.0)

            assert isinstance(snapshot1, Snapshot)
            assert snapshot2.host_name == "testhost"
        finally:
            monitor.stop()

    def test_stop_releases_sampler(self):
        """Test stopping the monitor closes the sampler's GPU handle."""
        gpu = FakeGpu()
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1, sampler=fake_sampler(gpu))

        monitor.start()
        queue.get(timeout=2.0)
        monitor.stop()

        assert gpu.close_calls == 1

    def test_daemon_thread(self):
        """Test monitor thread is a daemon thread."""
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1, sampler=fake_sampler())

        monitor.start()
        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "SnapshotMonitor"
        finally:
            monitor.stop()

    def test_default_sampler_drives_the_loop(self, monkeypatch):
        """Test the sampler built on start is the one the thread samples."""
        host = FakeHost()
        sampler = Sampler(host, FakeGpu())
        monkeypatch.setattr(Sampler, "for_local_host", lambda: sampler)
        queue: Queue[Snapshot] = Queue()
        monitor = SnapshotMonitor(queue, poll_rate=0.1)

        monitor.start()
        try:
            assert queue.get(timeout=2.0).host_name == "testhost"
            assert host.identity_calls == 1
        finally:
            monitor.stop()


def test_monitor_on_local_host():
    """Test the default sampler produces a snapshot of this machine."""
    queue: Queue[Snapshot] = Queue()
    monitor = SnapshotMonitor(queue, poll_rate=0.1)

    monitor.start()
    try:
        snapshot = queue.get(timeout=5.0)
        assert snapshot.ram_amount.endswith(" GB")
        assert 0 <= snapshot.cpu_usage <= 100
        assert len(snapshot.top_processes) <= 10
    finally:
        monitor.stop()
