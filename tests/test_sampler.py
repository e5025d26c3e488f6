"""Tests for the Sampler."""

import pytest

from fakes import FakeGpu, FakeHost

from hoststream.models import DiskInfo, RawProcess
from hoststream.sampler import Sampler, Tick, round_half_away

GIB = 1024**3
MIB = 1024**2


class TestRoundHalfAway:
    """Tests for the rounding helper."""

    def test_halves_round_up(self):
        assert round_half_away(0.5) == 1.0
        assert round_half_away(2.5) == 3.0

    def test_negative_halves_round_down(self):
        assert round_half_away(-2.5) == -3.0

    def test_decimal_places(self):
        assert round_half_away(1.23456, 2) == pytest.approx(1.23)
        assert round_half_away(0.125, 2) == pytest.approx(0.13)


class TestDiscovery:
    """Tests for one-time discovery."""

    def test_not_discovered_until_first_sample(self):
        sampler = Sampler(FakeHost(), FakeGpu())
        assert not sampler.discovered

        sampler.sample()
        assert sampler.discovered

    def test_discovery_runs_once(self):
        host = FakeHost()
        gpu = FakeGpu()
        sampler = Sampler(host, gpu)

        for _ in range(3):
            sampler.sample()

        assert host.identity_calls == 1
        assert host.disk_calls == 1
        assert gpu.discover_calls == 1

    def test_discover_returns_cached_identity(self):
        host = FakeHost()
        sampler = Sampler(host, FakeGpu())

        assert sampler.discover() == host.identity_value
        assert sampler.discover() is sampler.discover()
        assert host.identity_calls == 1
        assert host.refresh_calls == 1

    def test_baseline_refresh_before_first_tick(self):
        host = FakeHost()
        sampler = Sampler(host, FakeGpu())

        sampler.sample()
        assert host.refresh_calls == 2

        sampler.sample()
        assert host.refresh_calls == 3

    def test_disks_reused_every_tick(self):
        host = FakeHost(disks=[DiskInfo("/", 100.0, 10.0, 90.0)])
        sampler = Sampler(host, FakeGpu())

        first = sampler.sample().sample.disks
        host.disks_value = [DiskInfo("/mnt/new", 1.0, 0.5, 0.5)]
        second = sampler.sample().sample.disks

        assert first == second == (DiskInfo("/", 100.0, 10.0, 90.0),)


class TestGauges:
    """Tests for the per-tick gauges."""

    def test_cpu_is_rounded_mean_of_cores(self):
        sampler = Sampler(FakeHost(cpu_percents=[10.0, 20.0, 31.0]), FakeGpu())
        assert sampler.sample().sample.cpu_usage == 20.0

    def test_cpu_without_cores_is_zero(self):
        sampler = Sampler(FakeHost(cpu_percents=[]), FakeGpu())
        assert sampler.sample().sample.cpu_usage == 0.0

    def test_ram_percent_rounding(self):
        """15.2 of 16 GB used is exactly 95%."""
        host = FakeHost(memory=(int(15.2 * GIB), 16 * GIB))
        assert Sampler(host, FakeGpu()).sample().sample.ram_usage == 95.0

    def test_ram_without_total_is_zero(self):
        sampler = Sampler(FakeHost(memory=(0, 0)), FakeGpu())
        assert sampler.sample().sample.ram_usage == 0.0

    def test_network_delta_in_megabytes(self):
        host = FakeHost(network=(int(1.5 * MIB), 123_456))
        sample = Sampler(host, FakeGpu()).sample().sample

        assert sample.network_down == 1.5
        assert sample.network_up == pytest.approx(0.12)

    def test_gpu_values_are_read(self):
        sampler = Sampler(FakeHost(), FakeGpu(name="RTX Test", usage=42.0, temp=61.0))
        sample = sampler.sample().sample

        assert sample.gpu_name == "RTX Test"
        assert sample.gpu_usage == 42.0
        assert sample.gpu_temp == 61.0

    def test_identity_copied_into_sample(self):
        sample = Sampler(FakeHost(), FakeGpu()).sample().sample

        assert sample.os_name == "TestOS 1.0"
        assert sample.host_name == "testhost"
        assert sample.cpu_name == "Test CPU @ 3.00GHz"
        assert sample.ram_amount == "16.0 GB"


class TestMissingGpu:
    """Tests for hosts without a usable GPU."""

    def test_sentinel_name_and_zero_gauges(self):
        gpu = FakeGpu(name=None, usage=99.0, temp=99.0)
        sampler = Sampler(FakeHost(), gpu)

        for _ in range(3):
            sample = sampler.sample().sample
            assert sample.gpu_name == "GPU not found"
            assert sample.gpu_usage == 0.0
            assert sample.gpu_temp == 0.0

    def test_no_gpu_adapter(self):
        sample = Sampler(FakeHost(), None).sample().sample
        assert sample.gpu_name == "GPU not found"
        assert sample.gpu_usage == 0.0


def test_tick_carries_processes_and_cores():
    """Test the tick includes the raw process table and core count."""
    table = [RawProcess(pid=1, name="a", cpu_percent=1.0, memory_bytes=10)]
    tick = Sampler(FakeHost(processes=table), FakeGpu()).sample()

    assert isinstance(tick, Tick)
    assert tick.processes == tuple(table)
    assert tick.core_count == 8


def test_close_releases_gpu_once():
    """Test close is idempotent."""
    gpu = FakeGpu()
    sampler = Sampler(FakeHost(), gpu)
    sampler.sample()

    sampler.close()
    sampler.close()

    assert gpu.close_calls == 1
