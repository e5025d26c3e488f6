"""Per-connection sampling of host metrics."""

import logging
import math
from dataclasses import dataclass

from hoststream.config import GPU_NOT_FOUND
from hoststream.errors import SourceUnavailable
from hoststream.models import DiskInfo, HostIdentity, MetricSample, RawProcess
from hoststream.sources import GpuSource, HostSource, NvmlGpu, PsutilHost

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


def round_half_away(value: float, ndigits: int = 0) -> float:
    """Round like a float ``round()`` in most languages: halves move away from zero."""
    scale = 10**ndigits
    return math.copysign(math.floor(abs(value) * scale + 0.5) / scale, value)


@dataclass(slots=True, frozen=True)
class Tick:
    """Everything the sampler read during one refresh."""

    sample: MetricSample
    processes: tuple[RawProcess, ...]
    core_count: int


class Sampler:
    """
    Samples one host on demand.

    The first call to ``sample()`` discovers the host identity, the GPU and
    the disk list; later calls only refresh the changing gauges. A sampler
    belongs to exactly one connection and is never shared.
    """

    def __init__(self, host: HostSource, gpu: GpuSource | None = None) -> None:
        """
        Initialize the Sampler.

        Args:
            host: Adapter for OS-level metrics.
            gpu: Adapter for the GPU, or None when no GPU backend exists.
        """
        self._host = host
        self._gpu = gpu
        self._gpu_found = False
        self._gpu_name = GPU_NOT_FOUND
        self._identity: HostIdentity | None = None
        self._disks: tuple[DiskInfo, ...] = ()
        self._closed = False

    @classmethod
    def for_local_host(cls) -> "Sampler":
        """Create a sampler reading this machine through psutil and NVML."""
        return cls(PsutilHost(), NvmlGpu())

    @property
    def discovered(self) -> bool:
        """Whether one-time discovery has already run."""
        return self._identity is not None

    @property
    def gpu_name(self) -> str:
        return self._gpu_name

    def discover(self) -> HostIdentity:
        """
        Read the near-static host facts and take counter baselines.

        Returns:
            The host identity, read only on the first call.
        """
        if self._identity is not None:
            return self._identity

        identity = self._identity = self._host.identity()
        self._disks = tuple(self._host.disks())

        if self._gpu is not None:
            try:
                self._gpu_name = self._gpu.discover()
                self._gpu_found = True
            except SourceUnavailable as exc:
                logger.info("No GPU available, reporting zeros: %s", exc)

        # Baseline so the first tick reports deltas since discovery
        self._host.refresh()
        return identity

    def sample(self) -> Tick:
        """Refresh every source and return this tick's readings."""
        identity = self.discover()
        self._host.refresh()

        cpu_percents = self._host.cpu_percents()
        cpu_usage = (
            round_half_away(sum(cpu_percents) / len(cpu_percents)) if cpu_percents else 0.0
        )

        used, total = self._host.memory()
        ram_usage = round_half_away(used / total * 100.0) if total > 0 else 0.0

        received, sent = self._host.network_delta()
        network_down = round_half_away(received / MIB, 2)
        network_up = round_half_away(sent / MIB, 2)

        gpu_usage, gpu_temp = 0.0, 0.0
        if self._gpu_found and self._gpu is not None:
            gpu_usage = self._gpu.utilization()
            gpu_temp = self._gpu.temperature()

        sample = MetricSample(
            os_name=identity.os_name,
            host_name=identity.host_name,
            cpu_name=identity.cpu_name,
            ram_amount=identity.ram_amount,
            gpu_name=self._gpu_name,
            cpu_usage=cpu_usage,
            ram_usage=ram_usage,
            gpu_usage=gpu_usage,
            gpu_temp=gpu_temp,
            network_down=network_down,
            network_up=network_up,
            disks=self._disks,
        )
        return Tick(
            sample=sample,
            processes=tuple(self._host.processes()),
            core_count=max(1, identity.core_count),
        )

    def close(self) -> None:
        """Release adapter handles."""
        if self._closed:
            return
        self._closed = True
        self._gpu_found = False
        if self._gpu is not None:
            self._gpu.close()
