"""Data models for hoststream."""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class RawProcess:
    """One OS process as read from the process table during a tick."""

    pid: int
    name: str
    cpu_percent: float  # 0.0 - 100.0 * core_count
    memory_bytes: int  # RSS


@dataclass(slots=True, frozen=True)
class DiskInfo:
    """Capacity figures for one mounted volume, in GB."""

    mount: str
    total_gb: float
    used_gb: float
    free_gb: float

    def describe(self) -> str:
        """Format the disk the way the dashboard displays it."""
        return (
            f"{self.mount}:: {self.used_gb:.1f} GB / {self.total_gb:.1f} GB "
            f"({self.free_gb:.1f} GB free)"
        )


@dataclass(slots=True, frozen=True)
class HostIdentity:
    """Host facts discovered once per connection."""

    os_name: str
    host_name: str
    cpu_name: str
    ram_amount: str
    core_count: int


@dataclass(slots=True, frozen=True)
class MetricSample:
    """Measurements gathered by the sampler for one tick."""

    os_name: str
    host_name: str
    cpu_name: str
    ram_amount: str
    gpu_name: str
    cpu_usage: float
    ram_usage: float
    gpu_usage: float
    gpu_temp: float
    network_down: float  # MB received since the previous refresh
    network_up: float  # MB sent since the previous refresh
    disks: tuple[DiskInfo, ...]


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Processes sharing a display name, collapsed into one entry."""

    name: str
    pid: int  # first process seen with this name
    cpu_usage: float
    memory_usage: int


@dataclass(slots=True, frozen=True)
class ProcessCounts:
    """Coarse process buckets for one tick."""

    background: int = 0
    apps: int = 0

    @property
    def total(self) -> int:
        return self.background + self.apps


class HealthStatus(Enum):
    """Overall health label."""

    HEALTHY = "Healthy"
    WARNING = "Warning"


@dataclass(slots=True, frozen=True)
class HealthVerdict:
    """Health label plus the warnings that produced it."""

    status: HealthStatus
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        expected = HealthStatus.WARNING if self.warnings else HealthStatus.HEALTHY
        if self.status is not expected:
            raise ValueError(
                f"status {self.status.value!r} does not match {len(self.warnings)} warning(s)"
            )


@dataclass(slots=True, frozen=True)
class Snapshot:
    """The outbound unit: everything the dashboard renders for one tick."""

    cpu_usage: float
    ram_usage: float
    gpu_usage: float
    gpu_temp: float
    gpu_name: str
    os_name: str
    cpu_name: str
    ram_amount: str
    network_down: float
    network_up: float
    disks: tuple[DiskInfo, ...]
    process_count: int
    top_processes: tuple[ProcessRecord, ...]
    host_name: str
    health: HealthVerdict
