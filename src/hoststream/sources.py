"""Metric source adapters backed by psutil and NVML."""

import logging
import platform
import socket
from pathlib import Path
from typing import Protocol

import psutil
import pynvml

from hoststream.errors import SourceUnavailable
from hoststream.models import DiskInfo, HostIdentity, RawProcess

logger = logging.getLogger(__name__)

GIB = 1024**3
_CPUINFO_PATH = Path("/proc/cpuinfo")


class HostSource(Protocol):
    """OS-level metrics: identity, CPU, RAM, network, disks and processes."""

    def identity(self) -> HostIdentity: ...

    def disks(self) -> list[DiskInfo]: ...

    def refresh(self) -> None: ...

    def cpu_percents(self) -> list[float]: ...

    def memory(self) -> tuple[int, int]: ...

    def network_delta(self) -> tuple[int, int]: ...

    def processes(self) -> list[RawProcess]: ...


class GpuSource(Protocol):
    """A single GPU device."""

    def discover(self) -> str: ...

    def utilization(self) -> float: ...

    def temperature(self) -> float: ...

    def close(self) -> None: ...


def _os_name() -> str:
    system = platform.system() or None
    version = platform.release() or None
    if system == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            release = {}
        system = release.get("NAME", system)
        version = release.get("VERSION_ID", version)
    elif system == "Windows":
        version = platform.version() or version
    elif system == "Darwin":
        version = platform.mac_ver()[0] or version
    return f"{system or 'Unknown OS'} {version or 'Unknown Version'}"


def _cpu_name() -> str:
    if _CPUINFO_PATH.exists():
        try:
            for line in _CPUINFO_PATH.read_text(encoding="utf-8", errors="replace").splitlines():
                key, _, value = line.partition(":")
                if key.strip() == "model name" and value.strip():
                    return value.strip()
        except OSError:
            pass
    return platform.processor() or "Unknown CPU"


def _host_name() -> str:
    try:
        return socket.gethostname() or platform.node() or "Unknown Host"
    except OSError:
        return platform.node() or "Unknown Host"


def _total_time(times) -> float:
    total = sum(times)
    # guest time is already accounted for in user/nice on Linux
    total -= getattr(times, "guest", 0.0)
    total -= getattr(times, "guest_nice", 0.0)
    return total


def _busy_time(times) -> float:
    return _total_time(times) - times.idle - getattr(times, "iowait", 0.0)


def core_percent(previous, current) -> float:
    """Busy percentage of one logical core between two ``cpu_times`` readings."""
    total_delta = _total_time(current) - _total_time(previous)
    if total_delta <= 0:
        return 0.0
    busy_delta = _busy_time(current) - _busy_time(previous)
    return min(100.0, max(0.0, busy_delta / total_delta * 100.0))


class PsutilHost:
    """
    Host adapter reading from psutil.

    Keeps its own CPU-time baseline, network counters and ``psutil.Process``
    handles so that several adapters in one interpreter never disturb each
    other's deltas.
    """

    def __init__(self) -> None:
        """Initialize the adapter with empty readings."""
        self._prev_cpu_times: list | None = None
        self._cpu_percents: list[float] = []
        self._memory: tuple[int, int] = (0, 0)
        self._prev_net: tuple[int, int] | None = None
        self._net_delta: tuple[int, int] = (0, 0)
        self._handles: dict[int, psutil.Process] = {}
        self._processes: list[RawProcess] = []

    def identity(self) -> HostIdentity:
        """Discover the host facts that do not change while running."""
        try:
            total = int(psutil.virtual_memory().total)
        except (psutil.Error, OSError):
            total = 0
        return HostIdentity(
            os_name=_os_name(),
            host_name=_host_name(),
            cpu_name=_cpu_name(),
            ram_amount=f"{total / GIB:.1f} GB",
            core_count=psutil.cpu_count(logical=True) or 1,
        )

    def disks(self) -> list[DiskInfo]:
        """List mounted volumes with their capacity, skipping unreadable ones."""
        disks: list[DiskInfo] = []
        try:
            partitions = psutil.disk_partitions(all=False)
        except (psutil.Error, OSError) as exc:
            logger.debug("Disk partitions unavailable: %s", exc)
            return disks

        for part in partitions:
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (psutil.Error, OSError):
                continue
            disks.append(
                DiskInfo(
                    mount=part.mountpoint,
                    total_gb=usage.total / GIB,
                    used_gb=(usage.total - usage.free) / GIB,
                    free_gb=usage.free / GIB,
                )
            )
        return disks

    def refresh(self) -> None:
        """Re-read every metric family; a family that fails keeps a zero reading."""
        self._cpu_percents = self._read_cpu()
        self._memory = self._read_memory()
        self._net_delta = self._read_network()
        self._processes = self._read_processes()

    def cpu_percents(self) -> list[float]:
        return list(self._cpu_percents)

    def memory(self) -> tuple[int, int]:
        """Return ``(used, total)`` bytes."""
        return self._memory

    def network_delta(self) -> tuple[int, int]:
        """Return ``(received, sent)`` bytes since the previous refresh."""
        return self._net_delta

    def processes(self) -> list[RawProcess]:
        return list(self._processes)

    def _read_cpu(self) -> list[float]:
        try:
            current = psutil.cpu_times(percpu=True)
        except (psutil.Error, OSError) as exc:
            logger.debug("CPU times unavailable: %s", exc)
            return []
        previous, self._prev_cpu_times = self._prev_cpu_times, current
        if previous is None or len(previous) != len(current):
            return [0.0] * len(current)
        return [core_percent(before, after) for before, after in zip(previous, current)]

    def _read_memory(self) -> tuple[int, int]:
        try:
            mem = psutil.virtual_memory()
        except (psutil.Error, OSError) as exc:
            logger.debug("Memory info unavailable: %s", exc)
            return (0, 0)
        return (int(mem.total - mem.available), int(mem.total))

    def _read_network(self) -> tuple[int, int]:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (psutil.Error, OSError) as exc:
            logger.debug("Network counters unavailable: %s", exc)
            return (0, 0)

        received = sum(nic.bytes_recv for nic in (counters or {}).values())
        sent = sum(nic.bytes_sent for nic in (counters or {}).values())
        previous, self._prev_net = self._prev_net, (received, sent)
        if previous is None:
            return (0, 0)
        # Interfaces going away or counters wrapping can make totals shrink
        return (max(0, received - previous[0]), max(0, sent - previous[1]))

    def _read_processes(self) -> list[RawProcess]:
        """
        Read the live process table.

        Processes that exit mid-read are dropped; fields we are not allowed to
        read fall back to empty values.
        """
        try:
            pids = psutil.pids()
        except (psutil.Error, OSError) as exc:
            logger.debug("Process table unavailable: %s", exc)
            return []

        live = set(pids)
        for pid in list(self._handles):
            if pid not in live:
                del self._handles[pid]

        processes: list[RawProcess] = []
        for pid in pids:
            proc = self._handles.get(pid)
            try:
                # is_running() is False once the pid belongs to a new process
                if proc is None or not proc.is_running():
                    proc = psutil.Process(pid)
                    self._handles[pid] = proc
                info = proc.as_dict(attrs=["name", "cpu_percent", "memory_info"], ad_value=None)
            except (psutil.NoSuchProcess, psutil.ZombieProcess):
                self._handles.pop(pid, None)
                continue
            except psutil.AccessDenied:
                continue

            mem_info = info.get("memory_info")
            processes.append(
                RawProcess(
                    pid=pid,
                    name=info.get("name") or "",
                    cpu_percent=float(info.get("cpu_percent") or 0.0),
                    memory_bytes=int(mem_info.rss) if mem_info else 0,
                )
            )
        return processes


class NvmlGpu:
    """GPU adapter for the first NVIDIA device, via NVML."""

    def __init__(self, index: int = 0) -> None:
        """
        Initialize the adapter.

        Args:
            index: NVML device index to read.
        """
        self._index = index
        self._handle = None
        self._initialized = False

    def discover(self) -> str:
        """
        Open the device and return its name.

        Raises:
            SourceUnavailable: NVML or the device could not be opened.
        """
        try:
            pynvml.nvmlInit()
            self._initialized = True
            handle = pynvml.nvmlDeviceGetHandleByIndex(self._index)
            name = pynvml.nvmlDeviceGetName(handle)
        except pynvml.NVMLError as exc:
            self.close()
            raise SourceUnavailable(f"NVML device {self._index}: {exc}") from exc

        self._handle = handle
        if isinstance(name, bytes):
            name = name.decode("utf-8", errors="replace")
        return name

    def utilization(self) -> float:
        if self._handle is None:
            return 0.0
        try:
            return float(pynvml.nvmlDeviceGetUtilizationRates(self._handle).gpu)
        except pynvml.NVMLError as exc:
            logger.debug("GPU utilization unavailable: %s", exc)
            return 0.0

    def temperature(self) -> float:
        if self._handle is None:
            return 0.0
        try:
            return float(
                pynvml.nvmlDeviceGetTemperature(self._handle, pynvml.NVML_TEMPERATURE_GPU)
            )
        except pynvml.NVMLError as exc:
            logger.debug("GPU temperature unavailable: %s", exc)
            return 0.0

    def close(self) -> None:
        """Release NVML; safe to call more than once."""
        self._handle = None
        if not self._initialized:
            return
        self._initialized = False
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError as exc:
            logger.debug("NVML shutdown failed: %s", exc)
