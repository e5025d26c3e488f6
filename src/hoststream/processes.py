"""Process classification and ranking.

Everything here is a pure function of the process table for one tick, so the
same table always yields the same counts and the same ranking.
"""

from collections.abc import Iterable, Sequence
from enum import Enum

from hoststream.config import (
    SERVICE_NAME_FRAGMENTS,
    SERVICE_NAME_PREFIXES,
    THRESHOLDS,
    Thresholds,
)
from hoststream.models import ProcessCounts, ProcessRecord, RawProcess


class ProcessClass(Enum):
    """Bucket a process falls into for the process count."""

    APP = "app"
    BACKGROUND = "background"
    UNCOUNTED = "uncounted"


def looks_like_service(name: str) -> bool:
    """Check whether a process name matches the OS-service denylist."""
    lowered = name.lower()
    if lowered.startswith(SERVICE_NAME_PREFIXES):
        return True
    return any(fragment in lowered for fragment in SERVICE_NAME_FRAGMENTS)


def classify(proc: RawProcess, thresholds: Thresholds = THRESHOLDS) -> ProcessClass:
    """
    Classify one OS process.

    Memory-heavy processes are apps. Otherwise a process that used some CPU
    and is not an OS service counts as background. Anything else is left out
    of both buckets but may still be ranked.
    """
    if proc.memory_bytes > thresholds.app_memory_bytes:
        return ProcessClass.APP
    if proc.cpu_percent > thresholds.active_cpu_percent and not looks_like_service(proc.name):
        return ProcessClass.BACKGROUND
    return ProcessClass.UNCOUNTED


def count_processes(
    processes: Iterable[RawProcess], thresholds: Thresholds = THRESHOLDS
) -> ProcessCounts:
    """Count apps and background processes."""
    background = 0
    apps = 0
    for proc in processes:
        bucket = classify(proc, thresholds)
        if bucket is ProcessClass.APP:
            apps += 1
        elif bucket is ProcessClass.BACKGROUND:
            background += 1
    return ProcessCounts(background=background, apps=apps)


def rank_processes(
    processes: Iterable[RawProcess],
    core_count: int,
    limit: int | None = None,
    thresholds: Thresholds = THRESHOLDS,
) -> list[ProcessRecord]:
    """
    Group active processes by name and return the busiest ones.

    Args:
        processes: Process table in its natural iteration order.
        core_count: Logical cores; per-process CPU% is divided by it so a
            group never reports more than 100%.
        limit: Maximum number of records (defaults to the configured top-N).
        thresholds: Activity threshold and top-N source.

    Returns:
        Records sorted by CPU usage, highest first. Ties keep discovery order.
    """
    cores = max(1, core_count)
    limit = thresholds.top_processes if limit is None else limit

    # dicts keep insertion order, so groups stay in discovery order
    groups: dict[str, list] = {}
    for proc in processes:
        if proc.cpu_percent <= thresholds.active_cpu_percent:
            continue
        if "system" in proc.name.lower():
            continue
        share = proc.cpu_percent / cores
        group = groups.get(proc.name)
        if group is None:
            groups[proc.name] = [proc.pid, share, proc.memory_bytes]
        else:
            group[1] += share
            group[2] += proc.memory_bytes

    records = [
        ProcessRecord(name=name, pid=pid, cpu_usage=cpu, memory_usage=memory)
        for name, (pid, cpu, memory) in groups.items()
    ]
    records.sort(key=lambda record: record.cpu_usage, reverse=True)
    return records[: max(0, limit)]


def aggregate(
    processes: Sequence[RawProcess],
    core_count: int,
    thresholds: Thresholds = THRESHOLDS,
) -> tuple[ProcessCounts, list[ProcessRecord]]:
    """Compute the counts and the ranking for one tick."""
    return (
        count_processes(processes, thresholds),
        rank_processes(processes, core_count, thresholds=thresholds),
    )
