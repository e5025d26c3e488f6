"""Snapshot assembly and wire serialization."""

import json
from collections.abc import Iterable
from typing import Any

from hoststream.health import evaluate_health
from hoststream.models import (
    HealthVerdict,
    MetricSample,
    ProcessCounts,
    ProcessRecord,
    Snapshot,
)
from hoststream.processes import aggregate
from hoststream.sampler import Tick


def build_snapshot(
    sample: MetricSample,
    counts: ProcessCounts,
    top_processes: Iterable[ProcessRecord],
    health: HealthVerdict,
) -> Snapshot:
    """Copy one tick's results into a single immutable record."""
    return Snapshot(
        cpu_usage=sample.cpu_usage,
        ram_usage=sample.ram_usage,
        gpu_usage=sample.gpu_usage,
        gpu_temp=sample.gpu_temp,
        gpu_name=sample.gpu_name,
        os_name=sample.os_name,
        cpu_name=sample.cpu_name,
        ram_amount=sample.ram_amount,
        network_down=sample.network_down,
        network_up=sample.network_up,
        disks=tuple(sample.disks),
        process_count=counts.total,
        top_processes=tuple(top_processes),
        host_name=sample.host_name,
        health=health,
    )


def snapshot_from_tick(tick: Tick) -> Snapshot:
    """Run the aggregator and the health check over a tick and assemble the result."""
    sample = tick.sample
    counts, top_processes = aggregate(tick.processes, tick.core_count)
    health = evaluate_health(
        cpu_usage=sample.cpu_usage,
        gpu_usage=sample.gpu_usage,
        gpu_temp=sample.gpu_temp,
        ram_usage=sample.ram_usage,
    )
    return build_snapshot(sample, counts, top_processes, health)


def to_payload(snapshot: Snapshot) -> dict[str, Any]:
    """Convert a snapshot into the JSON object sent to the dashboard."""
    return {
        "cpu_usage": snapshot.cpu_usage,
        "ram_usage": snapshot.ram_usage,
        "gpu_usage": snapshot.gpu_usage,
        "gpu_temp": snapshot.gpu_temp,
        "gpu_name": snapshot.gpu_name,
        "os_name": snapshot.os_name,
        "cpu_name": snapshot.cpu_name,
        "ram_amount": snapshot.ram_amount,
        "network_down": snapshot.network_down,
        "network_up": snapshot.network_up,
        "disks": [disk.describe() for disk in snapshot.disks],
        "process_count": snapshot.process_count,
        "top_processes": [
            {
                "name": proc.name,
                "pid": proc.pid,
                "cpu_usage": proc.cpu_usage,
                "memory_usage": proc.memory_usage,
            }
            for proc in snapshot.top_processes
        ],
        "host_name": snapshot.host_name,
        "health": {
            "status": snapshot.health.status.value,
            "warnings": list(snapshot.health.warnings),
        },
    }


def serialize(snapshot: Snapshot) -> str:
    """Serialize a snapshot into one text frame."""
    return json.dumps(to_payload(snapshot), ensure_ascii=False)
