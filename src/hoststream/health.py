"""Threshold-based health check."""

from hoststream.config import THRESHOLDS, Thresholds
from hoststream.models import HealthStatus, HealthVerdict


def format_value(value: float) -> str:
    """Render a gauge without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def evaluate_health(
    cpu_usage: float,
    gpu_usage: float,
    gpu_temp: float,
    ram_usage: float,
    thresholds: Thresholds = THRESHOLDS,
) -> HealthVerdict:
    """
    Label the instantaneous gauges.

    Each limit is checked on its own and must be strictly exceeded. There is
    no hysteresis: a value hovering at a limit flaps between ticks.
    """
    warnings: list[str] = []
    if cpu_usage > thresholds.cpu_percent:
        warnings.append(f"High CPU usage: {format_value(cpu_usage)}%")
    if gpu_usage > thresholds.gpu_percent:
        warnings.append(f"High GPU usage: {format_value(gpu_usage)}%")
    if gpu_temp > thresholds.gpu_temp_celsius:
        warnings.append(f"High GPU temperature: {format_value(gpu_temp)}°C")
    if ram_usage > thresholds.ram_percent:
        warnings.append(f"High RAM usage: {format_value(ram_usage)}%")

    status = HealthStatus.WARNING if warnings else HealthStatus.HEALTHY
    return HealthVerdict(status=status, warnings=tuple(warnings))
