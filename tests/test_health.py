"""Tests for the health check."""

from hoststream.health import evaluate_health, format_value
from hoststream.models import HealthStatus


def test_all_nominal_is_healthy():
    verdict = evaluate_health(cpu_usage=40, gpu_usage=10, gpu_temp=50, ram_usage=60)

    assert verdict.status is HealthStatus.HEALTHY
    assert verdict.warnings == ()


def test_high_cpu_only():
    """CPU at 96% with everything else nominal yields exactly one warning."""
    verdict = evaluate_health(cpu_usage=96.0, gpu_usage=0.0, gpu_temp=0.0, ram_usage=50.0)

    assert verdict.status is HealthStatus.WARNING
    assert list(verdict.warnings) == ["High CPU usage: 96%"]


def test_ram_threshold_is_strict():
    """95% RAM is not a warning; 96% is."""
    at_limit = evaluate_health(cpu_usage=0, gpu_usage=0, gpu_temp=0, ram_usage=95.0)
    above = evaluate_health(cpu_usage=0, gpu_usage=0, gpu_temp=0, ram_usage=96.0)

    assert at_limit.status is HealthStatus.HEALTHY
    assert above.warnings == ("High RAM usage: 96%",)


def test_gpu_temperature_threshold():
    assert evaluate_health(0, 0, 85.0, 0).status is HealthStatus.HEALTHY
    assert evaluate_health(0, 0, 86.0, 0).warnings == ("High GPU temperature: 86°C",)


def test_warnings_accumulate_in_order():
    verdict = evaluate_health(cpu_usage=99, gpu_usage=98, gpu_temp=90, ram_usage=97)

    assert verdict.warnings == (
        "High CPU usage: 99%",
        "High GPU usage: 98%",
        "High GPU temperature: 90°C",
        "High RAM usage: 97%",
    )
    assert verdict.status is HealthStatus.WARNING


def test_zeroed_gpu_never_warns():
    verdict = evaluate_health(cpu_usage=99, gpu_usage=0.0, gpu_temp=0.0, ram_usage=99)

    assert not any("GPU" in warning for warning in verdict.warnings)


def test_format_value():
    assert format_value(96.0) == "96"
    assert format_value(97.5) == "97.5"
