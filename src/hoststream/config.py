"""Global configuration values for hoststream."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ServerSettings:
    """Where the stream is served and how often it ticks."""

    host: str = "127.0.0.1"
    port: int = 3069
    path: str = "/ws"
    tick_interval: float = 1.0  # seconds between payloads


@dataclass(frozen=True)
class Thresholds:
    """Fixed limits used by the health check and the process aggregator."""

    cpu_percent: float = 95.0
    gpu_percent: float = 95.0
    gpu_temp_celsius: float = 85.0
    ram_percent: float = 95.0
    app_memory_bytes: int = 20 * 1024 * 1024
    active_cpu_percent: float = 0.01
    top_processes: int = 10


# Name fragments of OS services excluded from the background count
SERVICE_NAME_FRAGMENTS: tuple[str, ...] = (
    "system",
    "svc",
    "service",
    "runtime",
    "registry",
    "fontdrvhost",
    "csrss",
    "smss",
    "wininit",
    "lsass",
)
SERVICE_NAME_PREFIXES: tuple[str, ...] = ("ms", "win")

APP_NAME = "hoststream"
GPU_NOT_FOUND = "GPU not found"
SETTINGS = ServerSettings()
THRESHOLDS = Thresholds()


def endpoint_url(settings: ServerSettings = SETTINGS) -> str:
    """Return the WebSocket URL the dashboard should connect to."""
    return f"ws://{settings.host}:{settings.port}{settings.path}"
