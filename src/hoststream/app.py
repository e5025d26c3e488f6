"""hoststream - Textual console view of the snapshot stream."""

from enum import Enum
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from hoststream.config import SETTINGS, ServerSettings, endpoint_url
from hoststream.models import HealthStatus, ProcessRecord, Snapshot
from hoststream.monitor import SnapshotMonitor
from hoststream.sampler import Sampler


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def usage_bar(percent: float, color: str, width: int = 20) -> str:
    """Render a percentage as a fixed-width markup bar."""
    filled = min(width, max(0, int(percent / (100 / width))))
    return f"[{color}]█[/{color}]" * filled + "[dim]░[/dim]" * (width - filled)


class HeaderStats(Static):
    """Header widget showing gauges and host identity."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 7;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, url: str = "", **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._url = url
        self._snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_gauge_info(), id="gauge-info"),
            Static(self._get_host_info(), id="host-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self._snapshot = snapshot
        self._refresh_display()

    def _refresh_display(self) -> None:
        """Refresh the display with current data."""
        try:
            self.query_one("#gauge-info", Static).update(self._get_gauge_info())
            self.query_one("#host-info", Static).update(self._get_host_info())
        except Exception:
            pass  # Widget not mounted yet

    def _get_gauge_info(self) -> str:
        """Get gauge display."""
        snap = self._snapshot
        if snap is None:
            return "Waiting for the first sample..."
        # Use escaped brackets for the bar containers
        return (
            f"CPU \\[{usage_bar(snap.cpu_usage, 'green')}] {snap.cpu_usage:5.0f}%\n"
            f"RAM \\[{usage_bar(snap.ram_usage, 'cyan')}] {snap.ram_usage:5.0f}%\n"
            f"GPU \\[{usage_bar(snap.gpu_usage, 'magenta')}] {snap.gpu_usage:5.0f}%"
            f"  {snap.gpu_temp:.0f}°C\n"
            f"Net ↓ {snap.network_down:.2f} MB  ↑ {snap.network_up:.2f} MB\n"
            f"Processes: {snap.process_count}"
        )

    def _get_host_info(self) -> str:
        """Get host identity display."""
        snap = self._snapshot
        if snap is None:
            return f"Endpoint: {self._url}"
        lines = [
            f"Host: {snap.host_name}  ({snap.os_name})",
            f"CPU: {snap.cpu_name}",
            f"RAM: {snap.ram_amount}",
            f"GPU: {snap.gpu_name}",
        ]
        lines.extend(disk.describe() for disk in snap.disks)
        lines.append(f"Endpoint: {self._url}")
        return "\n".join(lines)


class HealthBanner(Static):
    """One-line health status with its warnings."""

    DEFAULT_CSS = """
    HealthBanner {
        height: auto;
        padding: 0 1;
    }
    """

    def update_health(self, snapshot: Snapshot) -> None:
        """Show the health verdict of a snapshot."""
        health = snapshot.health
        if health.status is HealthStatus.HEALTHY:
            self.update("[green]● Healthy[/green]")
        else:
            self.update("[red]● Warning[/red]  " + "; ".join(health.warnings))


class ProcessTable(Container):
    """Container for the top-process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_names: set[str] = set()
        self._sort_key: SortKey = SortKey.CPU
        self._sort_reverse: bool = True  # Default: descending for CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        next_index = (keys.index(self._sort_key) + 1) % len(keys)
        self._sort_key = keys[next_index]
        self._sort_reverse = self._sort_key in (SortKey.CPU, SortKey.MEM)
        return self._sort_key

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("MEM", key="mem", width=8)
        table.add_column("Name", key="name")

    def update_processes(self, processes: tuple[ProcessRecord, ...]) -> None:
        """
        Update the table with the ranked processes.

        Rows are keyed by process name, which is unique after aggregation.
        """
        table = self.query_one("#process-table", DataTable)
        new_names = {proc.name for proc in processes}

        for name in self._current_names - new_names:
            try:
                table.remove_row(name)
            except Exception:
                pass  # Row may not exist

        for proc in processes:
            if proc.name in self._current_names:
                self._update_row(table, proc)
            else:
                self._add_row(table, proc)
        self._current_names = new_names

        table.sort(self._sort_column(), key=self._sort_value, reverse=self._sort_reverse)

    def _sort_column(self) -> str:
        return self._sort_key.value

    def _sort_value(self, cell: str):
        """Turn a rendered cell back into something sortable."""
        if self._sort_key is SortKey.NAME:
            return cell.lower()
        if self._sort_key is SortKey.MEM:
            return _parse_bytes(cell)
        try:
            return float(cell)
        except ValueError:
            return 0.0

    def _update_row(self, table: DataTable, proc: ProcessRecord) -> None:
        """Update an existing row using update_cell for performance."""
        try:
            table.update_cell(proc.name, "pid", str(proc.pid))
            table.update_cell(proc.name, "cpu", f"{proc.cpu_usage:5.1f}")
            table.update_cell(proc.name, "mem", format_bytes(proc.memory_usage))
        except Exception:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, proc: ProcessRecord) -> None:
        """Add a new row to the table."""
        try:
            table.add_row(
                str(proc.pid),
                f"{proc.cpu_usage:5.1f}",
                format_bytes(proc.memory_usage),
                proc.name,
                key=proc.name,
            )
        except Exception:
            pass  # Row may already exist


_UNITS = {"B": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4, "P": 1024**5}


def _parse_bytes(text: str) -> float:
    text = text.strip()
    if not text:
        return 0.0
    try:
        return float(text[:-1]) * _UNITS.get(text[-1], 1)
    except ValueError:
        return 0.0


class HoststreamApp(App):
    """Console view of the local snapshot stream."""

    TITLE = "hoststream"
    SUB_TITLE = "Local Telemetry Stream"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 7;
    }

    Horizontal {
        height: auto;
    }

    #gauge-info {
        width: 1fr;
        padding-right: 2;
    }

    #host-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
    ]

    def __init__(
        self,
        settings: ServerSettings = SETTINGS,
        sampler: Sampler | None = None,
    ) -> None:
        """
        Initialize the HoststreamApp.

        Args:
            settings: Endpoint shown in the header and the sampling interval.
            sampler: Sampler for the background monitor; local host by default.
        """
        super().__init__()
        self._url = endpoint_url(settings)
        self._update_queue: Queue[Snapshot] = Queue()
        self._monitor = SnapshotMonitor(
            self._update_queue, poll_rate=settings.tick_interval, sampler=sampler
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats", url=self._url)
        yield HealthBanner("Waiting for the first sample...", id="health")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the snapshot monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Stop sampling when the app goes away."""
        self._monitor.stop()

    def _check_for_updates(self) -> None:
        """Drain the queue and show the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.show_snapshot(snapshot)

    def show_snapshot(self, snapshot: Snapshot) -> None:
        """Update every widget from one snapshot."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one("#health", HealthBanner).update_health(snapshot)
        self.query_one(ProcessTable).update_processes(snapshot.top_processes)

    def action_sort(self) -> None:
        """Handle sort action - cycle through sort keys."""
        process_table = self.query_one(ProcessTable)
        new_sort_key = process_table.cycle_sort()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()
