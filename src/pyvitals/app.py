"""pyvitals - Textual render collaborator for the sampling engine."""

import logging
import os

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Input, Static

from pyvitals.config import EngineConfig
from pyvitals.engine import MetricsEngine, build_engine
from pyvitals.models import (
    Category,
    Chart,
    DisplayScale,
    InterfaceStats,
    ProcessRecord,
    Snapshot,
    Trend,
)
from pyvitals.processes import SortColumn

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"
NOT_AVAILABLE = "N/A"

logger = logging.getLogger(__name__)


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def sparkline(trend: Trend, scale: DisplayScale, width: int = 30) -> str:
    """Render the newest ``width`` values of a trend as block characters."""
    values = trend.values[-width:]
    if not values:
        return ""
    low, high = (trend.low, trend.high) if scale.auto else (scale.minimum, scale.maximum)
    span = high - low
    chars = []
    for value in values:
        ratio = (value - low) / span if span > 0 else 0.5
        ratio = min(1.0, max(0.0, ratio))
        chars.append(SPARK_BLOCKS[round(ratio * (len(SPARK_BLOCKS) - 1))])
    return "".join(chars)


def usage_bar(percent: float, color: str) -> str:
    bar_len = min(int(percent / 5), 20)  # Cap at 20 chars
    return f"[{color}]█[/{color}]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)


def format_uptime(uptime: float) -> str:
    days = int(uptime // 86400)
    hours = int((uptime % 86400) // 3600)
    minutes = int((uptime % 3600) // 60)
    seconds = int(uptime % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class HeaderStats(Static):
    """Header widget showing CPU, sensor and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from an engine snapshot."""
        self._snapshot = snapshot
        try:
            self.query_one("#cpu-info", Static).update(self._get_cpu_info())
            self.query_one("#mem-info", Static).update(self._get_mem_info())
        except Exception:
            pass  # Widget not mounted yet

    def _get_cpu_info(self) -> str:
        snapshot = self._snapshot
        if snapshot is None:
            return "Loading CPU info..."
        cpu = snapshot.cpu
        scales = snapshot.scales
        paused = " [yellow](paused)[/yellow]" if Category.CPU in snapshot.paused else ""

        if cpu.cpu_valid:
            usage = f"\\[{usage_bar(cpu.cpu_percent, 'green')}] {cpu.cpu_percent:5.1f}%"
        else:
            usage = NOT_AVAILABLE
        temp = f"{cpu.thermal.celsius:.0f}°C" if cpu.thermal.available else NOT_AVAILABLE
        if cpu.fan.available:
            fan = f"{cpu.fan.rpm} RPM, PWM {cpu.fan.pwm}/{cpu.fan.pwm_max}"
            if not cpu.fan.active:
                fan += " (idle)"
        else:
            fan = NOT_AVAILABLE
        usage_line = sparkline(cpu.cpu_trend, scales.get(Chart.CPU, DisplayScale()))
        temp_line = sparkline(cpu.thermal_trend, scales.get(Chart.THERMAL, DisplayScale()), width=20)
        fan_line = sparkline(cpu.fan_trend, scales.get(Chart.FAN, DisplayScale()), width=20)
        return (
            f"CPU  {usage}{paused}\n"
            f"     {usage_line}\n"
            f"Temp {temp}  {temp_line}\n"
            f"Fan  {fan}  {fan_line}"
        )

    def _get_mem_info(self) -> str:
        snapshot = self._snapshot
        if snapshot is None or not snapshot.system.memory.ram_available:
            return "Loading memory info..."
        memory = snapshot.system.memory
        info = snapshot.system.info

        lines = [
            f"Mem\\[{usage_bar(memory.percent, 'cyan')}] "
            f"{memory.used / 1024**3:.1f}G/{memory.total / 1024**3:.1f}G"
        ]
        if memory.has_swap:
            lines.append(
                f"Swp\\[{usage_bar(memory.swap_percent, 'yellow')}] "
                f"{memory.swap_used / 1024**3:.1f}G/{memory.swap_total / 1024**3:.1f}G"
            )
        else:
            lines.append("Swp no swap")
        if memory.disk_available:
            lines.append(
                f"Dsk\\[{usage_bar(memory.disk_percent, 'magenta')}] "
                f"{memory.disk_used / 1024**3:.1f}G/{memory.disk_total / 1024**3:.1f}G"
            )
        else:
            lines.append(f"Dsk {NOT_AVAILABLE}")
        if info.available:
            load = info.load_avg
            lines.append(f"Load average: {load[0]:.2f} {load[1]:.2f} {load[2]:.2f}")
            lines.append(f"Uptime: {format_uptime(info.uptime_seconds)}")
        return "\n".join(lines)


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._current_pids: tuple[int, ...] = ()

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("S", key="state", width=3)
        table.add_column("NI", key="nice", width=4)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("RES", key="rss", width=8)
        table.add_column("VIRT", key="vsize", width=8)
        table.add_column("THR", key="threads", width=5)
        table.add_column("Command", key="command")

    def update_processes(self, processes: tuple[ProcessRecord, ...]) -> None:
        """
        Update the process table with a filtered, sorted view.

        When the row order is unchanged only the cells are updated; otherwise
        the rows are rebuilt so the table follows the view's order.
        """
        table = self.query_one("#process-table", DataTable)
        pids = tuple(proc.pid for proc in processes)

        if pids == self._current_pids:
            for proc in processes:
                self._update_row(table, str(proc.pid), proc)
            return

        table.clear()
        for proc in processes:
            self._add_row(table, str(proc.pid), proc)
        self._current_pids = pids

    @staticmethod
    def _cells(proc: ProcessRecord) -> tuple[str, ...]:
        return (
            str(proc.pid),
            proc.state,
            str(proc.nice),
            f"{proc.cpu_percent:5.1f}" if proc.cpu_valid else NOT_AVAILABLE,
            format_bytes(proc.rss),
            format_bytes(proc.vsize),
            str(proc.threads),
            (proc.command_line or proc.name)[:50],
        )

    def _update_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        """Update an existing row using update_cell for performance."""
        keys = ("pid", "state", "nice", "cpu", "rss", "vsize", "threads", "command")
        try:
            for key, value in zip(keys, self._cells(proc)):
                table.update_cell(row_key, key, value)
        except Exception:
            pass  # Row may have been removed

    def _add_row(self, table: DataTable, row_key: str, proc: ProcessRecord) -> None:
        try:
            table.add_row(*self._cells(proc), key=row_key)
        except Exception:
            pass  # Row may already exist


class NetworkTable(Container):
    """Per-interface throughput."""

    DEFAULT_CSS = """
    NetworkTable {
        height: auto;
        max-height: 10;
        border: solid $secondary;
    }
    """

    def compose(self) -> ComposeResult:
        yield DataTable(id="network-table")

    def on_mount(self) -> None:
        table = self.query_one("#network-table", DataTable)
        table.add_column("Interface", key="name", width=12)
        table.add_column("Address", key="address", width=16)
        table.add_column("RX/s", key="rx_rate", width=9)
        table.add_column("TX/s", key="tx_rate", width=9)
        table.add_column("RX", key="rx", width=9)
        table.add_column("TX", key="tx", width=9)

    def update_interfaces(self, interfaces: tuple[InterfaceStats, ...]) -> None:
        table = self.query_one("#network-table", DataTable)
        table.clear()
        for iface in interfaces:
            rx_rate = format_bytes(iface.rx_rate) if iface.rx_valid else NOT_AVAILABLE
            tx_rate = format_bytes(iface.tx_rate) if iface.tx_valid else NOT_AVAILABLE
            table.add_row(
                iface.name,
                ", ".join(iface.addresses) or "-",
                rx_rate,
                tx_rate,
                format_bytes(iface.rx.bytes),
                format_bytes(iface.tx.bytes),
                key=iface.name,
            )


class PyvitalsApp(App):
    """Main pyvitals application."""

    TITLE = "pyvitals"
    SUB_TITLE = "Kernel Metrics Monitor"
    AUTO_FOCUS = "#process-table"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("r", "reverse", "Reverse"),
        ("slash", "search", "Search"),
        ("c", "toggle('cpu')", "CPU"),
        ("p", "toggle('processes')", "Procs"),
        ("n", "toggle('network')", "Net"),
        ("plus", "rate(-0.5)", "Faster"),
        ("minus", "rate(0.5)", "Slower"),
    ]

    def __init__(self, engine: MetricsEngine | None = None, frame_rate: float = 10.0) -> None:
        """Initialize the PyvitalsApp."""
        super().__init__()
        self._engine = engine or build_engine(EngineConfig.from_env())
        self._frame_rate = frame_rate
        self._last_sequence = -1
        self._sort_column = SortColumn.CPU
        self._sort_ascending = False

    @property
    def sort_column(self) -> SortColumn:
        return self._sort_column

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield Input(placeholder="Filter processes", id="search")
        yield ProcessTable()
        yield NetworkTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start sampling and poll the store at the frame rate."""
        self._engine.start()
        self.set_interval(1.0 / self._frame_rate, self._check_for_updates)

    def on_unmount(self) -> None:
        self._engine.stop()

    def _check_for_updates(self) -> None:
        """Render the latest snapshot unless it was already rendered."""
        snapshot = self._engine.get_snapshot()
        if snapshot.sequence == self._last_sequence:
            return
        self._last_sequence = snapshot.sequence
        self._update_ui(snapshot)

    def _update_ui(self, snapshot: Snapshot) -> None:
        """Update the UI with the new snapshot."""
        try:
            self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
            self.query_one(ProcessTable).update_processes(snapshot.processes.view)
            self.query_one(NetworkTable).update_interfaces(snapshot.network.interfaces)
        except Exception:
            # A render failure must not take the sampling engine down
            logger.debug("Render failed", exc_info=True)

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self._engine.set_filter(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.query_one("#process-table", DataTable).focus()

    def action_sort(self) -> None:
        """Cycle to the next sort column."""
        columns = list(SortColumn)
        self._sort_column = columns[(columns.index(self._sort_column) + 1) % len(columns)]
        # Numeric columns read best largest-first
        self._sort_ascending = self._sort_column in (SortColumn.PID, SortColumn.NAME, SortColumn.STATE)
        self._engine.set_sort_column(self._sort_column, self._sort_ascending)
        self.notify(f"Sort: {self._sort_column.value.upper()}")

    def action_reverse(self) -> None:
        self._sort_ascending = not self._sort_ascending
        self._engine.set_sort_column(self._sort_column, self._sort_ascending)

    def action_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_toggle(self, category: str) -> None:
        paused = self._engine.toggle_pause(Category(category))
        self.notify(f"{category}: {'paused' if paused else 'resumed'}")

    def action_rate(self, delta: float) -> None:
        current = self._engine.get_snapshot().intervals.get(Category.CPU, 1.0)
        interval = self._engine.set_category_rate(Category.CPU, max(0.1, current + delta))
        self.notify(f"CPU interval: {interval:.1f}s")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._engine.stop()
        self.exit()


def main() -> None:
    """Entry point for pyvitals application."""
    level = os.environ.get("PYVITALS_LOG_LEVEL")
    if level:
        # Log to a file: stderr belongs to the terminal UI
        logging.basicConfig(
            filename=os.environ.get("PYVITALS_LOG_FILE", "pyvitals.log"),
            level=level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    app = PyvitalsApp()
    app.run()


if __name__ == "__main__":
    main()
