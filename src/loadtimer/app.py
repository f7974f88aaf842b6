"""loadtimer - interactive Textual view."""

from queue import Empty, Queue

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from loadtimer.display import COLUMNS, metric_cells
from loadtimer.monitor import SampleReport, SamplerMonitor
from loadtimer.sampler import Sampler
from loadtimer.stats import ProcMetrics

COLUMN_KEYS = ["cpu", "cpu_std", "total", "total_std", "utime", "stime"]


class SamplingHeader(Static):
    """Header line naming the targets and the sampling progress."""

    DEFAULT_CSS = """
    SamplingHeader {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, pids: list[int], interval: float, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._pids = pids
        self._interval = interval
        self._cycle = 0

    @property
    def cycle(self) -> int:
        return self._cycle

    def on_mount(self) -> None:
        self.update(self._header_text())

    def set_cycle(self, cycle: int) -> None:
        self._cycle = cycle
        self.update(self._header_text())

    def _header_text(self) -> str:
        pids = ", ".join(str(pid) for pid in self._pids)
        return f"PIDs {pids} | {self._interval:g}s samples | cycle {self._cycle}"


class MetricsTable(Container):
    """Container for the metrics data table."""

    DEFAULT_CSS = """
    MetricsTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._current_rows: list[str] = []

    @property
    def row_names(self) -> list[str]:
        return list(self._current_rows)

    def compose(self) -> ComposeResult:
        yield DataTable(id="metrics-table")

    def on_mount(self) -> None:
        table = self.query_one("#metrics-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Process", key="name")
        for label, key in zip(COLUMNS, COLUMN_KEYS):
            table.add_column(label, key=key, width=max(len(label), 8))

    def update_metrics(self, metrics: list[ProcMetrics]) -> None:
        """
        Update the table with new metrics.

        Rows keep their position when the set of entities is unchanged;
        otherwise the table is rebuilt so threads stay under their process.
        """
        table = self.query_one("#metrics-table", DataTable)
        names = [metric.name for metric in metrics]

        if names != self._current_rows:
            table.clear()
            for metric in metrics:
                table.add_row(Text(metric.name), *metric_cells(metric), key=metric.name)
        else:
            for metric in metrics:
                for key, value in zip(COLUMN_KEYS, metric_cells(metric)):
                    table.update_cell(metric.name, key, value)

        self._current_rows = names


class LoadtimerApp(App):
    """Live CPU usage table for a set of processes."""

    TITLE = "loadtimer"
    SUB_TITLE = "CPU usage sampler"

    CSS = """
    Screen {
        layout: vertical;
    }

    #sampling-header {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        sampler: Sampler,
        interval: float,
        tick_rate: float,
        break_secs: float = 0.0,
    ) -> None:
        super().__init__()
        self._sampler = sampler
        self._update_queue: Queue[SampleReport] = Queue()
        self._monitor = SamplerMonitor(
            sampler,
            self._update_queue,
            interval=interval,
            tick_rate=tick_rate,
            break_secs=break_secs,
        )

    def compose(self) -> ComposeResult:
        yield SamplingHeader(self._sampler.pids, self._monitor.interval, id="sampling-header")
        yield MetricsTable()
        yield Footer()

    def on_mount(self) -> None:
        """Show the history gathered so far and start sampling."""
        self.call_after_refresh(self._show_report, self._monitor.report())
        self._monitor.start()
        self.set_interval(0.25, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Apply the most recent report in the queue."""
        report = None
        while True:
            try:
                report = self._update_queue.get_nowait()
            except Empty:
                break
            if report.error is not None:
                self._monitor.stop(timeout=0)
                self.exit(str(report.error))
                return

        if report is not None:
            self._show_report(report)

    def _show_report(self, report: SampleReport) -> None:
        self.query_one("#sampling-header", SamplingHeader).set_cycle(report.cycle)
        self.query_one(MetricsTable).update_metrics(report.metrics)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop(timeout=0)
        self.exit()
