"""Background sampling loop for the interactive view."""

import logging
import threading
from dataclasses import dataclass, field
from queue import Queue

from loadtimer.errors import LoadtimerError
from loadtimer.sampler import Sampler
from loadtimer.stats import ProcMetrics, collect_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SampleReport:
    """Metrics of all tracked entities after one cycle."""

    cycle: int
    metrics: list[ProcMetrics] = field(default_factory=list)
    error: LoadtimerError | None = None


class SamplerMonitor:
    """
    Drives a Sampler from a daemon thread and pushes reports to a Queue.

    The sampler is used only by the monitor thread once started. A sampling
    failure ends the loop and is delivered as the last report's error.
    """

    def __init__(
        self,
        sampler: Sampler,
        update_queue: Queue[SampleReport],
        interval: float,
        tick_rate: float,
        break_secs: float = 0.0,
    ) -> None:
        """
        Initialize the SamplerMonitor.

        Args:
            sampler: Sampler owning the tracked processes.
            update_queue: Thread-safe queue to push reports to.
            interval: Length of one sample in seconds.
            tick_rate: Clock ticks per second of the counters.
            break_secs: Unaccounted pause after every sample.
        """
        self._sampler = sampler
        self._queue = update_queue
        self._interval = interval
        self._tick_rate = tick_rate
        self._break_secs = break_secs
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SamplerMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Waits between samples end as soon as the stop is requested.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def report(self) -> SampleReport:
        """Build a report from the sampler's current history."""
        return SampleReport(
            cycle=self._sampler.cycles,
            metrics=collect_metrics(self._sampler, self._tick_rate),
        )

    def _pause(self, seconds: float) -> None:
        self._stop_event.wait(timeout=seconds)

    def _poll_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._sampler.sample(self._interval, sleep=self._pause)
                if self._stop_event.is_set():
                    break
                self._queue.put(self.report())
                self._sampler.rest(self._break_secs, sleep=self._pause)
            except LoadtimerError as e:
                logger.error("Stopping sampler: %s", e)
                self._queue.put(SampleReport(cycle=self._sampler.cycles, error=e))
                return
