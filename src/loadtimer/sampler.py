"""Sampling engine: per-entity delta buffers, per-process trackers, coordinator."""

import logging
import time
from collections import deque
from collections.abc import Callable, Iterable

from loadtimer.errors import (
    MalformedSource,
    NoTargets,
    SourceUnavailable,
    TargetFailed,
    UnreadableSource,
)
from loadtimer.models import IntervalSample, RawCounters
from loadtimer.procfs import ProcReader, display_name, process_name

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Namer = Callable[[int, int | None], str]

# Failures that mean "this entity can no longer be sampled"
_READ_ERRORS = (SourceUnavailable, MalformedSource, UnreadableSource)


class DeltaBuffer:
    """
    Rolling history of interval samples for one process or thread.

    The first reading is taken on construction and becomes the baseline for
    the first sample, so construction fails if the entity does not exist.
    """

    def __init__(
        self,
        pid: int,
        capacity: int,
        tid: int | None = None,
        reader: ProcReader | None = None,
        name: str | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._pid = pid
        self._tid = tid
        self._reader = reader or ProcReader()
        self._clock = clock
        self.name = name or display_name(pid, tid)
        self._history: deque[IntervalSample] = deque(maxlen=capacity)
        self._last = self._reader.read(pid, tid)
        self._read_at = clock()

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def tid(self) -> int | None:
        return self._tid

    @property
    def capacity(self) -> int:
        return self._history.maxlen or 0

    @property
    def last(self) -> RawCounters:
        """The most recent raw reading."""
        return self._last

    @property
    def samples(self) -> tuple[IntervalSample, ...]:
        """Retained samples, oldest first."""
        return tuple(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def sample(self, cycle_start: float) -> None:
        """
        Record the ticks consumed since the previous reading.

        The duration is measured from ``cycle_start`` so that every entity of
        a cycle reports a comparable interval. A buffer whose baseline was
        read after the cycle started measures from its baseline instead.

        Raises:
            SourceUnavailable, MalformedSource, UnreadableSource: The read
                failed; the buffer is left untouched.
        """
        current = self._reader.read(self._pid, self._tid)
        now = self._clock()
        if current.regressed_from(self._last):
            logger.warning(
                "Counters of %s went backwards (%s -> %s), clamping to zero",
                self.name,
                self._last,
                current,
            )
        duration = now - max(cycle_start, self._read_at)
        self._history.append(IntervalSample.between(self._last, current, duration))
        self._last = current
        self._read_at = now

    def rebase(self) -> None:
        """Take a fresh baseline reading without recording a sample."""
        self._last = self._reader.read(self._pid, self._tid)
        self._read_at = self._clock()


class EntityTracker:
    """
    Tracks one process and, optionally, the threads it spawns over time.

    Threads are discovered by re-listing the task directory on every cycle;
    threads that can no longer be read are retired without error.
    """

    def __init__(
        self,
        pid: int,
        capacity: int,
        track_threads: bool = False,
        reader: ProcReader | None = None,
        clock: Clock = time.monotonic,
        namer: Namer = process_name,
    ) -> None:
        self._pid = pid
        self._capacity = capacity
        self._track_threads = track_threads
        self._reader = reader or ProcReader()
        self._clock = clock
        self._namer = namer
        self._process = self._new_buffer(None)
        self._threads: dict[int, DeltaBuffer] = {}
        if track_threads:
            self._discover()

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def track_threads(self) -> bool:
        return self._track_threads

    @property
    def process(self) -> DeltaBuffer:
        return self._process

    @property
    def thread_ids(self) -> list[int]:
        return sorted(self._threads)

    def _new_buffer(self, tid: int | None) -> DeltaBuffer:
        return DeltaBuffer(
            self._pid,
            self._capacity,
            tid=tid,
            reader=self._reader,
            name=display_name(self._pid, tid, self._namer(self._pid, tid)),
            clock=self._clock,
        )

    def _discover(self) -> list[int]:
        """Start tracking threads that are not tracked yet."""
        found = []
        for tid in self._reader.threads(self._pid):
            if tid == self._pid or tid in self._threads:
                continue
            try:
                self._threads[tid] = self._new_buffer(tid)
            except SourceUnavailable:
                continue  # Exited between listing and first read
            except (MalformedSource, UnreadableSource) as e:
                logger.warning("Not tracking thread %d of PID %d: %s", tid, self._pid, e)
                continue
            found.append(tid)
        if found:
            logger.debug("PID %d: tracking new threads %s", self._pid, found)
        return found

    def _retire(self, failed: dict[int, Exception]) -> None:
        for tid, error in failed.items():
            if not isinstance(error, SourceUnavailable):
                logger.warning("Dropping thread %d of PID %d: %s", tid, self._pid, error)
            del self._threads[tid]
        if failed:
            logger.debug("PID %d: retired threads %s", self._pid, sorted(failed))

    def sample(self, cycle_start: float) -> None:
        """
        Sample the process and its known threads.

        Threads discovered during this call are only baselined; their first
        sample is taken on the next cycle.

        Raises:
            SourceUnavailable, MalformedSource, UnreadableSource: The
                process itself could not be read.
        """
        self._process.sample(cycle_start)
        if not self._track_threads:
            return

        known = list(self._threads.items())
        self._discover()

        failed: dict[int, Exception] = {}
        for tid, buffer in known:
            try:
                buffer.sample(cycle_start)
            except _READ_ERRORS as e:
                failed[tid] = e
        self._retire(failed)

    def rebase(self) -> None:
        """Re-baseline every buffer, retiring threads that have exited."""
        self._process.rebase()
        failed: dict[int, Exception] = {}
        for tid, buffer in self._threads.items():
            try:
                buffer.rebase()
            except _READ_ERRORS as e:
                failed[tid] = e
        self._retire(failed)

    def buffers(self) -> list[tuple[str, DeltaBuffer]]:
        """Get the process buffer followed by the thread buffers ordered by tid."""
        result = [(self._process.name, self._process)]
        for tid in sorted(self._threads):
            buffer = self._threads[tid]
            result.append((buffer.name, buffer))
        return result


class Sampler:
    """
    Samples a fixed set of processes at a shared cadence.

    All trackers are sampled one after another against the same cycle
    start, and the cycle anchor is reset once every tracker is done.
    """

    def __init__(
        self,
        pids: Iterable[int],
        capacity: int,
        track_threads: bool = False,
        reader: ProcReader | None = None,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        namer: Namer = process_name,
    ) -> None:
        pids = list(pids)
        if not pids:
            raise NoTargets()
        reader = reader or ProcReader()
        self._clock = clock
        self._sleep = sleep
        self._cycles = 0
        self._trackers: list[EntityTracker] = []
        for pid in pids:
            try:
                tracker = EntityTracker(
                    pid,
                    capacity,
                    track_threads=track_threads,
                    reader=reader,
                    clock=clock,
                    namer=namer,
                )
            except _READ_ERRORS as e:
                raise TargetFailed(pid, e) from e
            self._trackers.append(tracker)
        self._anchor = clock()

    @property
    def pids(self) -> list[int]:
        return [tracker.pid for tracker in self._trackers]

    @property
    def trackers(self) -> tuple[EntityTracker, ...]:
        return tuple(self._trackers)

    @property
    def cycles(self) -> int:
        """Number of completed sampling cycles."""
        return self._cycles

    def sample(self, interval: float, sleep: Callable[[float], None] | None = None) -> None:
        """
        Wait for the rest of the interval, then sample every tracker.

        If the previous cycle overran the interval, sampling starts at once.
        ``sleep`` replaces the configured sleep function for this call.

        Raises:
            TargetFailed: A target process could not be sampled.
        """
        elapsed = self._clock() - self._anchor
        (sleep or self._sleep)(max(0.0, interval - elapsed))

        for tracker in self._trackers:
            try:
                tracker.sample(self._anchor)
            except _READ_ERRORS as e:
                logger.error("Sampling PID %d failed: %s", tracker.pid, e)
                raise TargetFailed(tracker.pid, e) from e

        self._anchor = self._clock()
        self._cycles += 1

    def rest(self, seconds: float, sleep: Callable[[float], None] | None = None) -> None:
        """
        Pause between samples without accounting the pause.

        Raises:
            TargetFailed: A target process exited during the pause.
        """
        if seconds <= 0:
            return
        (sleep or self._sleep)(seconds)
        for tracker in self._trackers:
            try:
                tracker.rebase()
            except _READ_ERRORS as e:
                logger.error("Re-reading PID %d after break failed: %s", tracker.pid, e)
                raise TargetFailed(tracker.pid, e) from e
        self._anchor = self._clock()

    def all_buffers(self) -> list[tuple[str, DeltaBuffer]]:
        """Get every buffer of every tracker, in target order."""
        return [entry for tracker in self._trackers for entry in tracker.buffers()]
