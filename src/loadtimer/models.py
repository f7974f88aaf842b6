"""Data models for loadtimer."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class RawCounters:
    """Accumulated CPU time of a process or thread, in clock ticks."""

    utime: int  # user mode
    stime: int  # kernel mode

    def __sub__(self, other: "RawCounters") -> "RawCounters":
        return RawCounters(self.utime - other.utime, self.stime - other.stime)

    def regressed_from(self, previous: "RawCounters") -> bool:
        """Check whether either counter went backwards since ``previous``."""
        return self.utime < previous.utime or self.stime < previous.stime


@dataclass(slots=True, frozen=True)
class IntervalSample:
    """Ticks consumed during one sampling interval."""

    utime: int
    stime: int
    duration: float  # Seconds

    @property
    def total(self) -> int:
        return self.utime + self.stime

    @classmethod
    def between(
        cls, previous: RawCounters, current: RawCounters, duration: float
    ) -> "IntervalSample":
        """
        Build the sample for the interval between two readings.

        Negative deltas (counter reset or id reuse) are clamped to zero.
        """
        delta = current - previous
        return cls(
            utime=max(0, delta.utime),
            stime=max(0, delta.stime),
            duration=duration,
        )
