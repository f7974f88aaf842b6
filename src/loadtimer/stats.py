"""Statistics over the sample history of a buffer."""

import math
import statistics
from collections.abc import Sequence
from dataclasses import dataclass

from loadtimer.models import IntervalSample
from loadtimer.sampler import DeltaBuffer, Sampler


@dataclass(slots=True, frozen=True)
class MeanStd:
    """Mean and population standard deviation of one series."""

    mean: float
    stddev: float

    @classmethod
    def of(cls, values: Sequence[float]) -> "MeanStd":
        """Compute mean and standard deviation; NaN for an empty series."""
        if not values:
            return cls(math.nan, math.nan)
        mean = statistics.fmean(values)
        return cls(mean, statistics.pstdev(values, mu=mean))


def cpu_usage(samples: Sequence[IntervalSample], tick_rate: float) -> MeanStd:
    """
    Compute CPU usage in percent of one core.

    The mean is the total ticks over the total elapsed time. The standard
    deviation is the spread of the per-sample usage weighted by each
    sample's duration, which makes its center equal to that mean.
    """
    elapsed = math.fsum(sample.duration for sample in samples)
    if not samples or elapsed <= 0:
        return MeanStd(math.nan, math.nan)

    mean = 100.0 * sum(sample.total for sample in samples) / (tick_rate * elapsed)
    variance = (
        math.fsum(
            sample.duration * (100.0 * sample.total / (tick_rate * sample.duration) - mean) ** 2
            for sample in samples
            if sample.duration > 0
        )
        / elapsed
    )
    return MeanStd(mean, math.sqrt(variance))


@dataclass(slots=True, frozen=True)
class ProcMetrics:
    """Aggregated CPU figures of one process or thread."""

    name: str
    cpu_usage: MeanStd  # Percent of one core
    total: MeanStd  # Ticks per sample
    user: MeanStd
    system: MeanStd
    samples: int

    @classmethod
    def from_buffer(cls, name: str, buffer: DeltaBuffer, tick_rate: float) -> "ProcMetrics":
        samples = buffer.samples
        return cls(
            name=name,
            cpu_usage=cpu_usage(samples, tick_rate),
            total=MeanStd.of([sample.total for sample in samples]),
            user=MeanStd.of([sample.utime for sample in samples]),
            system=MeanStd.of([sample.stime for sample in samples]),
            samples=len(samples),
        )


def collect_metrics(sampler: Sampler, tick_rate: float) -> list[ProcMetrics]:
    """Reduce every buffer of ``sampler`` to its metrics, in display order."""
    return [
        ProcMetrics.from_buffer(name, buffer, tick_rate)
        for name, buffer in sampler.all_buffers()
    ]
