"""Tests for loadtimer data models."""

import pytest

from loadtimer.models import IntervalSample, RawCounters


def test_raw_counters_subtraction():
    """Test subtracting readings gives the field-wise difference."""
    delta = RawCounters(utime=125, stime=60) - RawCounters(utime=110, stime=60)

    assert delta == RawCounters(utime=15, stime=0)


def test_raw_counters_regression():
    """Test detection of counters going backwards."""
    previous = RawCounters(utime=100, stime=50)

    assert not RawCounters(100, 50).regressed_from(previous)
    assert not RawCounters(101, 51).regressed_from(previous)
    assert RawCounters(99, 60).regressed_from(previous)
    assert RawCounters(200, 49).regressed_from(previous)


def test_interval_sample_between():
    """Test building a sample from two readings."""
    sample = IntervalSample.between(RawCounters(100, 50), RawCounters(110, 60), 1.0)

    assert sample.utime == 10
    assert sample.stime == 10
    assert sample.total == 20
    assert sample.duration == 1.0


def test_interval_sample_clamps_negative_deltas():
    """Test a counter reset does not produce negative usage."""
    sample = IntervalSample.between(RawCounters(500, 50), RawCounters(20, 70), 1.0)

    assert sample.utime == 0
    assert sample.stime == 20


def test_models_are_frozen():
    """Test that models are immutable (frozen)."""
    counters = RawCounters(1, 2)
    sample = IntervalSample(1, 2, 0.5)

    with pytest.raises(AttributeError):
        counters.utime = 5
    with pytest.raises(AttributeError):
        sample.duration = 1.0


def test_models_use_slots():
    """Test that models use __slots__ for memory efficiency."""
    assert not hasattr(RawCounters(1, 2), "__dict__")
    assert not hasattr(IntervalSample(1, 2, 0.5), "__dict__")
