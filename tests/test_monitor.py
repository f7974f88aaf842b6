"""Tests for the SamplerMonitor class."""

import time
from queue import Queue

import pytest

from conftest import fixed_name
from loadtimer.errors import TargetFailed, UnreadableSource
from loadtimer.monitor import SampleReport, SamplerMonitor
from loadtimer.sampler import Sampler


@pytest.fixture
def sampler(fake_proc) -> Sampler:
    fake_proc.set(100, utime=0, stime=0)
    return Sampler([100], 3, reader=fake_proc.reader, namer=fixed_name)


class TestSampleReport:
    """Tests for SampleReport dataclass."""

    def test_defaults(self):
        """Test a report has no metrics and no error by default."""
        report = SampleReport(cycle=0)

        assert report.metrics == []
        assert report.error is None

    def test_uses_slots(self):
        """Slots-based dataclasses don't have __dict__."""
        assert not hasattr(SampleReport(cycle=0), "__dict__")


class TestSamplerMonitor:
    """Tests for SamplerMonitor class."""

    def test_monitor_creation(self, sampler):
        """Test SamplerMonitor can be instantiated."""
        monitor = SamplerMonitor(sampler, Queue(), interval=0.5, tick_rate=100)

        assert monitor.interval == 0.5
        assert not monitor.is_running

    def test_report_before_start(self, sampler):
        """Test a report of the current history can be built synchronously."""
        monitor = SamplerMonitor(sampler, Queue(), interval=0.5, tick_rate=100)

        report = monitor.report()

        assert report.cycle == 0
        assert [metrics.name for metrics in report.metrics] == ["worker (100)"]
        assert report.metrics[0].samples == 0

    def test_monitor_start_stop(self, sampler):
        """Test SamplerMonitor can be started and stopped."""
        monitor = SamplerMonitor(sampler, Queue(), interval=0.05, tick_rate=100)

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running

    def test_monitor_start_idempotent(self, sampler):
        """Test starting an already running monitor is safe."""
        monitor = SamplerMonitor(sampler, Queue(), interval=0.05, tick_rate=100)

        monitor.start()
        thread1 = monitor._thread

        monitor.start()  # Should not create a new thread
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_monitor_pushes_reports(self, sampler):
        """Test a report is queued after every cycle."""
        queue: Queue[SampleReport] = Queue()
        monitor = SamplerMonitor(sampler, queue, interval=0.05, tick_rate=100)

        monitor.start()
        try:
            first = queue.get(timeout=2.0)
            second = queue.get(timeout=2.0)
        finally:
            monitor.stop()

        assert first.error is None
        assert second.cycle > first.cycle
        assert second.metrics[0].name == "worker (100)"
        assert second.metrics[0].samples >= 2

    def test_monitor_reports_target_failure(self, fake_proc, sampler):
        """Test a vanished target ends the loop with an error report."""
        queue: Queue[SampleReport] = Queue()
        monitor = SamplerMonitor(sampler, queue, interval=0.05, tick_rate=100)
        fake_proc.remove(100)

        monitor.start()
        try:
            report = queue.get(timeout=2.0)
            assert isinstance(report.error, TargetFailed)
            assert report.error.pid == 100
            monitor._thread.join(timeout=2.0)
            assert not monitor.is_running
        finally:
            monitor.stop()

    def test_monitor_reports_any_sampling_error(self, sampler, monkeypatch):
        """Test an error other than a target failure still ends the loop with a report."""
        queue: Queue[SampleReport] = Queue()
        monitor = SamplerMonitor(sampler, queue, interval=0.05, tick_rate=100)

        def fail(interval, sleep=None):
            raise UnreadableSource("/proc/100/stat", "Input/output error")

        monkeypatch.setattr(sampler, "sample", fail)

        monitor.start()
        try:
            report = queue.get(timeout=2.0)
            assert isinstance(report.error, UnreadableSource)
            assert "Input/output error" in str(report.error)
            monitor._thread.join(timeout=2.0)
            assert not monitor.is_running
        finally:
            monitor.stop()

    def test_stop_interrupts_wait(self, sampler):
        """Test stopping does not wait for a long interval to run out."""
        monitor = SamplerMonitor(sampler, Queue(), interval=30.0, tick_rate=100)
        monitor.start()
        time.sleep(0.1)

        started = time.monotonic()
        monitor.stop(timeout=5.0)

        assert time.monotonic() - started < 2.0
        assert not monitor.is_running

    def test_daemon_thread(self, sampler):
        """Test monitor thread is a daemon thread."""
        monitor = SamplerMonitor(sampler, Queue(), interval=0.05, tick_rate=100)

        monitor.start()

        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "SamplerMonitor"
        finally:
            monitor.stop()
