"""Shared fixtures: a fake procfs tree and a controllable clock."""

import shutil
from pathlib import Path

import pytest

from loadtimer.procfs import ProcReader


def stat_record(pid: int, utime: int, stime: int, comm: str = "worker") -> str:
    """Build a stat record with utime/stime at offsets 13 and 14."""
    fields = [str(pid), f"({comm})", "S"] + ["0"] * 10 + [str(utime), str(stime)] + ["0"] * 37
    return " ".join(fields) + "\n"


class FakeProc:
    """A writable directory tree laid out like /proc."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.reader = ProcReader(root)

    def set(self, pid: int, utime: int, stime: int, tid: int | None = None) -> None:
        """Create or update the counters of a process or thread."""
        if tid is None:
            self._write(self.root / str(pid) / "stat", stat_record(pid, utime, stime))
            main_thread = self.root / str(pid) / "task" / str(pid) / "stat"
            self._write(main_thread, stat_record(pid, utime, stime))
        else:
            self._write(self.root / str(pid) / "task" / str(tid) / "stat", stat_record(tid, utime, stime))

    def write(self, pid: int, text: str, tid: int | None = None) -> None:
        """Write a raw stat record."""
        if tid is None:
            self._write(self.root / str(pid) / "stat", text)
        else:
            self._write(self.root / str(pid) / "task" / str(tid) / "stat", text)

    def remove(self, pid: int, tid: int | None = None) -> None:
        """Make a process or thread disappear."""
        if tid is None:
            shutil.rmtree(self.root / str(pid))
        else:
            shutil.rmtree(self.root / str(pid) / "task" / str(tid))

    @staticmethod
    def _write(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def fixed_name(pid: int, tid: int | None = None) -> str:
    return "worker"


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
