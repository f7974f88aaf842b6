"""Access to the per-process CPU counters exposed by procfs."""

import os
from pathlib import Path

import psutil

from loadtimer.errors import MalformedSource, SourceUnavailable, UnreadableSource
from loadtimer.models import RawCounters

# Zero-based offsets of utime and stime in a stat record
UTIME_FIELD = 13
STIME_FIELD = 14

# Offsets as seen after the closing parenthesis of the (comm) field
_UTIME_AFTER_COMM = UTIME_FIELD - 2

_GONE_ERRORS = (FileNotFoundError, ProcessLookupError, NotADirectoryError)


class ProcReader:
    """
    Reads user/system tick counters from ``<root>/<pid>/stat`` records.

    Thread counters come from ``<root>/<pid>/task/<tid>/stat``, which has the
    same layout as the process record.
    """

    def __init__(self, root: str | os.PathLike[str] = "/proc") -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def stat_path(self, pid: int, tid: int | None = None) -> Path:
        """Get the path of the stat record for a process or one of its threads."""
        if tid is None:
            return self._root / str(pid) / "stat"
        return self._root / str(pid) / "task" / str(tid) / "stat"

    def read(self, pid: int, tid: int | None = None) -> RawCounters:
        """
        Read the current counters of a process or thread.

        Raises:
            SourceUnavailable: The record does not exist (entity has exited).
            MalformedSource: The record lacks numeric utime/stime fields.
            UnreadableSource: The record exists but reading it failed
                (permissions, I/O error).
        """
        path = self.stat_path(pid, tid)
        try:
            record = path.read_text()
        except _GONE_ERRORS as e:
            raise SourceUnavailable(str(path)) from e
        except OSError as e:
            raise UnreadableSource(str(path), e.strerror or str(e)) from e
        except UnicodeDecodeError as e:
            raise MalformedSource(str(path), "not a text record") from e
        return parse_stat(record, str(path))

    def threads(self, pid: int) -> list[int]:
        """List the ids of the currently live threads of ``pid``, sorted."""
        task_dir = self._root / str(pid) / "task"
        try:
            entries = os.listdir(task_dir)
        except _GONE_ERRORS as e:
            raise SourceUnavailable(str(task_dir)) from e
        except OSError as e:
            raise UnreadableSource(str(task_dir), e.strerror or str(e)) from e
        return sorted(int(entry) for entry in entries if entry.isdigit())

    def command_name(self, pid: int, tid: int | None = None) -> str:
        """Get the command name from the (comm) field of the stat record, or ``"?"``."""
        try:
            record = self.stat_path(pid, tid).read_text()
        except (OSError, UnicodeDecodeError):
            return "?"
        start = record.find("(")
        end = record.rfind(")")
        if start == -1 or end <= start:
            return "?"
        return record[start + 1 : end]


def parse_stat(record: str, path: str = "stat") -> RawCounters:
    """
    Extract utime and stime from the text of a stat record.

    The command name field may contain spaces, so when it is present the
    fields are counted from the last closing parenthesis.
    """
    rparen = record.rfind(")")
    if rparen != -1:
        fields = record[rparen + 1 :].split()
        offset = _UTIME_AFTER_COMM
    else:
        fields = record.split()
        offset = UTIME_FIELD

    if len(fields) < offset + 2:
        raise MalformedSource(path, f"expected at least {STIME_FIELD + 1} fields")

    try:
        return RawCounters(utime=int(fields[offset]), stime=int(fields[offset + 1]))
    except ValueError as e:
        raise MalformedSource(path, f"non-numeric time field ({e})") from e


def tick_rate() -> int:
    """Get the number of clock ticks per second used by the stat counters."""
    return os.sysconf("SC_CLK_TCK")


def process_name(pid: int, tid: int | None = None) -> str:
    """Resolve the command name of a process or thread, or ``"?"`` if unavailable."""
    # psutil always looks at the live /proc; see ProcReader.command_name for other roots
    try:
        return psutil.Process(pid if tid is None else tid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return "?"


def display_name(pid: int, tid: int | None = None, name: str | None = None) -> str:
    """Format the label shown for a process or thread in reports."""
    label = name or "?"
    if tid is None:
        return f"{label} ({pid})"
    return f"  {label} ({pid}/{tid})"
