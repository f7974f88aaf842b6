"""
Run configuration for loadtimer.

Defaults can be kept in a TOML file under a ``[loadtimer]`` table, e.g.::

    [loadtimer]
    interval = 2.0
    samples = 5
    threads = true

Command line options override values from the file.
"""

import logging
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from loadtimer.errors import ConfigError, NoTargets

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Expected types of the settings that may come from a config file
FIELD_TYPES: dict[str, type | tuple[type, ...]] = {
    "interval": (int, float),
    "samples": int,
    "break_secs": (int, float),
    "threads": bool,
    "interactive": bool,
    "plain": bool,
    "proc_root": str,
    "log_level": str,
}


@dataclass(slots=True)
class ProfileConfig:
    """Settings of one profiling run."""

    pids: list[int] = field(default_factory=list)
    interval: float = 10.0  # Seconds per sample
    samples: int = 2  # History length per entity
    break_secs: float = 0.0
    threads: bool = False
    interactive: bool = False
    plain: bool = False
    proc_root: str = "/proc"
    log_level: str = "WARNING"

    def validate(self) -> "ProfileConfig":
        """
        Check the settings, dropping duplicate PIDs.

        Raises:
            NoTargets: No PIDs were given.
            ConfigError: A value has the wrong type or is out of range.
        """
        self._check_types()
        if not self.pids:
            raise NoTargets()
        for pid in self.pids:
            if pid <= 0:
                raise ConfigError(f"invalid PID {pid}")
        unique = list(dict.fromkeys(self.pids))
        if len(unique) != len(self.pids):
            logger.warning("Ignoring duplicate PIDs in %s", self.pids)
            self.pids = unique

        if self.interval <= 0:
            raise ConfigError(f"sample interval must be positive, got {self.interval}")
        if self.samples < 1:
            raise ConfigError(f"number of samples must be at least 1, got {self.samples}")
        if self.break_secs < 0:
            raise ConfigError(f"break must not be negative, got {self.break_secs}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r}")
        self.log_level = self.log_level.upper()
        return self

    def _check_types(self) -> None:
        for pid in self.pids:
            if isinstance(pid, bool) or not isinstance(pid, int):
                raise ConfigError(f"PID must be an integer, got {pid!r}")
        for name, expected in FIELD_TYPES.items():
            value = getattr(self, name)
            # bool is a subclass of int but never a valid number here
            if isinstance(value, bool) and expected is not bool:
                raise ConfigError(f"{name} must not be a boolean, got {value!r}")
            if not isinstance(value, expected):
                raise ConfigError(f"{name} has the wrong type: {value!r}")


def load_defaults(path: Path) -> dict[str, Any]:
    """
    Load the ``[loadtimer]`` table of a TOML file.

    Raises:
        ConfigError: The file is missing, unparsable or holds unknown keys.
    """
    logger.info("Loading defaults from: %s", path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"configuration file not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"cannot parse {path}: {e}") from e

    table = data.get("loadtimer", {})
    if not isinstance(table, dict):
        raise ConfigError(f"[loadtimer] in {path} must be a table")

    known = {f.name for f in fields(ProfileConfig)} - {"pids"}
    unknown = sorted(set(table) - known)
    if unknown:
        raise ConfigError(f"unknown keys in {path}: {', '.join(unknown)}")
    return table
