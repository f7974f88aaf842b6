"""Error types raised by loadtimer."""


class LoadtimerError(Exception):
    """Base class for all loadtimer errors."""


class SourceUnavailable(LoadtimerError):
    """The counter source of a process or thread cannot be found."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} is not available (process or thread has exited)")
        self.path = path


class MalformedSource(LoadtimerError):
    """The counter source exists but does not hold the expected fields."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path} is malformed: {reason}")
        self.path = path
        self.reason = reason


class UnreadableSource(LoadtimerError):
    """The counter source exists but the system refuses to read it."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class NoTargets(LoadtimerError):
    """No process ids were given to sample."""

    def __init__(self) -> None:
        super().__init__("no target process ids given")


class ConfigError(LoadtimerError):
    """Invalid configuration value or file."""


class TargetFailed(LoadtimerError):
    """Sampling a user-requested process failed."""

    def __init__(self, pid: int, cause: LoadtimerError) -> None:
        super().__init__(f"failed to sample PID {pid}: {cause}")
        self.pid = pid
        self.cause = cause
