"""Data models for resuse."""

import resource
from dataclasses import dataclass
from enum import Enum

from resuse.errors import SnapshotStateError

USEC_PER_SEC = 1_000_000


class Scope(Enum):
    """Kernel accounting domain a snapshot is measured for."""

    PROCESS = "process"
    THREAD = "thread"

    @property
    def available(self) -> bool:
        """Whether the host can report usage for this scope."""
        return self.who is not None

    @property
    def who(self) -> int | None:
        """The ``getrusage`` selector for this scope, or None if unsupported."""
        if self is Scope.PROCESS:
            return resource.RUSAGE_SELF
        return getattr(resource, "RUSAGE_THREAD", None)


@dataclass(slots=True, frozen=True, order=True)
class TimeVal:
    """Seconds plus a microsecond remainder, like ``struct timeval``."""

    seconds: int
    microseconds: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.microseconds < USEC_PER_SEC:
            raise ValueError(f"microseconds must be in [0, {USEC_PER_SEC}), got {self.microseconds}")

    @classmethod
    def from_seconds(cls, value: float) -> "TimeVal":
        """Build a TimeVal from float seconds, rounded to the microsecond."""
        return cls(*divmod(round(value * USEC_PER_SEC), USEC_PER_SEC))

    @classmethod
    def from_ns(cls, value: int) -> "TimeVal":
        """Build a TimeVal from nanoseconds, truncated to the microsecond."""
        return cls(*divmod(value // 1000, USEC_PER_SEC))

    @property
    def milliseconds(self) -> int:
        """Whole milliseconds."""
        return self.seconds * 1000 + self.microseconds // 1000

    @property
    def centiseconds(self) -> int:
        """Hundredths of a second within the current second."""
        return self.microseconds // 10000

    @property
    def total_microseconds(self) -> int:
        return self.seconds * USEC_PER_SEC + self.microseconds


@dataclass(slots=True, frozen=True)
class ResourceCounters:
    """
    Raw resource usage counters for one scope.

    Memory sizes are in pages; the integral sizes (``ixrss``, ``idrss``,
    ``isrss``) are page-ticks accumulated by the kernel.
    """

    utime: TimeVal = TimeVal(0)
    stime: TimeVal = TimeVal(0)
    maxrss: int = 0  # Pages
    ixrss: int = 0  # Shared text
    idrss: int = 0  # Unshared data
    isrss: int = 0  # Unshared stack
    minflt: int = 0
    majflt: int = 0
    nswap: int = 0
    inblock: int = 0
    oublock: int = 0
    msgsnd: int = 0
    msgrcv: int = 0
    nsignals: int = 0
    nvcsw: int = 0
    nivcsw: int = 0

    @property
    def cpu_milliseconds(self) -> int:
        """User plus system CPU time in milliseconds."""
        return self.utime.milliseconds + self.stime.milliseconds


@dataclass(slots=True)
class UsageSnapshot:
    """
    One measured interval.

    Created by ``resuse.source.begin`` and filled in exactly once by
    ``resuse.source.finish``; read-only afterwards. Once ``end``, ``elapsed``
    and ``counters`` are all set, any further assignment raises
    ``SnapshotStateError``.
    """

    scope: Scope
    start: TimeVal
    end: TimeVal | None = None
    elapsed: TimeVal | None = None
    counters: ResourceCounters | None = None

    def __post_init__(self) -> None:
        if self.stopped and self.elapsed.total_microseconds != (
            self.end.total_microseconds - self.start.total_microseconds
        ):
            raise SnapshotStateError("elapsed does not match end - start")

    def __setattr__(self, name: str, value: object) -> None:
        if self.stopped:
            raise SnapshotStateError(f"snapshot is finished, cannot set {name!r}")
        object.__setattr__(self, name, value)

    @property
    def stopped(self) -> bool:
        """Whether the interval has been finished."""
        return all(
            getattr(self, field, None) is not None for field in ("end", "elapsed", "counters")
        )

    @property
    def elapsed_milliseconds(self) -> int:
        """Wall clock duration of the interval in milliseconds."""
        return self.require_stopped().elapsed.milliseconds

    def require_stopped(self) -> "UsageSnapshot":
        """Return self, or raise if the interval has not been finished."""
        if not self.stopped:
            raise SnapshotStateError("snapshot has not been finished")
        return self
