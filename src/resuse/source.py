"""Capture resource usage of the current process or thread over an interval."""

import logging
import resource
import sys
from collections.abc import Iterator
from contextlib import contextmanager

from resuse.errors import SnapshotStateError, UsageQueryError
from resuse.models import ResourceCounters, Scope, TimeVal, UsageSnapshot
from resuse.timing import elapsed_between, now
from resuse.units import page_size

logger = logging.getLogger(__name__)

# ru_maxrss is reported in bytes on macOS and in kilobytes elsewhere.
MAXRSS_UNIT = 1 if sys.platform == "darwin" else 1024


def begin(scope: Scope = Scope.PROCESS) -> UsageSnapshot:
    """
    Start measuring an interval.

    Call this at the top of the code whose resource usage is wanted, then
    pass the returned snapshot to ``finish``.

    Args:
        scope: Whether to account for the whole process or the calling thread.
    """
    snapshot = UsageSnapshot(scope=scope, start=now())
    logger.debug("Began %s interval at %s", scope.value, snapshot.start)
    return snapshot


def finish(snapshot: UsageSnapshot) -> UsageSnapshot:
    """
    Stop measuring an interval.

    Records the end time, queries the kernel for the snapshot's scope and
    computes the elapsed time. A snapshot can only be finished once.

    Returns:
        The same snapshot, now read-only.
    """
    if snapshot.stopped:
        raise SnapshotStateError("snapshot has already been finished")

    end = now()
    counters = read_counters(snapshot.scope)

    snapshot.end = end
    snapshot.elapsed = elapsed_between(snapshot.start, end)
    snapshot.counters = counters
    logger.debug(
        "Finished %s interval: elapsed=%s cpu=%dms",
        snapshot.scope.value,
        snapshot.elapsed,
        counters.cpu_milliseconds,
    )
    return snapshot


@contextmanager
def measure(scope: Scope = Scope.PROCESS) -> Iterator[UsageSnapshot]:
    """
    Measure the body of a ``with`` block.

    The snapshot is finished when the block exits, including on error.
    """
    snapshot = begin(scope)
    try:
        yield snapshot
    finally:
        finish(snapshot)


def read_counters(scope: Scope) -> ResourceCounters:
    """
    Query the kernel for the current usage counters of ``scope``.

    Raises:
        UsageQueryError: The scope is unsupported on this host or the query
            failed. Queries are never retried.
    """
    who = scope.who
    if who is None:
        logger.error("Resource usage for scope %s is not supported", scope.value)
        raise UsageQueryError(f"scope {scope.value!r} is not supported on this host")

    try:
        ru = resource.getrusage(who)
    except (OSError, ValueError) as e:
        logger.error("getrusage failed for scope %s: %s", scope.value, e)
        raise UsageQueryError(f"getrusage failed for scope {scope.value!r}: {e}") from e

    return ResourceCounters(
        utime=TimeVal.from_seconds(ru.ru_utime),
        stime=TimeVal.from_seconds(ru.ru_stime),
        maxrss=ru.ru_maxrss * MAXRSS_UNIT // page_size(),
        ixrss=ru.ru_ixrss,
        idrss=ru.ru_idrss,
        isrss=ru.ru_isrss,
        minflt=ru.ru_minflt,
        majflt=ru.ru_majflt,
        nswap=ru.ru_nswap,
        inblock=ru.ru_inblock,
        oublock=ru.ru_oublock,
        msgsnd=ru.ru_msgsnd,
        msgrcv=ru.ru_msgrcv,
        nsignals=ru.ru_nsignals,
        nvcsw=ru.ru_nvcsw,
        nivcsw=ru.ru_nivcsw,
    )
