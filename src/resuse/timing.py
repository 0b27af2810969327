"""Wall clock timestamps and elapsed time."""

import time

from resuse.models import USEC_PER_SEC, TimeVal


def now() -> TimeVal:
    """Read the wall clock with microsecond resolution."""
    return TimeVal.from_ns(time.time_ns())


def elapsed_between(start: TimeVal, end: TimeVal) -> TimeVal:
    """
    Compute ``end - start``.

    The caller guarantees ``end >= start``. When the microsecond part would
    underflow, one second is borrowed so the result's microseconds stay in
    ``[0, 1000000)``.

    Args:
        start: Beginning of the interval.
        end: End of the interval.

    Returns:
        The duration of the interval.
    """
    seconds = end.seconds - start.seconds
    microseconds = end.microseconds
    if microseconds < start.microseconds:
        # Borrow a second.
        microseconds += USEC_PER_SEC
        seconds -= 1
    return TimeVal(seconds, microseconds - start.microseconds)
