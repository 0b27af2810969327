"""resuse - measure resource usage over an interval and render it with a template."""

from resuse.errors import (
    MalformedFormatError,
    ResuseError,
    SnapshotStateError,
    UsageQueryError,
)
from resuse.models import ResourceCounters, Scope, TimeVal, UsageSnapshot
from resuse.source import begin, finish, measure
from resuse.template import (
    DEFAULT_FORMAT,
    PORTABLE_FORMAT,
    UsageFormatter,
    format_usage,
    fprint,
    print_usage,
)

__all__ = [
    "DEFAULT_FORMAT",
    "PORTABLE_FORMAT",
    "MalformedFormatError",
    "ResourceCounters",
    "ResuseError",
    "Scope",
    "SnapshotStateError",
    "TimeVal",
    "UsageFormatter",
    "UsageQueryError",
    "UsageSnapshot",
    "begin",
    "finish",
    "format_usage",
    "fprint",
    "measure",
    "print_usage",
]
