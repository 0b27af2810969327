"""Exceptions raised by resuse."""


class ResuseError(Exception):
    """Base class for all resuse errors."""


class MalformedFormatError(ResuseError, ValueError):
    """
    The format string ended with a lone ``%``.

    The ``?`` marker has already been written to the output when this is
    raised. ``partial`` holds the text rendered before the failure when it is
    known (string rendering), otherwise ``None``.
    """

    def __init__(self, fmt: str, partial: str | None = None) -> None:
        super().__init__(f"format string ends with a bare '%': {fmt!r}")
        self.fmt = fmt
        self.partial = partial


class SnapshotStateError(ResuseError, RuntimeError):
    """A snapshot was used out of its begin -> finish -> render order."""


class UsageQueryError(ResuseError, OSError):
    """The kernel resource usage query failed or the scope is unsupported."""
