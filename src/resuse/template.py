"""
Render a usage snapshot through a ``%``-directive template.

The template language is the one used by GNU time:

* any character other than ``%`` and ``\\`` is copied as is;
* ``\\t``, ``\\n`` and ``\\\\`` produce a tab, a newline and a backslash;
  any other escape is echoed as ``?\\`` followed by the character;
* ``%%`` produces ``%`` and ``%X`` produces the quantity named by the
  directive letter ``X``; an unknown letter is echoed as ``?X``;
* a ``%`` at the very end of the template writes ``?`` and aborts with
  ``MalformedFormatError``.
"""

import sys
from collections.abc import Callable
from enum import Enum, auto
from io import StringIO
from typing import TextIO

from resuse.errors import MalformedFormatError
from resuse.models import TimeVal, UsageSnapshot
from resuse.units import page_size, pages_to_kb

# Clock ticks per second the kernel samples the integral sizes at.
TICKS_PER_SEC = 100

DEFAULT_FORMAT = (
    "%Uuser %Ssystem %Eelapsed %PCPU (%Xavgtext+%Davgdata %Mmaxresident)k\n"
    "%Iinputs+%Ooutputs (%Fmajor+%Rminor)pagefaults %Wswaps\n"
)
PORTABLE_FORMAT = "real %e\nuser %U\nsys %S\n"

ESCAPES = {"t": "\t", "n": "\n", "\\": "\\"}


class _State(Enum):
    """Scanner states."""

    LITERAL = auto()
    AFTER_PERCENT = auto()
    AFTER_BACKSLASH = auto()


def _seconds(value: TimeVal) -> str:
    return f"{value.seconds}.{value.centiseconds:02d}"


class UsageFormatter:
    """
    Renders one finished snapshot.

    The snapshot is only read, so a single formatter (or several) can render
    it any number of times, from any number of threads.

    The average size directives follow time(1): ``%D`` and ``%K`` convert
    each integral to kilobytes, divide each one by the tick count and then
    add the quotients. They do not divide the summed integrals, so
    ``%D`` is ``kb(idrss) // t + kb(isrss) // t`` rather than
    ``(kb(idrss) + kb(isrss)) // t`` and the two can differ by one per term.
    """

    def __init__(
        self,
        snapshot: UsageSnapshot,
        ticks_per_second: int = TICKS_PER_SEC,
        page_size: int | None = None,
    ) -> None:
        """
        Initialize the UsageFormatter.

        Args:
            snapshot: A snapshot that has been through ``finish``.
            ticks_per_second: Rate the kernel sampled the integral memory
                sizes at. Must divide 1000.
            page_size: Page size in bytes. Defaults to the runtime page size.
        """
        self._snapshot = snapshot.require_stopped()
        self._counters = snapshot.counters
        self._ticks_per_second = TICKS_PER_SEC
        self.ticks_per_second = ticks_per_second
        self._page_size: int | None = None
        self.page_size = page_size
        self._directives: dict[str, Callable[[], str]] = {
            "D": self._avg_unshared,
            "E": self._elapsed_clock,
            "F": lambda: str(self._counters.majflt),
            "I": lambda: str(self._counters.inblock),
            "K": self._avg_total,
            "M": lambda: str(self._kb(self._counters.maxrss)),
            "O": lambda: str(self._counters.oublock),
            "P": self._percent_cpu,
            "R": lambda: str(self._counters.minflt),
            "S": lambda: _seconds(self._counters.stime),
            "U": lambda: _seconds(self._counters.utime),
            "W": lambda: str(self._counters.nswap),
            "X": lambda: self._average(self._counters.ixrss),
            "Z": lambda: str(self.page_size),
            "c": lambda: str(self._counters.nivcsw),
            "e": lambda: _seconds(self._snapshot.elapsed),
            "k": lambda: str(self._counters.nsignals),
            "p": lambda: self._average(self._counters.isrss),
            "r": lambda: str(self._counters.msgrcv),
            "s": lambda: str(self._counters.msgsnd),
            "t": lambda: self._average(self._counters.idrss),
            "w": lambda: str(self._counters.nvcsw),
        }

    @property
    def snapshot(self) -> UsageSnapshot:
        return self._snapshot

    @property
    def ticks_per_second(self) -> int:
        """Get the clock tick rate used for the average size directives."""
        return self._ticks_per_second

    @ticks_per_second.setter
    def ticks_per_second(self, value: int) -> None:
        """Set the clock tick rate."""
        if value <= 0 or 1000 % value:
            raise ValueError(f"ticks per second must divide 1000, got {value}")
        self._ticks_per_second = value

    @property
    def page_size(self) -> int:
        """Get the page size in bytes."""
        return self._page_size if self._page_size is not None else page_size()

    @page_size.setter
    def page_size(self, value: int | None) -> None:
        """Set the page size in bytes, or None for the runtime page size."""
        if value is not None and value <= 0:
            raise ValueError(f"page size must be positive, got {value}")
        self._page_size = value

    @property
    def directives(self) -> frozenset[str]:
        """The directive letters this formatter understands, besides ``%``."""
        return frozenset(self._directives)

    def value(self, letter: str) -> str:
        """
        Render a single directive.

        Raises:
            KeyError: ``letter`` is not a known directive.
        """
        return self._directives[letter]()

    def render(self, fmt: str, stream: TextIO) -> None:
        """
        Render ``fmt`` to ``stream``.

        Args:
            fmt: The template.
            stream: Any object with a text ``write`` method. Errors raised by
                it are not caught.

        Raises:
            MalformedFormatError: ``fmt`` ends with a lone ``%``. Everything
                before it, and the ``?`` marker, has already been written.
        """
        write = stream.write
        state = _State.LITERAL

        for char in fmt:
            if state is _State.AFTER_PERCENT:
                if char == "%":
                    write("%")
                elif char in self._directives:
                    write(self._directives[char]())
                else:
                    write("?" + char)
                state = _State.LITERAL
            elif state is _State.AFTER_BACKSLASH:
                write(ESCAPES.get(char, "?\\" + char))
                state = _State.LITERAL
            elif char == "%":
                state = _State.AFTER_PERCENT
            elif char == "\\":
                state = _State.AFTER_BACKSLASH
            else:
                write(char)

        if state is _State.AFTER_PERCENT:
            write("?")
            raise MalformedFormatError(fmt)
        if state is _State.AFTER_BACKSLASH:
            write("?\\")

    # Derived quantities

    def _kb(self, pages: int) -> int:
        return pages_to_kb(pages, self.page_size)

    def _ticks(self) -> int:
        """CPU time of the interval in clock ticks."""
        return self._counters.cpu_milliseconds // (1000 // self._ticks_per_second)

    def _average(self, *integrals: int) -> str:
        """Sum of the per-tick averages of page-tick integrals, in kilobytes."""
        ticks = self._ticks()
        if ticks == 0:
            return "0"
        return str(sum(self._kb(integral) // ticks for integral in integrals))

    def _avg_unshared(self) -> str:
        return self._average(self._counters.idrss, self._counters.isrss)

    def _avg_total(self) -> str:
        return self._average(self._counters.idrss, self._counters.isrss, self._counters.ixrss)

    def _elapsed_clock(self) -> str:
        elapsed = self._snapshot.elapsed
        seconds = elapsed.seconds
        if seconds >= 3600:
            return f"{seconds // 3600}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"
        return f"{seconds // 60}:{seconds % 60:02d}.{elapsed.centiseconds:02d}"

    def _percent_cpu(self) -> str:
        # Truncated, as time(1) has always reported it.
        real = self._snapshot.elapsed_milliseconds
        if real == 0:
            return "?%"
        return f"{self._counters.cpu_milliseconds * 100 // real}%"


def fprint(
    stream: TextIO,
    fmt: str,
    snapshot: UsageSnapshot,
    *,
    ticks_per_second: int = TICKS_PER_SEC,
    page_size: int | None = None,
) -> None:
    """Render ``snapshot`` through ``fmt`` to ``stream``."""
    UsageFormatter(snapshot, ticks_per_second, page_size).render(fmt, stream)


def print_usage(fmt: str, snapshot: UsageSnapshot, **options) -> None:
    """Render ``snapshot`` through ``fmt`` to standard output."""
    fprint(sys.stdout, fmt, snapshot, **options)


def format_usage(fmt: str, snapshot: UsageSnapshot, **options) -> str:
    """
    Render ``snapshot`` through ``fmt`` and return the text.

    Raises:
        MalformedFormatError: ``fmt`` ends with a lone ``%``; the text
            rendered up to and including the ``?`` marker is in ``partial``.
    """
    buffer = StringIO()
    try:
        fprint(buffer, fmt, snapshot, **options)
    except MalformedFormatError as e:
        e.partial = buffer.getvalue()
        raise
    return buffer.getvalue()
