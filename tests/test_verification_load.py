"""Verification Test: Concurrent rendering under load.

A finished snapshot is read-only, so any number of threads may render it at
once. Every rendering must be byte-identical to a single-threaded one.
"""

from concurrent.futures import ThreadPoolExecutor
from io import StringIO

import pytest

from resuse.source import begin, finish
from resuse.template import DEFAULT_FORMAT, PORTABLE_FORMAT, UsageFormatter, format_usage
from resuse.units import page_size

FORMATS = [
    DEFAULT_FORMAT,
    PORTABLE_FORMAT,
    "%E %e %P %K %D %X %p %t %Z %c %w\\n",
    "%Q \\q %%",
]


@pytest.fixture
def finished_snapshot():
    """A real measurement of a short busy loop."""
    snapshot = begin()
    sum(i * i for i in range(100_000))
    return finish(snapshot)


class TestConcurrentRendering:
    """Load verification suite tests."""

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_threads_render_identical_output(self, finished_snapshot, fmt):
        """Test many threads rendering one snapshot agree byte for byte."""
        expected = format_usage(fmt, finished_snapshot)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: format_usage(fmt, finished_snapshot), range(400)))

        assert set(results) == {expected}

    def test_shared_formatter(self, finished_snapshot):
        """Test a single formatter can be shared between threads."""
        formatter = UsageFormatter(finished_snapshot)

        def render_once(_: int) -> str:
            buffer = StringIO()
            formatter.render(DEFAULT_FORMAT, buffer)
            return buffer.getvalue()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(render_once, range(400)))

        assert len(set(results)) == 1

    def test_page_size_race_on_first_use(self, finished_snapshot):
        """Test rendering while the page size cache is cold."""
        page_size.cache_clear()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: format_usage("%Z %M", finished_snapshot), range(200)))

        assert len(set(results)) == 1
        assert results[0].startswith(str(page_size()))
