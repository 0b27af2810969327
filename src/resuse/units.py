"""Page size and page to kilobyte conversion."""

import resource
import sys
from functools import cache

# Largest value of the host's signed machine word.
MAXINT = sys.maxsize


@cache
def page_size() -> int:
    """Return the runtime page size in bytes, queried once per process."""
    return resource.getpagesize()


def pages_to_kb(pages: int, size: int | None = None) -> int:
    """
    Convert a page count to kilobytes.

    Pages that would overflow a machine word when multiplied by the page
    size are divided first; everything else is multiplied first so that no
    precision is lost to the division.

    Args:
        pages: Number of pages.
        size: Page size in bytes. Defaults to the runtime page size.

    Returns:
        The size of ``pages`` in kilobytes.
    """
    if pages < 0:
        raise ValueError(f"page count must be non-negative, got {pages}")
    if size is None:
        size = page_size()
    if size <= 0:
        raise ValueError(f"page size must be positive, got {size}")
    if pages > MAXINT // size:
        return (pages // 1024) * size
    return (pages * size) // 1024
