"""Lenient pagination parameters.

Query strings come straight from the dashboard. Missing or non-numeric
values fall back to defaults instead of failing the request.
"""

from dataclasses import dataclass

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


@dataclass(frozen=True, slots=True)
class Page:
    limit: int
    offset: int = 0
    cursor: str | None = None


def parse_int(value: str | None, default: int) -> int:
    """Parse ``value`` as an int; ``default`` when missing or not a number."""
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def parse_page(
    limit: str | None = None,
    offset: str | None = None,
    cursor: str | None = None,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Build a Page from raw query values.

    Example:
        >>> parse_page("abc", "-3")
        Page(limit=100, offset=0, cursor=None)
        >>> parse_page("5000")
        Page(limit=1000, offset=0, cursor=None)
    """
    return Page(
        limit=max(1, min(parse_int(limit, page_size), MAX_PAGE_SIZE)),
        offset=max(0, parse_int(offset, 0)),
        cursor=cursor or None,
    )
