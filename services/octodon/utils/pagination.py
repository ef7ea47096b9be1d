"""
Cursor pagination over the newest-first status list.

Cursors are status ids and are resolved by position in the list, never by
comparing id values. A cursor that is not in the list filters nothing, so
stale client cursors degrade to an unfiltered page instead of an error.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union
from urllib.parse import urlencode

from services.octodon.schemas.status import Status

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 40

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class PaginationParams:
    """Query parameters of a Mastodon list endpoint."""

    limit: Optional[Union[int, str]] = None
    max_id: Optional[str] = None
    since_id: Optional[str] = None
    min_id: Optional[str] = None


def parse_limit(
    raw: Optional[Union[int, str]],
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    """
    Turn a requested page size into one within ``[1, maximum]``.

    Text is read up to its first non-digit, so ``"10abc"`` means 10. Absent or
    non-numeric input gives ``default``.

    >>> parse_limit("100"), parse_limit("0"), parse_limit("abc"), parse_limit(None)
    (40, 1, 20, 20)
    """
    if raw is None or isinstance(raw, bool):
        value = default
    elif isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(raw)
        value = int(match.group(1)) if match else default
    return max(1, min(value, maximum))


def _position(posts: Sequence[Status], status_id: str) -> Optional[int]:
    for index, post in enumerate(posts):
        if post.id == status_id:
            return index
    return None


def paginate(
    posts: Sequence[Status],
    params: PaginationParams,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> List[Status]:
    """
    Compute one page of ``posts`` (ordered newest first).

    Only one cursor is honored, chosen by precedence ``max_id`` >
    ``since_id`` > ``min_id``:

    - ``max_id``: posts older than the cursor
    - ``since_id``: posts newer than the cursor, newest first
    - ``min_id``: posts newer than the cursor, oldest first

    The result is then cut to the clamped ``limit``.
    """
    window: List[Status] = list(posts)

    if params.max_id:
        index = _position(window, params.max_id)
        if index is not None:
            window = window[index + 1 :]
    elif params.since_id:
        index = _position(window, params.since_id)
        if index is not None:
            window = window[:index]
    elif params.min_id:
        index = _position(window, params.min_id)
        if index is not None:
            window = window[:index][::-1]

    limit = parse_limit(params.limit, default_page_size, max_page_size)
    return window[:limit]


def build_link_header(
    base_url: str, page: Sequence[Status], limit: int
) -> Optional[str]:
    """
    Mastodon-style ``Link`` header for the page, or None when it is empty.

    ``next`` continues below the oldest post shown, ``prev`` above the newest.
    """
    if not page:
        return None

    ordered = sorted(page, key=lambda s: (s.created_at, s.id))
    oldest, newest = ordered[0], ordered[-1]
    next_url = f"{base_url}?{urlencode({'limit': limit, 'max_id': oldest.id})}"
    prev_url = f"{base_url}?{urlencode({'limit': limit, 'min_id': newest.id})}"
    return f'<{next_url}>; rel="next", <{prev_url}>; rel="prev"'
