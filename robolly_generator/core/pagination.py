"""Cursor-based pagination walk shared by the list operations.

Pure logic: the page fetcher is injected, so the loop is testable offline.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_PAGES = 100


def parse_limit(return_all: bool, limit) -> Optional[int]:
    """Return ``None`` when every item is wanted, else a positive int.

    ``limit`` may be an int or a numeric string. Raises ``ValueError`` for
    anything that is not a positive whole number.
    """
    if return_all:
        return None
    if limit is None or (isinstance(limit, str) and not limit.strip()):
        raise ValueError('A limit is required when not returning all items')
    if isinstance(limit, bool):
        raise ValueError('Limit must be a positive number')
    try:
        value = int(str(limit).strip())
    except ValueError:
        raise ValueError(f'Limit must be a positive number, got {limit!r}')
    if value < 1:
        raise ValueError(f'Limit must be a positive number, got {limit!r}')
    return value


def collect_pages(
    fetch_page: Callable[[Optional[str]], Dict[str, Any]],
    item_key: str,
    limit: Optional[int] = None,
    item_filter: Optional[Callable[[Dict[str, Any]], bool]] = None,
    max_pages: int = MAX_PAGES,
) -> List[Dict[str, Any]]:
    """Walk a paginated listing and merge its pages.

    ``fetch_page(cursor)`` returns one decoded response. The walk stops when
    ``limit`` items were collected, when the page reports no more results or
    no next cursor, when the page lacks ``item_key`` or after ``max_pages``
    requests.
    """
    collected: List[Dict[str, Any]] = []
    cursor = None

    for page_number in range(1, max_pages + 1):
        page = fetch_page(cursor)
        items = page.get(item_key) if isinstance(page, dict) else None
        if not isinstance(items, list):
            logger.debug("Page %d has no '%s' list, stopping", page_number, item_key)
            break

        if item_filter is not None:
            items = [item for item in items if item_filter(item)]
        collected.extend(items)

        if limit and len(collected) >= limit:
            return collected[:limit]

        cursor = page.get('paginationCursorNext')
        if not page.get('hasMore') or not cursor:
            break
    else:
        logger.warning("Stopped after %d pages of '%s'", max_pages, item_key)

    return collected
