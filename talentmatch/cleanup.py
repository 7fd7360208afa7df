"""
Cleanup module for removing stale match cache rows.

A row is stale once its newest write is older than the longest field TTL
(default: 30 days); none of its values could be served any more.
"""

from datetime import datetime, timedelta
from typing import Tuple

from .cache import LONGEST_TTL
from .errors import StoreError
from .logger import get_logger
from .storage import Store

logger = get_logger()

DEFAULT_DAYS = LONGEST_TTL.days


def purge_stale_cache(store: Store, days: int = DEFAULT_DAYS) -> Tuple[int, int]:
    """
    Remove cache rows not written within the given number of days.

    Args:
        store: Store holding the match cache
        days: Number of days to keep rows (default: 30)

    Returns:
        Tuple of (rows_before, rows_after)
        Difference = rows_removed
    """
    if days < 0:
        raise ValueError("days cannot be negative")

    cutoff = datetime.now() - timedelta(days=days)
    logger.debug("Starting stale cache cleanup", days=days, cutoff=cutoff.isoformat())

    try:
        rows_before = store.count_cache_entries()
        removed = store.delete_cache_older_than(cutoff)
    except StoreError as e:
        logger.error(f"Cleanup failed: {e}", days=days)
        return (0, 0)

    rows_after = rows_before - removed
    logger.info(
        f"Cleanup complete: {removed} removed, {rows_after} remaining",
        rows_before=rows_before,
        rows_removed=removed,
        rows_after=rows_after,
        days_threshold=days,
    )
    return (rows_before, rows_after)
