"""Cache invalidation helpers called from write paths."""

import logging

from app.core.cache import TTLCache

logger = logging.getLogger(__name__)


def invalidate_by_pattern(cache: TTLCache, pattern: str) -> int:
    """Delete every key containing ``pattern`` as a plain substring."""
    count = 0
    for key in cache.stats().keys:
        if pattern in key:
            cache.delete(key)
            count += 1
    logger.info("Invalidated %d cache entries matching %r", count, pattern)
    return count


def invalidate_path(cache: TTLCache, key: str) -> bool:
    """Delete a single key. Returns True if a live entry was removed."""
    existed = key in cache
    cache.delete(key)
    if existed:
        logger.info("Invalidated cache entry %r", key)
    return existed


def invalidate_all(cache: TTLCache) -> None:
    cache.clear()
    logger.info("All cache entries cleared")
