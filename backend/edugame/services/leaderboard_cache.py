"""Redis-backed cache for leaderboard pages.

Rankings are recomputed from the database at most once per TTL for the same
period + page parameters. Keys are content-addressed (SHA-256 of the
serialised parameters). Every Redis failure is non-fatal: the caller simply
recomputes.
"""

import hashlib
import json
import logging
from typing import Any

from edugame.config import settings
from edugame.services.redis_client import get_redis

logger = logging.getLogger(__name__)

_KEY_PREFIX = "leaderboard_cache"


def _make_key(period: str, params: dict[str, Any]) -> str:
    """Create a deterministic cache key from period + sorted param hash."""
    serialised = json.dumps(params, sort_keys=True, default=str)
    digest = hashlib.sha256(serialised.encode()).hexdigest()[:16]
    return f"{_KEY_PREFIX}:{period}:{digest}"


def cache_get(period: str, params: dict[str, Any]) -> dict[str, Any] | None:
    """Retrieve a cached leaderboard page (or None on miss/disabled)."""
    if not settings.LEADERBOARD_CACHE_ENABLED:
        return None
    try:
        key = _make_key(period, params)
        raw = get_redis().get(key)
        if raw:
            logger.debug("Leaderboard cache HIT: %s", key)
            return json.loads(raw)
        logger.debug("Leaderboard cache MISS: %s", key)
        return None
    except Exception as e:
        logger.warning("Leaderboard cache read failed (non-fatal): %s", e)
        return None


def cache_set(period: str, params: dict[str, Any], page: dict[str, Any]) -> None:
    """Store a rendered leaderboard page."""
    if not settings.LEADERBOARD_CACHE_ENABLED:
        return
    ttl = settings.LEADERBOARD_CACHE_TTL_SECONDS
    try:
        key = _make_key(period, params)
        get_redis().setex(key, ttl, json.dumps(page, default=str))
        logger.debug("Leaderboard cache SET: %s (ttl=%ds)", key, ttl)
    except Exception as e:
        logger.warning("Leaderboard cache write failed (non-fatal): %s", e)


def invalidate() -> None:
    """Drop every cached page; called after stats change."""
    if not settings.LEADERBOARD_CACHE_ENABLED:
        return
    try:
        r = get_redis()
        keys = list(r.scan_iter(match=f"{_KEY_PREFIX}:*"))
        if keys:
            r.delete(*keys)
            logger.debug("Leaderboard cache invalidated (%d keys)", len(keys))
    except Exception as e:
        logger.warning("Leaderboard cache invalidation failed (non-fatal): %s", e)
