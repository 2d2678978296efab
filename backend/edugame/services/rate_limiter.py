"""Redis-backed leaky-bucket rate limiter for the public contact form.

Algorithm
---------
Each bucket is a Redis key that stores the number of *tokens* (remaining
requests) and the timestamp of the last refill.  Tokens leak back at a
constant rate of ``RPM / 60`` per second up to a maximum of ``BURST``.
A request is allowed only when at least one token is available; otherwise
a 429 response is returned.  Redis errors fail open.
"""

import logging
import time

from fastapi import HTTPException, Request, status

from edugame.config import settings
from edugame.services.redis_client import get_redis

logger = logging.getLogger(__name__)

# KEYS[1] = bucket key
# ARGV[1] = max tokens (burst), ARGV[2] = refill rate (tokens/s), ARGV[3] = now
# Returns 1 if the request is allowed, 0 if rejected.
_LUA_SCRIPT = """
local key         = KEYS[1]
local max_tokens  = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local now         = tonumber(ARGV[3])

local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
local tokens      = tonumber(bucket[1])
local last_refill = tonumber(bucket[2])

if tokens == nil then
    tokens = max_tokens
    last_refill = now
end

local elapsed = math.max(0, now - last_refill)
tokens = math.min(max_tokens, tokens + elapsed * refill_rate)

local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end

redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
redis.call('EXPIRE', key, 300)
return allowed
"""


def _client_key(request: Request) -> str:
    """Bucket per client IP; the contact form is unauthenticated."""
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else "unknown")
    return f"rl:contact:ip:{ip}"


def _check(bucket_key: str) -> bool:
    """Return True if the request should be allowed."""
    rpm = settings.RATE_LIMIT_CONTACT_RPM
    burst = settings.RATE_LIMIT_CONTACT_BURST
    if rpm <= 0:
        return True  # disabled

    try:
        allowed = get_redis().eval(_LUA_SCRIPT, 1, bucket_key, burst, rpm / 60.0, time.time())
        return bool(allowed)
    except Exception as e:
        logger.warning("Rate-limiter Redis error (allowing request): %s", e)
        return True


async def require_contact_rate_limit(request: Request) -> None:
    """FastAPI dependency: raises 429 if the caller exceeds the limit."""
    key = _client_key(request)
    if not _check(key):
        logger.info("Rate-limited: %s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many messages, please try again later.",
        )
