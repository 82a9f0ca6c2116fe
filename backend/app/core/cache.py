"""
Read-path response cache backed by Redis

Stores JSON payloads under keys of the form
    cache:{kind}:{path?query}:{user}
so a whole family of responses (e.g. every product listing) can be dropped
with one pattern. The cache is best effort: Redis errors are logged and the
request falls through to the database.
"""
import json
import asyncio
import hashlib
import logging
from typing import Any, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import settings
from app.core.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)


class CacheClient:
    """Thin JSON wrapper over redis.asyncio; disabled when no client is given"""

    def __init__(self, redis: Optional[aioredis.Redis] = None, prefix: str = "cache"):
        self.redis = redis
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: Optional[str]) -> "CacheClient":
        if not url:
            logger.info("REDIS_URL not configured - response cache disabled")
            return cls(None, prefix=settings.CACHE_KEY_PREFIX)
        client = aioredis.from_url(url, decode_responses=True)
        logger.info("Redis cache client configured")
        return cls(client, prefix=settings.CACHE_KEY_PREFIX)

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def build_key(self, kind: str, path: str, user_id: Optional[str] = None) -> str:
        return f"{self.prefix}:{kind}:{path}:{user_id or 'anonymous'}"

    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.error(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        if not self.enabled:
            return False
        try:
            await self.redis.set(key, dump_payload(value), ex=ttl)
            return True
        except RedisError as e:
            logger.error(f"Failed to cache response for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; returns the number removed"""
        if not self.enabled:
            return 0
        try:
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if not keys:
                return 0
            removed = await self.redis.delete(*keys)
        except RedisError as e:
            logger.error(f"Cache invalidation failed for {pattern}: {e}")
            return 0
        logger.info(f"Cache invalidated: pattern={pattern} count={removed}")
        return removed

    async def invalidate_products(self) -> int:
        return await self.delete_pattern(f"{self.prefix}:product*")

    async def close(self) -> None:
        if self.enabled:
            await self.redis.aclose()


def dump_payload(value: Any) -> str:
    """Serialize a response payload deterministically (stable ETags)"""
    return json.dumps(value, default=str, sort_keys=True, separators=(",", ":"))


def compute_etag(payload: str) -> str:
    return '"' + hashlib.md5(payload.encode("utf-8")).hexdigest() + '"'


async def cached_json_response(
    request: Request,
    cache: CacheClient,
    kind: str,
    ttl: int,
    load: Callable[[], Any],
    user_id: Optional[str] = None,
) -> Response:
    """
    Serve a JSON payload through the cache

    `load` is only called on a miss, in a worker thread so a blocking
    database read never stalls the event loop. Adds X-Cache, ETag and
    Cache-Control headers and answers 304 when If-None-Match matches the
    payload's ETag.
    """
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    key = cache.build_key(kind, path, user_id)

    payload = await cache.get(key)
    hit = payload is not None
    if hit:
        cache_hits_total.labels(cache_type=kind).inc()
    else:
        cache_misses_total.labels(cache_type=kind).inc()
        payload = await asyncio.to_thread(load)
        await cache.set(key, payload, ttl)

    body = dump_payload(payload)
    etag = compute_etag(body)
    headers = {
        "X-Cache": "HIT" if hit else "MISS",
        "ETag": etag,
        "Cache-Control": f"public, max-age={ttl}",
    }

    if request.headers.get("If-None-Match") == etag:
        return Response(status_code=304, headers=headers)

    return Response(content=body, media_type="application/json", headers=headers)
