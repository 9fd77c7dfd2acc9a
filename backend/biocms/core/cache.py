"""
Response Cache - TTL cache in front of public read endpoints

Cache Strategy:
- Only anonymous GET requests under a configured public prefix are cached
- Key is the full request path including the query string
- Entries expire after the prefix's TTL; expired entries are dropped lazily on
  read and by a periodic sweep task
- A successful write under a prefix invalidates that prefix and its related
  prefixes (coarse invalidation; staleness is bounded by the TTL)
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from biocms.core.config import settings
from biocms.core.logging_config import logger


class CacheBackend:
    """Storage interface used by ResponseCache"""

    async def get(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    async def set(self, key: str, value: dict, ttl: int) -> None:
        raise NotImplementedError

    async def delete_prefix(self, prefix: str) -> int:
        raise NotImplementedError

    async def sweep(self) -> int:
        return 0

    async def clear(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryCacheBackend(CacheBackend):
    """
    Process-local cache; entries are (expires_at, value) pairs.

    Holds at most ``max_entries`` keys. When full, expired entries go first,
    then the entry closest to expiry.
    """

    def __init__(self, clock=time.monotonic, max_entries: Optional[int] = None):
        self._entries: Dict[str, Tuple[float, dict]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES

    async def get(self, key: str) -> Optional[dict]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: dict, ttl: int) -> None:
        async with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)
            self._entries[key] = (now + ttl, value)

    def _evict(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        while self._entries and len(self._entries) >= self.max_entries:
            soonest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[soonest]

    async def delete_prefix(self, prefix: str) -> int:
        async with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    async def sweep(self) -> int:
        async with self._lock:
            now = self._clock()
            expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheBackend(CacheBackend):
    """Redis cache; expiry is enforced by Redis itself via SETEX"""

    def __init__(self, url: Optional[str] = None, key_prefix: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.key_prefix = key_prefix if key_prefix is not None else settings.CACHE_KEY_PREFIX
        self._redis: Optional[redis.Redis] = None

    async def _get_redis(self) -> redis.Redis:
        """Lazy initialization of Redis connection"""
        if self._redis is None:
            self._redis = redis.from_url(
                self.url,
                db=settings.REDIS_CACHE_DB,
                encoding="utf-8",
                decode_responses=True
            )
            logger.info("Redis cache connection established")
        return self._redis

    async def get(self, key: str) -> Optional[dict]:
        r = await self._get_redis()
        data = await r.get(self.key_prefix + key)
        return json.loads(data) if data else None

    async def set(self, key: str, value: dict, ttl: int) -> None:
        r = await self._get_redis()
        await r.setex(self.key_prefix + key, ttl, json.dumps(value, default=str))

    async def delete_prefix(self, prefix: str) -> int:
        r = await self._get_redis()
        deleted = 0
        batch: List[str] = []
        async for key in r.scan_iter(match=f"{self.key_prefix}{prefix}*", count=100):
            batch.append(key)
            if len(batch) >= 100:
                deleted += await r.delete(*batch)
                batch = []
        if batch:
            deleted += await r.delete(*batch)
        return deleted

    async def clear(self) -> None:
        await self.delete_prefix("")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


class ResponseCache:
    """
    TTL cache service created at startup and stored on ``app.state``.

    Backend errors are logged and treated as misses; the cache never fails a
    request.
    """

    def __init__(self, backend: Optional[CacheBackend] = None, default_ttl: Optional[int] = None):
        self.backend = backend or MemoryCacheBackend()
        self.default_ttl = default_ttl or settings.CACHE_DEFAULT_TTL
        self._sweep_task: Optional[asyncio.Task] = None

    async def get(self, key: str) -> Optional[dict]:
        try:
            value = await self.backend.get(key)
        except Exception as e:
            logger.warning(f"Cache error (get): {e}")
            return None
        if value is not None:
            logger.debug(f"Cache HIT: {key}")
        else:
            logger.debug(f"Cache MISS: {key}")
        return value

    async def set(self, key: str, value: dict, ttl: Optional[int] = None) -> bool:
        try:
            await self.backend.set(key, value, ttl or self.default_ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache error (set): {e}")
            return False

    async def invalidate(self, prefix: str) -> int:
        try:
            removed = await self.backend.delete_prefix(prefix)
        except Exception as e:
            logger.warning(f"Cache error (invalidate): {e}")
            return 0
        if removed:
            logger.debug(f"Invalidated {removed} cache entries under {prefix}")
        return removed

    async def sweep(self) -> int:
        try:
            return await self.backend.sweep()
        except Exception as e:
            logger.warning(f"Cache error (sweep): {e}")
            return 0

    async def clear(self) -> None:
        await self.backend.clear()

    def start_sweep_task(self, interval: Optional[int] = None) -> None:
        """Start background sweep of expired entries"""
        period = interval or settings.CACHE_SWEEP_INTERVAL_SECONDS

        async def sweep_loop():
            while True:
                await asyncio.sleep(period)
                removed = await self.sweep()
                if removed:
                    logger.debug(f"Cache sweep removed {removed} expired entries")

        self._sweep_task = asyncio.create_task(sweep_loop())
        logger.info(f"Started cache sweep task (every {period}s)")

    async def stop_sweep_task(self) -> None:
        """Stop background sweep task"""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    async def close(self) -> None:
        await self.stop_sweep_task()
        await self.backend.close()


def create_response_cache() -> ResponseCache:
    """Build the cache service for the configured backend"""
    if settings.CACHE_BACKEND == "redis" and settings.REDIS_URL:
        return ResponseCache(RedisCacheBackend())
    return ResponseCache(MemoryCacheBackend())


# ============================================
# HTTP layer
# ============================================

API_PREFIX = f"/api/{settings.API_VERSION}"


@dataclass(frozen=True)
class CacheRule:
    """Public prefix with its TTL and the prefixes a write there invalidates"""
    prefix: str
    ttl: int
    invalidates: Tuple[str, ...] = ()

    def related_prefixes(self) -> Tuple[str, ...]:
        return (self.prefix,) + self.invalidates


CACHE_RULES: List[CacheRule] = [
    CacheRule(f"{API_PREFIX}/home", 300),
    CacheRule(
        f"{API_PREFIX}/biographies",
        300,
        invalidates=(f"{API_PREFIX}/home", f"{API_PREFIX}/categories"),
    ),
    CacheRule(
        f"{API_PREFIX}/categories",
        600,
        invalidates=(f"{API_PREFIX}/home", f"{API_PREFIX}/biographies"),
    ),
    CacheRule(f"{API_PREFIX}/pricing", 3600),
    CacheRule(f"{API_PREFIX}/faqs", 3600),
    CacheRule(f"{API_PREFIX}/settings", 600, invalidates=(f"{API_PREFIX}/home",)),
]

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def match_rule(path: str, rules: Optional[List[CacheRule]] = None) -> Optional[CacheRule]:
    for rule in rules if rules is not None else CACHE_RULES:
        if path == rule.prefix or path.startswith(rule.prefix + "/"):
            return rule
    return None


def cache_key(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def is_anonymous(request: Request) -> bool:
    return not request.headers.get("Authorization") and not request.cookies.get(settings.JWT_COOKIE_NAME)


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """
    Serves cached envelopes for anonymous GETs and invalidates on writes.
    The cache is read from ``app.state.response_cache``.
    """

    def __init__(self, app, rules: Optional[List[CacheRule]] = None):
        super().__init__(app)
        self.rules = rules if rules is not None else CACHE_RULES

    async def dispatch(self, request: Request, call_next) -> Response:
        cache: Optional[ResponseCache] = getattr(request.app.state, "response_cache", None)
        rule = match_rule(request.url.path, self.rules)
        if cache is None or rule is None or not settings.CACHE_ENABLED:
            return await call_next(request)

        if request.method not in SAFE_METHODS:
            response = await call_next(request)
            if response.status_code < 400:
                for prefix in rule.related_prefixes():
                    await cache.invalidate(prefix)
            return response

        if request.method != "GET" or not is_anonymous(request):
            return await call_next(request)

        key = cache_key(request)
        cached = await cache.get(key)
        if cached is not None:
            return JSONResponse(content={**cached, "fromCache": True}, headers={"X-Cache": "HIT"})

        response = await call_next(request)
        if response.status_code != 200 or not response.headers.get("content-type", "").startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            envelope = json.loads(body)
        except ValueError:
            envelope = None
        if isinstance(envelope, dict):
            await cache.set(key, envelope, rule.ttl)

        headers = dict(response.headers)
        headers.pop("content-length", None)
        headers["X-Cache"] = "MISS"
        return Response(
            content=body,
            status_code=response.status_code,
            headers=headers,
            media_type=response.media_type,
        )
