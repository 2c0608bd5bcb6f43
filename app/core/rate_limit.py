"""
Per-user, per-route sliding-window rate limiting.

A RateLimitPolicy (limit, window) is declared next to each route and
enforced through the `RateLimit` dependency. Hit timestamps live in a
RateLimitStore:

  RedisRateLimitStore     one sorted set per key, shared by every worker
                          and instance; used when REDIS_URL is set
  InMemoryRateLimitStore  per process; used when REDIS_URL is unset or
                          Redis cannot be reached at startup

A Redis error during a request is logged and the request is let through.
"""
from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import redis
from fastapi import Depends
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.errors import RateLimitedError
from app.core.security import get_current_user
from app.models.user import User

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "rate_limit:"


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_seconds: float = 60.0


class RateLimitStore(Protocol):
    def hits_since(self, key: str, since: float) -> list[float]:
        """Drop hits at or before `since` and return the remaining ones, oldest first."""

    def add_hit(self, key: str, at: float, ttl_seconds: float) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryRateLimitStore:
    def __init__(self):
        self._hits: dict[str, list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def hits_since(self, key: str, since: float) -> list[float]:
        with self._lock:
            kept = [ts for ts in self._hits.get(key, []) if ts > since]
            if kept:
                self._hits[key] = kept
            else:
                self._hits.pop(key, None)
            return list(kept)

    def add_hit(self, key: str, at: float, ttl_seconds: float) -> None:
        with self._lock:
            self._hits[key].append(at)

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


class RedisRateLimitStore:
    """Hits as members of a sorted set scored by their timestamp."""

    def __init__(self, client: redis.Redis, prefix: str = REDIS_KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def hits_since(self, key: str, since: float) -> list[float]:
        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(self._key(key), "-inf", since)
            pipe.zrange(self._key(key), 0, -1, withscores=True)
            _, members = pipe.execute()
        except RedisError as exc:
            logger.error("Rate limit read failed for %s, allowing request: %s", key, exc)
            return []
        return [float(score) for _, score in members]

    def add_hit(self, key: str, at: float, ttl_seconds: float) -> None:
        # Unique member so two hits in the same instant both count.
        member = f"{at}:{uuid.uuid4().hex}"
        try:
            pipe = self.client.pipeline()
            pipe.zadd(self._key(key), {member: at})
            pipe.expire(self._key(key), max(math.ceil(ttl_seconds), 1))
            pipe.execute()
        except RedisError as exc:
            logger.error("Rate limit write failed for %s: %s", key, exc)

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
        if keys:
            self.client.delete(*keys)


def build_store(redis_url: Optional[str] = None) -> RateLimitStore:
    """Redis when a URL is configured and reachable, otherwise in-memory."""
    url = redis_url if redis_url is not None else settings.REDIS_URL
    if not url:
        return InMemoryRateLimitStore()
    try:
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        client.ping()
    except RedisError as exc:
        logger.warning("Redis unavailable (%s), rate limits are per process", exc)
        return InMemoryRateLimitStore()
    logger.info("Rate limits stored in Redis")
    return RedisRateLimitStore(client)


class SlidingWindowLimiter:
    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store or InMemoryRateLimitStore()
        self.clock = clock

    def check(self, user_id: int, route: str, policy: RateLimitPolicy) -> None:
        """Record a hit, or raise RateLimitedError if the window is full."""
        key = f"{user_id}:{route}"
        now = self.clock()
        hits = self.store.hits_since(key, now - policy.window_seconds)
        if len(hits) >= policy.limit:
            retry_after = max(math.ceil(hits[0] + policy.window_seconds - now), 1)
            logger.warning("Rate limit hit user=%s route=%s retry_after=%ss", user_id, route, retry_after)
            raise RateLimitedError(route=route, retry_after=retry_after)
        self.store.add_hit(key, now, policy.window_seconds)


limiter = SlidingWindowLimiter(store=build_store())


class RateLimit:
    """
    FastAPI dependency: `user = Depends(RateLimit("tasks:get", 60))`.
    Resolves and returns the current user.
    """

    def __init__(self, route: str, limit: int, window_seconds: float = 60.0):
        self.route = route
        self.policy = RateLimitPolicy(limit=limit, window_seconds=window_seconds)

    def __call__(self, user: User = Depends(get_current_user)) -> User:
        if settings.RATE_LIMIT_ENABLED:
            limiter.check(user.id, self.route, self.policy)
        return user
