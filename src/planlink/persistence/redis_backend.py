"""Redis cache for reference-table snapshots.

DynamoDBRecordStore keeps whole plan, option, rate, provider and group tables
here as JSON. ``key_prefix`` namespaces every key so several environments can
share one Redis database.
"""

from __future__ import annotations

from typing import Any, Callable

import redis

from planlink.core.exceptions import CacheError


class RedisCacheBackend:
    """ICacheBackend backed by Redis. Every client failure surfaces as CacheError."""

    def __init__(
        self, host: str = "localhost", port: int = 6379, db: int = 0, key_prefix: str = "",
    ) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._key_prefix = key_prefix
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _call(self, op: str, key: str, fn: Callable[[str], Any]) -> Any:
        full_key = f"{self._key_prefix}{key}"
        try:
            return fn(full_key)
        except redis.RedisError as exc:
            raise CacheError(f"Redis {op} failed for key={full_key!r}: {exc}") from exc

    def get(self, key: str) -> str | None:
        return self._call("GET", key, self._client.get)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._call("SETEX", key, lambda k: self._client.setex(k, ttl, value))

    def delete(self, key: str) -> None:
        self._call("DELETE", key, self._client.delete)

    def ping(self) -> bool:
        """Readiness check for ``/ready``."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as exc:
            raise CacheError(f"Redis PING failed for {self._host}:{self._port}: {exc}") from exc
