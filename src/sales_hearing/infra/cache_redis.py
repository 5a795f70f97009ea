"""KeyValueCache usando Redis (produção)."""

from __future__ import annotations

import logging
from typing import Any

from sales_hearing.domain.errors import CacheError
from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


def _decode(payload: Any) -> str | None:
    if payload is None:
        return None
    if isinstance(payload, bytes):
        return payload.decode("utf-8")
    return str(payload)


class RedisKeyValueCache(KeyValueCache):
    """Cache em Redis com TTL nativo.

    Todas as falhas do cliente são logadas e convertidas em CacheError.
    `pop` usa GETDEL (Redis >= 6.2) para leitura e remoção atômicas.
    """

    def __init__(self, redis_client: Any) -> None:
        self._redis = redis_client

    def get(self, key: str) -> str | None:
        try:
            return _decode(self._redis.get(key))
        except Exception as e:
            logger.error("Failed to read cache key from Redis", extra={"key": key, "error": str(e)})
            raise CacheError(f"Redis get failed: {e}") from e

    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # noqa: A003
        try:
            self._redis.setex(key, ttl_seconds, value)
        except Exception as e:
            logger.error("Failed to write cache key to Redis", extra={"key": key, "error": str(e)})
            raise CacheError(f"Redis set failed: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self._redis.delete(key))
        except Exception as e:
            logger.error(
                "Failed to delete cache key from Redis", extra={"key": key, "error": str(e)}
            )
            raise CacheError(f"Redis delete failed: {e}") from e

    def pop(self, key: str) -> str | None:
        try:
            return _decode(self._redis.getdel(key))
        except Exception as e:
            logger.error("Failed to pop cache key from Redis", extra={"key": key, "error": str(e)})
            raise CacheError(f"Redis getdel failed: {e}") from e
