"""KeyValueCache em memória (dev/testes e fallback quando Redis cai)."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class InMemoryKeyValueCache(KeyValueCache):
    """Cache em memória com expiração preguiçosa.

    Estrutura interna:
        {key: (value, expire_at_seconds)}

    O relógio é injetável para testes determinísticos de TTL.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # noqa: A003
        with self._lock:
            self._cleanup_expired()
            self._entries[key] = (value, self._clock() + ttl_seconds)
        logger.debug("Cache set (in-memory)", extra={"key": key, "ttl_seconds": ttl_seconds})

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def pop(self, key: str) -> str | None:
        with self._lock:
            value = self._live_value(key)
            self._entries.pop(key, None)
            return value

    def __len__(self) -> int:
        with self._lock:
            self._cleanup_expired()
            return len(self._entries)

    def _live_value(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expire_at = entry
        if self._clock() >= expire_at:
            del self._entries[key]
            logger.debug("Cache entry expired (in-memory)", extra={"key": key})
            return None
        return value

    def _cleanup_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (_, expire_at) in self._entries.items() if now >= expire_at]
        for key in expired:
            del self._entries[key]
