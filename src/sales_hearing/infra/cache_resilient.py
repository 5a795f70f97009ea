"""Cache que degrada para memória quando o backend primário falha.

Mesmo contrato externo, durabilidade diferente: se o Redis estiver fora,
as operações passam a usar o cache em memória injetado. Sem singletons
de módulo; o fallback é uma dependência explícita.
"""

from __future__ import annotations

import logging

from sales_hearing.domain.errors import CacheError
from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.observability.logging import get_logger, log_fallback

logger: logging.Logger = get_logger(__name__)


class ResilientKeyValueCache(KeyValueCache):
    """Encaminha para `primary`; em CacheError usa `fallback`."""

    def __init__(self, primary: KeyValueCache, fallback: KeyValueCache) -> None:
        self._primary = primary
        self._fallback = fallback

    def get(self, key: str) -> str | None:
        try:
            value = self._primary.get(key)
        except CacheError:
            log_fallback(logger, "cache", reason="primary_get_failed")
            return self._fallback.get(key)
        return value if value is not None else self._fallback.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # noqa: A003
        try:
            self._primary.set(key, value, ttl_seconds)
        except CacheError:
            log_fallback(logger, "cache", reason="primary_set_failed")
            self._fallback.set(key, value, ttl_seconds)

    def delete(self, key: str) -> bool:
        deleted = self._fallback.delete(key)
        try:
            return self._primary.delete(key) or deleted
        except CacheError:
            log_fallback(logger, "cache", reason="primary_delete_failed")
            return deleted

    def pop(self, key: str) -> str | None:
        try:
            value = self._primary.pop(key)
        except CacheError:
            log_fallback(logger, "cache", reason="primary_pop_failed")
            return self._fallback.pop(key)
        # Entradas gravadas durante indisponibilidade ficam no fallback
        return value if value is not None else self._fallback.pop(key)
