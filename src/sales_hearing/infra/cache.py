"""Factory do cache de prefetch."""

from __future__ import annotations

from typing import Any

from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.infra.cache_memory import InMemoryKeyValueCache
from sales_hearing.infra.cache_redis import RedisKeyValueCache
from sales_hearing.infra.cache_resilient import ResilientKeyValueCache


def create_cache(backend: str = "memory", client: Any = None) -> KeyValueCache:
    """Cria o cache conforme backend.

    Args:
        backend: memory | redis
        client: Cliente Redis (obrigatório para backend=redis)

    Raises:
        ValueError: Backend inválido ou cliente ausente
    """
    backend = backend.lower()
    if backend == "memory":
        return InMemoryKeyValueCache()
    if backend == "redis":
        if client is None:
            raise ValueError("redis client é obrigatório para cache_backend=redis")
        return ResilientKeyValueCache(RedisKeyValueCache(client), InMemoryKeyValueCache())
    raise ValueError(f"Unknown cache backend: {backend}")
