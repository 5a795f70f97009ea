"""Factory do armazenamento de sessões de hearing."""

from __future__ import annotations

from typing import Any

from sales_hearing.infra.session_contract import HearingSessionStore
from sales_hearing.infra.session_store_memory import InMemorySessionStore
from sales_hearing.infra.session_store_redis import RedisSessionStore


def create_session_store(backend: str = "memory", client: Any = None) -> HearingSessionStore:
    """Cria store de sessão conforme backend.

    Args:
        backend: memory | redis
        client: Cliente Redis (obrigatório para backend=redis)

    Raises:
        ValueError: Backend inválido ou cliente ausente
    """
    backend = backend.lower()
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "redis":
        if client is None:
            raise ValueError("redis client é obrigatório para session_store_backend=redis")
        return RedisSessionStore(client)
    raise ValueError(f"Unknown session store backend: {backend}")
