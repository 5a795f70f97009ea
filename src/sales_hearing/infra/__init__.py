"""Camada de infraestrutura: cache de prefetch e armazenamento de sessões.

Uso típico:
    from sales_hearing.infra import create_cache, create_session_store
"""

from sales_hearing.infra.cache import create_cache
from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.infra.session_contract import HearingSessionStore
from sales_hearing.infra.session_store import create_session_store

__all__ = [
    "HearingSessionStore",
    "KeyValueCache",
    "create_cache",
    "create_session_store",
]
