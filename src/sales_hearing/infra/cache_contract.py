"""Contrato do cache chave-valor volátil (prefetch de turnos).

Semântica: get / set com TTL / delete, mais `pop` (leitura e remoção
atômicas) usado para consumo at-most-once de turnos pré-computados.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueCache(ABC):
    """Cache volátil com expiração por chave."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Retorna o valor se presente e não expirado."""
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:  # noqa: A003
        """Grava valor com TTL (sobrescreve).

        Raises:
            CacheError: Em caso de falha do backend
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a chave. True se existia."""
        ...

    @abstractmethod
    def pop(self, key: str) -> str | None:
        """Lê e remove atomicamente (at-most-once).

        Duas chamadas seguidas para a mesma chave retornam valor e depois None.
        """
        ...
