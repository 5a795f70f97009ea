"""Contrato de persistência de sessões de hearing."""

from __future__ import annotations

from abc import ABC, abstractmethod

from sales_hearing.domain.hearing import HearingSession


class HearingSessionStore(ABC):
    """Contrato abstrato para armazenamento de HearingSession.

    Responsabilidades:
    - Persistir sessão com TTL
    - Recuperar sessão por session_id
    - Garantir isolamento entre sessões
    """

    @abstractmethod
    def save(self, session: HearingSession, ttl_seconds: int = 7200) -> None:
        """Persiste a sessão com TTL.

        Raises:
            SessionStoreError: Em caso de falha de persistência
        """
        ...

    @abstractmethod
    def load(self, session_id: str) -> HearingSession | None:
        """Carrega sessão por ID (None se ausente ou expirada)."""
        ...

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Remove sessão. True se removida, False se não existia."""
        ...

    @abstractmethod
    def exists(self, session_id: str) -> bool:
        """Verifica se sessão existe e não expirou."""
        ...
