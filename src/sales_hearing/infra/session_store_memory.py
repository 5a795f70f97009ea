"""HearingSessionStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sales_hearing.domain.hearing import HearingSession
from sales_hearing.infra.session_contract import HearingSessionStore
from sales_hearing.observability.logging import get_logger
from sales_hearing.utils.ids import mask_id

logger: logging.Logger = get_logger(__name__)


class InMemorySessionStore(HearingSessionStore):
    """Armazenamento em memória (não usar em produção).

    Guarda cópias profundas: o orquestrador muta a sessão carregada e só
    o save seguinte publica a mudança, como no backend Redis.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, tuple[HearingSession, float]] = {}

    def save(self, session: HearingSession, ttl_seconds: int = 7200) -> None:
        expire_at = datetime.now(tz=UTC).timestamp() + ttl_seconds
        self._sessions[session.session_id] = (session.model_copy(deep=True), expire_at)

    def load(self, session_id: str) -> HearingSession | None:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None

        session, expire_at = entry
        if datetime.now(tz=UTC).timestamp() > expire_at:
            del self._sessions[session_id]
            logger.debug("session_expired", extra={"session_id": mask_id(session_id)})
            return None
        return session.model_copy(deep=True)

    def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def exists(self, session_id: str) -> bool:
        return self.load(session_id) is not None
