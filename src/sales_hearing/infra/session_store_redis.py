"""HearingSessionStore usando Redis (produção).

Chave: `hearing:session:{session_id}`, valor JSON do HearingSession, TTL
renovado a cada save. Payload que não valida contra o modelo atual é
descartado; a próxima resposta cai na reidratação pelo cliente.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from sales_hearing.domain.errors import SessionStoreError
from sales_hearing.domain.hearing import HearingSession
from sales_hearing.infra.session_contract import HearingSessionStore
from sales_hearing.observability.logging import get_logger
from sales_hearing.utils.ids import mask_id

logger: logging.Logger = get_logger(__name__)

_KEY_PREFIX = "hearing:session:"


def session_key(session_id: str) -> str:
    return f"{_KEY_PREFIX}{session_id}"


class RedisSessionStore(HearingSessionStore):
    """Armazenamento em Redis com TTL nativo.

    save propaga falhas (SessionStoreError); leituras degradam para
    "não encontrada" e deixam o orquestrador decidir.
    """

    def __init__(self, redis_client: Any) -> None:
        self._redis = redis_client

    def save(self, session: HearingSession, ttl_seconds: int = 7200) -> None:
        try:
            self._redis.setex(session_key(session.session_id), ttl_seconds, session.model_dump_json())
        except Exception as e:
            logger.error(
                "session_save_failed",
                extra={"session_id": mask_id(session.session_id), "error": str(e)},
            )
            raise SessionStoreError(f"Redis save failed: {e}") from e

    def load(self, session_id: str) -> HearingSession | None:
        try:
            payload = self._redis.get(session_key(session_id))
        except Exception as e:
            logger.error(
                "session_load_failed",
                extra={"session_id": mask_id(session_id), "error": str(e)},
            )
            return None

        if not payload:
            return None
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        try:
            return HearingSession.model_validate_json(payload)
        except ValidationError:
            logger.warning("session_payload_invalid", extra={"session_id": mask_id(session_id)})
            self.delete(session_id)
            return None

    def delete(self, session_id: str) -> bool:
        try:
            return bool(self._redis.delete(session_key(session_id)))
        except Exception as e:
            logger.error(
                "session_delete_failed",
                extra={"session_id": mask_id(session_id), "error": str(e)},
            )
            return False

    def exists(self, session_id: str) -> bool:
        try:
            return bool(self._redis.exists(session_key(session_id)))
        except Exception as e:
            logger.error(
                "session_exists_failed",
                extra={"session_id": mask_id(session_id), "error": str(e)},
            )
            return False
