"""Cache especulativo de turnos futuros e agendador de prefetch.

PrefetchCache: turnos pré-computados por (session_id, turn_index), com
TTL, consumidos no máximo uma vez (leitura e remoção atômicas).

PrefetchScheduler: tasks asyncio rastreadas por sessão, cada uma limitada
pelo TTL do cache. Falhas são logadas e nunca chegam ao usuário (viram
cache miss). Tasks podem ser canceladas por sessão ou no shutdown; drain()
aguarda as pendentes (usado em testes).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from sales_hearing.domain.errors import CacheError
from sales_hearing.domain.hearing import CachedTurn, ConversationTurn, DataSource
from sales_hearing.infra.cache_contract import KeyValueCache
from sales_hearing.observability.logging import get_logger
from sales_hearing.utils.ids import mask_id

logger: logging.Logger = get_logger(__name__)

_KEY_PREFIX = "hearing:prefetch"


@dataclass(frozen=True, slots=True)
class PrefetchRequest:
    """Snapshot imutável do estado usado para pré-computar um turno."""

    session_id: str
    target_turn_index: int
    slots: Mapping[str, str]
    last_answer: str
    asked_questions: tuple[str, ...]
    reference_data: Mapping[str, Any] | None = None
    data_source: DataSource = DataSource.NONE
    recent_history: tuple[ConversationTurn, ...] = field(default_factory=tuple)


class PrefetchCache:
    """Turnos pré-computados com TTL e consumo at-most-once."""

    def __init__(self, cache: KeyValueCache, ttl_seconds: int = 1800) -> None:
        self._cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(session_id: str, turn_index: int) -> str:
        return f"{_KEY_PREFIX}:{session_id}:{turn_index}"

    def store(self, session_id: str, turn_index: int, turn: CachedTurn) -> bool:
        """Grava o turno. Retorna False se o backend falhar (vira miss)."""
        try:
            self._cache.set(self.key(session_id, turn_index), turn.model_dump_json(), self.ttl_seconds)
        except CacheError as exc:
            logger.warning(
                "prefetch_store_failed",
                extra={"session_id": mask_id(session_id), "turn_index": turn_index, "error": str(exc)},
            )
            return False
        return True

    def consume(self, session_id: str, turn_index: int) -> CachedTurn | None:
        """Lê e remove o turno; None em miss, expiração ou payload inválido."""
        try:
            payload = self._cache.pop(self.key(session_id, turn_index))
        except CacheError as exc:
            logger.warning(
                "prefetch_consume_failed",
                extra={"session_id": mask_id(session_id), "turn_index": turn_index, "error": str(exc)},
            )
            return None

        if payload is None:
            logger.info(
                "prefetch_miss",
                extra={"session_id": mask_id(session_id), "turn_index": turn_index},
            )
            return None

        try:
            turn = CachedTurn.model_validate_json(payload)
        except ValidationError:
            logger.warning(
                "prefetch_payload_invalid",
                extra={"session_id": mask_id(session_id), "turn_index": turn_index},
            )
            return None

        logger.info(
            "prefetch_hit",
            extra={"session_id": mask_id(session_id), "turn_index": turn_index},
        )
        return turn

    def discard(self, session_id: str, turn_index: int) -> None:
        try:
            self._cache.delete(self.key(session_id, turn_index))
        except CacheError as exc:
            logger.warning("prefetch_discard_failed", extra={"error": str(exc)})


PrefetchComputation = Callable[[PrefetchRequest], Awaitable[CachedTurn | None]]


class PrefetchScheduler:
    """Dono das tasks de prefetch em background."""

    def __init__(
        self,
        cache: PrefetchCache,
        compute: PrefetchComputation,
        *,
        timeout_seconds: float | None = None,
        enabled: bool = True,
    ) -> None:
        self._cache = cache
        self._compute = compute
        self._timeout = timeout_seconds if timeout_seconds is not None else cache.ttl_seconds
        self._enabled = enabled
        self._tasks: dict[str, dict[int, asyncio.Task[None]]] = {}

    def schedule(self, request: PrefetchRequest) -> asyncio.Task[None] | None:
        """Dispara task destacada; não bloqueia quem chamou."""
        if not self._enabled:
            return None

        session_tasks = self._tasks.setdefault(request.session_id, {})
        existing = session_tasks.get(request.target_turn_index)
        if existing is not None and not existing.done():
            existing.cancel()

        task = asyncio.create_task(
            self._run(request),
            name=f"prefetch:{request.session_id[:8]}:{request.target_turn_index}",
        )
        session_tasks[request.target_turn_index] = task
        task.add_done_callback(
            lambda t, sid=request.session_id, idx=request.target_turn_index: self._forget(
                sid, idx, t
            )
        )
        logger.debug(
            "prefetch_scheduled",
            extra={
                "session_id": mask_id(request.session_id),
                "turn_index": request.target_turn_index,
            },
        )
        return task

    def cancel(self, session_id: str, turn_index: int) -> bool:
        """Cancela o prefetch de um turno específico, se ainda rodando."""
        task = self._tasks.get(session_id, {}).get(turn_index)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_session(self, session_id: str) -> int:
        """Cancela todos os prefetches pendentes da sessão."""
        tasks = self._tasks.pop(session_id, {})
        cancelled = 0
        for task in tasks.values():
            if not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info(
                "prefetch_cancelled",
                extra={"session_id": mask_id(session_id), "count": cancelled},
            )
        return cancelled

    def pending(self, session_id: str | None = None) -> int:
        if session_id is not None:
            return sum(1 for t in self._tasks.get(session_id, {}).values() if not t.done())
        return sum(
            1 for tasks in self._tasks.values() for t in tasks.values() if not t.done()
        )

    async def drain(self) -> None:
        """Aguarda todas as tasks pendentes terminarem."""
        tasks = [t for session in self._tasks.values() for t in session.values()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancela tudo (shutdown da aplicação)."""
        tasks = [t for session in self._tasks.values() for t in session.values()]
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, request: PrefetchRequest) -> None:
        try:
            turn = await asyncio.wait_for(self._compute(request), timeout=self._timeout)
        except TimeoutError:
            logger.warning(
                "prefetch_task_timeout",
                extra={
                    "session_id": mask_id(request.session_id),
                    "turn_index": request.target_turn_index,
                },
            )
            return
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "prefetch_task_failed",
                extra={
                    "session_id": mask_id(request.session_id),
                    "turn_index": request.target_turn_index,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return

        if turn is None:
            return
        self._cache.store(request.session_id, request.target_turn_index, turn)

    def _forget(self, session_id: str, turn_index: int, task: asyncio.Task[None]) -> None:
        session_tasks = self._tasks.get(session_id)
        if session_tasks is None or session_tasks.get(turn_index) is not task:
            return
        del session_tasks[turn_index]
        if not session_tasks:
            del self._tasks[session_id]
