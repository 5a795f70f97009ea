"""Orquestrador de sessões de hearing.

Responsabilidades:
- Iniciar sessão (pergunta de abertura, sugestões, prefetch do turno 1)
- Processar respostas: extração -> merge de slots -> decisão -> FSM
- Consumir turnos pré-computados e agendar o prefetch do turno k+2
- Serializar respostas da mesma sessão (lock por sessão + turnIndex)

Não conhece HTTP; a camada de API traduz os erros de domínio.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from sales_hearing.application.decision import DecisionEngine
from sales_hearing.application.extraction import ExtractionService
from sales_hearing.application.prefetch import PrefetchCache, PrefetchRequest, PrefetchScheduler
from sales_hearing.application.suggestions import SuggestionGenerator, allows_multiple
from sales_hearing.application.text_correction import TextCorrector
from sales_hearing.application.topics import opening_question, reference_customer
from sales_hearing.domain.errors import (
    EmptyAnswerError,
    InvalidTransitionError,
    SessionCompletedError,
    SessionNotFoundError,
    SuggestionGenerationError,
    TurnConflictError,
)
from sales_hearing.domain.hearing import (
    CachedTurn,
    ConversationTurn,
    DataSource,
    Decision,
    HearingSession,
    SuggestionResult,
)
from sales_hearing.domain.slots import LIST_DELIMITER, merge_slots
from sales_hearing.domain.transitions import HearingEvent, validate_transition
from sales_hearing.infra.session_contract import HearingSessionStore
from sales_hearing.observability.logging import get_logger
from sales_hearing.utils.ids import mask_id, new_session_id

logger: logging.Logger = get_logger(__name__)

_RECENT_HISTORY_TURNS = 3

# Campos de referência que preenchem slots no início da sessão
_REFERENCE_SLOT_KEYS: dict[str, tuple[str, ...]] = {
    "project": ("project", "project_name", "deal", "deal_name", "案件", "案件名"),
    "participants": ("participants", "attendees", "参加者"),
    "location": ("location", "place", "場所"),
}

_COMPLETION_EVENTS: dict[str, HearingEvent] = {
    "stop_requested": HearingEvent.STOP_REQUESTED,
    "turn_cap_reached": HearingEvent.TURN_CAP_REACHED,
}


class StartSessionResult(BaseModel):
    """Resposta de StartSession."""

    session_id: str
    question: str
    turn_index: int = 0
    total_turns: int
    suggestions: list[str] = Field(default_factory=list)
    allow_multiple: bool = True
    suggestions_available: bool = True
    asked_questions: list[str]
    initial_slots: dict[str, str] = Field(default_factory=dict)


class AnswerResult(BaseModel):
    """Resposta de SubmitAnswer (concluída ou com próxima pergunta)."""

    session_id: str
    completed: bool
    slots: dict[str, str]
    completion_reason: str | None = None
    question: str | None = None
    turn_index: int | None = None
    total_turns: int
    asked_questions: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    allow_multiple: bool = True
    suggestions_available: bool = True


def _reference_value(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list | tuple):
        items = []
        for item in value:
            if isinstance(item, Mapping):
                item = item.get("name")
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return LIST_DELIMITER.join(dict.fromkeys(items))
    return ""


def initial_slots_from_reference(reference_data: Mapping[str, Any] | None) -> dict[str, str]:
    """Pré-preenche slots a partir dos dados de referência."""
    if not reference_data:
        return {}
    delta: dict[str, str] = {}
    customer = reference_customer(reference_data)
    if customer:
        delta["customer"] = customer
    for slot, keys in _REFERENCE_SLOT_KEYS.items():
        for key in keys:
            value = _reference_value(reference_data.get(key))
            if value:
                delta[slot] = value
                break
    return merge_slots({}, delta)


class HearingOrchestrator:
    """Coordena os componentes do hearing por sessão."""

    def __init__(
        self,
        store: HearingSessionStore,
        extraction: ExtractionService,
        decision: DecisionEngine,
        suggestions: SuggestionGenerator,
        prefetch_cache: PrefetchCache,
        corrector: TextCorrector,
        *,
        session_ttl_seconds: int = 7200,
        prefetch_enabled: bool = True,
        id_factory: Callable[[], str] = new_session_id,
    ) -> None:
        self._store = store
        self._extraction = extraction
        self._decision = decision
        self._suggestions = suggestions
        self._prefetch_cache = prefetch_cache
        self._corrector = corrector
        self._session_ttl = session_ttl_seconds
        self._id_factory = id_factory
        # Lock some quando nenhuma chamada da sessão o referencia
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self.scheduler = PrefetchScheduler(
            prefetch_cache, self._compute_turn, enabled=prefetch_enabled
        )

    @property
    def total_turns(self) -> int:
        return self._decision.max_turns

    async def start_session(
        self,
        reference_data: Mapping[str, Any] | None = None,
        data_source: DataSource = DataSource.NONE,
    ) -> StartSessionResult:
        """Cria sessão, devolve a pergunta do turno 0 e pré-computa o turno 1."""
        session_id = self._id_factory()
        slots = initial_slots_from_reference(reference_data)
        question = opening_question(reference_data)

        session = HearingSession(
            session_id=session_id,
            total_turns=self.total_turns,
            slots=slots,
            asked_questions=[question],
            reference_data=dict(reference_data) if reference_data else None,
            data_source=data_source,
        )

        # Turno 1 em paralelo com as sugestões do turno 0
        self._schedule_prefetch(session, target_turn_index=1, last_answer="")
        suggestions, allow_multiple, available = await self._suggest_safely(
            question, session.reference_data, slots, data_source, ()
        )

        session.current_suggestions = suggestions
        session.current_allow_multiple = allow_multiple
        self._store.save(session, ttl_seconds=self._session_ttl)

        logger.info(
            "hearing_started",
            extra={
                "session_id": mask_id(session_id),
                "data_source": data_source.value,
                "prefilled_slots": sorted(slots),
            },
        )
        return StartSessionResult(
            session_id=session_id,
            question=question,
            total_turns=self.total_turns,
            suggestions=suggestions,
            allow_multiple=allow_multiple,
            suggestions_available=available,
            asked_questions=list(session.asked_questions),
            initial_slots=dict(slots),
        )

    async def submit_answer(
        self,
        session_id: str,
        turn_index: int,
        answer: str,
        current_slots: Mapping[str, str] | None = None,
        asked_questions: Sequence[str] | None = None,
        reference_data: Mapping[str, Any] | None = None,
        data_source: DataSource | None = None,
    ) -> AnswerResult:
        """Processa a resposta do turno `turn_index`.

        Raises:
            SessionNotFoundError: sessão ausente e não reidratável
            TurnConflictError: turn_index difere do turno corrente
            SessionCompletedError: sessão já concluída
            EmptyAnswerError: resposta vazia (nada é extraído nem decidido)
        """
        answer = answer.strip()
        if not answer:
            raise EmptyAnswerError("Resposta vazia")

        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        async with lock:
            session = self._load_or_rehydrate(
                session_id, turn_index, current_slots, asked_questions, reference_data, data_source
            )
            if session.is_completed:
                raise SessionCompletedError(f"Sessão {mask_id(session_id)} já concluída")
            if turn_index != session.turn_index:
                raise TurnConflictError(expected=session.turn_index, received=turn_index)

            return await self._process_answer(session, answer)

    async def get_suggestions(
        self,
        question: str,
        reference_data: Mapping[str, Any] | None = None,
        current_slots: Mapping[str, str] | None = None,
        data_source: DataSource = DataSource.NONE,
        conversation_history: Sequence[ConversationTurn] = (),
    ) -> SuggestionResult:
        """Sugestões avulsas. Propaga SuggestionGenerationError (sem fallback)."""
        return await self._suggestions.suggest(
            question,
            reference_data,
            current_slots or {},
            data_source=data_source,
            recent_history=list(conversation_history)[-_RECENT_HISTORY_TURNS:],
        )

    async def correct_text(self, text: str) -> str:
        return await self._corrector.correct(text)

    def get_session(self, session_id: str) -> HearingSession:
        session = self._store.load(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def shutdown(self) -> None:
        """Cancela prefetches pendentes (shutdown da aplicação)."""
        await self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Fluxo interno
    # ------------------------------------------------------------------

    def _load_or_rehydrate(
        self,
        session_id: str,
        turn_index: int,
        current_slots: Mapping[str, str] | None,
        asked_questions: Sequence[str] | None,
        reference_data: Mapping[str, Any] | None,
        data_source: DataSource | None,
    ) -> HearingSession:
        session = self._store.load(session_id)
        if session is not None:
            return session

        if not asked_questions or len(asked_questions) != turn_index + 1:
            raise SessionNotFoundError(session_id)

        logger.info(
            "session_rehydrated",
            extra={"session_id": mask_id(session_id), "turn_index": turn_index},
        )
        return HearingSession(
            session_id=session_id,
            turn_index=turn_index,
            total_turns=self.total_turns,
            slots=merge_slots({}, current_slots or {}),
            asked_questions=list(asked_questions),
            reference_data=dict(reference_data) if reference_data else None,
            data_source=data_source or DataSource.NONE,
        )

    async def _process_answer(self, session: HearingSession, answer: str) -> AnswerResult:
        answered_index = session.turn_index
        delta = await self._extraction.extract(answer, session.current_question, session.slots)
        if answered_index == 0 and answer:
            delta.setdefault("summary", answer)
        session.slots = merge_slots(session.slots, delta)
        session.conversation_history.append(
            ConversationTurn(
                question=session.current_question,
                answer=answer,
                suggestions=list(session.current_suggestions),
                allow_multiple=session.current_allow_multiple,
            )
        )

        decision = self._decision.precheck(answered_index, answer)
        cached: CachedTurn | None = None
        if decision is None:
            cached = self._consume_prefetched(session, answered_index + 1)
            if cached is None:
                self.scheduler.cancel(session.session_id, answered_index + 1)
                decision = await self._decision.decide(
                    answered_index,
                    session.slots,
                    answer,
                    session.asked_questions,
                    session.reference_data,
                )

        if decision is not None and decision.is_complete:
            return self._complete(session, decision)

        question = cached.question if cached is not None else decision.next_question
        return await self._advance(session, question, answer, cached)

    def _consume_prefetched(self, session: HearingSession, target: int) -> CachedTurn | None:
        cached = self._prefetch_cache.consume(session.session_id, target)
        if cached is None:
            return None
        if not self._decision.accepts_prefetched(
            session.turn_index, cached.question, session.slots, session.asked_questions
        ):
            logger.info(
                "prefetch_rejected_stale",
                extra={"session_id": mask_id(session.session_id), "turn_index": target},
            )
            return None
        return cached

    def _complete(self, session: HearingSession, decision: Decision) -> AnswerResult:
        event = _COMPLETION_EVENTS.get(decision.reason, HearingEvent.DECISION_COMPLETE)
        ok, next_status, error = validate_transition(session.status, event)
        if not ok or next_status is None:
            raise InvalidTransitionError(error)

        session.status = next_status
        session.completion_reason = decision.reason
        session.current_suggestions = []
        session.touch()
        self.scheduler.cancel_session(session.session_id)
        self._store.save(session, ttl_seconds=self._session_ttl)

        logger.info(
            "hearing_completed",
            extra={
                "session_id": mask_id(session.session_id),
                "turn_index": session.turn_index,
                "reason": decision.reason,
                "source": decision.source.value,
            },
        )
        return AnswerResult(
            session_id=session.session_id,
            completed=True,
            slots=dict(session.slots),
            completion_reason=decision.reason,
            total_turns=session.total_turns,
            asked_questions=list(session.asked_questions),
        )

    async def _advance(
        self,
        session: HearingSession,
        question: str,
        answer: str,
        cached: CachedTurn | None,
    ) -> AnswerResult:
        ok, next_status, error = validate_transition(session.status, HearingEvent.ANSWER_RECORDED)
        if not ok or next_status is None:
            raise InvalidTransitionError(error)

        if cached is not None and cached.suggestions_available:
            suggestions, allow_multiple, available = (
                list(cached.suggestions), cached.allow_multiple, True
            )
        else:
            suggestions, allow_multiple, available = await self._suggest_safely(
                question,
                session.reference_data,
                session.slots,
                session.data_source,
                session.conversation_history[-_RECENT_HISTORY_TURNS:],
            )

        session.status = next_status
        session.asked_questions.append(question)
        session.turn_index += 1
        session.current_suggestions = suggestions
        session.current_allow_multiple = allow_multiple
        session.touch()
        self._store.save(session, ttl_seconds=self._session_ttl)

        self._schedule_prefetch(session, session.turn_index + 1, last_answer=answer)

        logger.info(
            "answer_processed",
            extra={
                "session_id": mask_id(session.session_id),
                "turn_index": session.turn_index,
                "prefetch_hit": cached is not None,
                "filled_slots": len(session.slots),
            },
        )
        return AnswerResult(
            session_id=session.session_id,
            completed=False,
            slots=dict(session.slots),
            question=question,
            turn_index=session.turn_index,
            total_turns=session.total_turns,
            asked_questions=list(session.asked_questions),
            suggestions=suggestions,
            allow_multiple=allow_multiple,
            suggestions_available=available,
        )

    def _schedule_prefetch(
        self, session: HearingSession, target_turn_index: int, last_answer: str
    ) -> None:
        # Nunca pré-computar turno além do limite rígido
        if target_turn_index > self.total_turns - 1:
            return
        self.scheduler.schedule(
            PrefetchRequest(
                session_id=session.session_id,
                target_turn_index=target_turn_index,
                slots=dict(session.slots),
                last_answer=last_answer,
                asked_questions=tuple(session.asked_questions),
                reference_data=session.reference_data,
                data_source=session.data_source,
                recent_history=tuple(session.conversation_history[-_RECENT_HISTORY_TURNS:]),
            )
        )

    async def _compute_turn(self, request: PrefetchRequest) -> CachedTurn | None:
        """Pré-computa decisão e sugestões de um turno futuro."""
        decision = await self._decision.decide(
            request.target_turn_index - 1,
            request.slots,
            request.last_answer,
            request.asked_questions,
            request.reference_data,
        )
        if decision.is_complete or decision.next_question is None:
            return None

        question = decision.next_question
        try:
            result = await self._suggestions.suggest(
                question,
                request.reference_data,
                request.slots,
                data_source=request.data_source,
                recent_history=request.recent_history,
            )
        except SuggestionGenerationError as exc:
            logger.info("prefetch_suggestions_unavailable", extra={"reason": exc.reason})
            return CachedTurn(
                question=question,
                allow_multiple=allows_multiple(question),
                suggestions_available=False,
            )
        return CachedTurn(
            question=question,
            suggestions=result.suggestions,
            allow_multiple=result.allow_multiple,
        )

    async def _suggest_safely(
        self,
        question: str,
        reference_data: Mapping[str, Any] | None,
        slots: Mapping[str, str],
        data_source: DataSource,
        recent_history: Sequence[ConversationTurn],
    ) -> tuple[list[str], bool, bool]:
        """Sugestões do turno corrente; falha vira lista vazia sinalizada."""
        try:
            result = await self._suggestions.suggest(
                question, reference_data, slots, data_source=data_source,
                recent_history=recent_history,
            )
        except SuggestionGenerationError as exc:
            logger.warning("suggestions_unavailable_for_turn", extra={"reason": exc.reason})
            return [], allows_multiple(question), False
        return result.suggestions, result.allow_multiple, True


__all__ = [
    "AnswerResult",
    "HearingOrchestrator",
    "StartSessionResult",
    "initial_slots_from_reference",
]
