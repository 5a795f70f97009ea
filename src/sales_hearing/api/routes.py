"""Rotas HTTP do hearing."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from sales_hearing.api.dependencies import get_orchestrator, get_settings
from sales_hearing.api.schemas import (
    CorrectTextRequest,
    CorrectTextResponse,
    HistoryTurn,
    SessionResponse,
    StartSessionRequest,
    StartSessionResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SuggestionsRequest,
    SuggestionsResponse,
)
from sales_hearing.application.orchestrator import HearingOrchestrator
from sales_hearing.config.settings import Settings
from sales_hearing.domain.errors import (
    EmptyAnswerError,
    HearingError,
    SessionCompletedError,
    SessionNotFoundError,
    SessionStoreError,
    SuggestionGenerationError,
    TurnConflictError,
)
from sales_hearing.observability.logging import get_logger
from sales_hearing.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()


def _internal_error(exc: Exception, error: str) -> HTTPException:
    correlation_id = get_correlation_id()
    logger.error(
        "request_failed",
        extra={"error": error, "error_type": type(exc).__name__},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": error, "correlation_id": correlation_id},
    )


@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Healthcheck simples."""
    return {"status": "ok", "service": settings.service_name, "version": settings.version}


@router.post("/hearing/start", response_model=StartSessionResponse)
async def start_session(
    body: StartSessionRequest,
    orchestrator: HearingOrchestrator = Depends(get_orchestrator),
) -> StartSessionResponse:
    """Cria sessão e devolve a pergunta do turno 0."""
    try:
        result = await orchestrator.start_session(body.reference_data, body.data_source)
    except SessionStoreError as exc:
        raise _internal_error(exc, "session_store_unavailable") from exc
    return StartSessionResponse.model_validate(result.model_dump())


@router.post("/hearing/answer", response_model=SubmitAnswerResponse)
async def submit_answer(
    body: SubmitAnswerRequest,
    orchestrator: HearingOrchestrator = Depends(get_orchestrator),
) -> SubmitAnswerResponse:
    """Registra a resposta e devolve a próxima pergunta ou a conclusão."""
    try:
        result = await orchestrator.submit_answer(
            body.session_id,
            body.turn_index,
            body.answer,
            current_slots=body.current_slots,
            asked_questions=body.asked_questions,
            reference_data=body.reference_data,
            data_source=body.data_source,
        )
    except EmptyAnswerError as exc:
        raise HTTPException(
            status_code=422, detail="empty_answer"
        ) from exc
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="session_not_found"
        ) from exc
    except TurnConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "turn_conflict",
                "expected_turn_index": exc.expected,
                "received_turn_index": exc.received,
            },
        ) from exc
    except SessionCompletedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail={"error": "session_completed"}
        ) from exc
    except HearingError as exc:
        raise _internal_error(exc, "answer_processing_failed") from exc
    return SubmitAnswerResponse.model_validate(result.model_dump())


@router.post("/hearing/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    body: SuggestionsRequest,
    orchestrator: HearingOrchestrator = Depends(get_orchestrator),
) -> SuggestionsResponse:
    """Sugestões avulsas; falha é explícita (502), nunca lista genérica."""
    try:
        result = await orchestrator.get_suggestions(
            body.current_question,
            reference_data=body.reference_data,
            current_slots=body.current_slots,
            data_source=body.data_source,
            conversation_history=body.history_turns(),
        )
    except SuggestionGenerationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "suggestions_unavailable", "reason": exc.reason},
        ) from exc
    return SuggestionsResponse(
        suggestions=result.suggestions,
        allow_multiple=result.allow_multiple,
        question_type=result.question_type.value,
    )


@router.post("/hearing/correct-text", response_model=CorrectTextResponse)
async def correct_text(
    body: CorrectTextRequest,
    orchestrator: HearingOrchestrator = Depends(get_orchestrator),
) -> CorrectTextResponse:
    """Pontuação e remoção de muletas de uma transcrição."""
    corrected = await orchestrator.correct_text(body.text)
    return CorrectTextResponse(corrected_text=corrected)


@router.get("/hearing/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    orchestrator: HearingOrchestrator = Depends(get_orchestrator),
) -> SessionResponse:
    """Snapshot da sessão."""
    try:
        session = orchestrator.get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="session_not_found"
        ) from exc
    return SessionResponse(
        session_id=session.session_id,
        status=session.status,
        turn_index=session.turn_index,
        total_turns=session.total_turns,
        slots=session.slots,
        asked_questions=session.asked_questions,
        conversation_history=[
            HistoryTurn(question=turn.question, answer=turn.answer)
            for turn in session.conversation_history
        ],
        completion_reason=session.completion_reason,
    )
