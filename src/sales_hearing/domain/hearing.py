"""Modelos de domínio do hearing (sessão, turnos, decisões, sugestões)."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class HearingStatus(StrEnum):
    """Estados da sessão de hearing."""

    ACTIVE = "active"
    """Perguntas em andamento."""

    COMPLETED = "completed"
    """Hearing encerrado (terminal)."""


class DataSource(StrEnum):
    """Origem dos dados de referência anexados à sessão."""

    MEETING = "meeting"
    CRM_A = "crm-a"
    CRM_B = "crm-b"
    NONE = "none"


class QuestionType(StrEnum):
    """Tipo semântico da pergunta (define o formato das sugestões)."""

    WHO = "who"
    WHAT = "what"
    HOW_FEEL = "how_feel"


class DecisionSource(StrEnum):
    """Quem produziu a decisão de próxima pergunta."""

    LLM = "llm"
    FALLBACK = "fallback"
    GUARD = "guard"


class ConversationTurn(BaseModel):
    """Um par pergunta/resposta registrado no histórico."""

    question: str
    answer: str
    suggestions: list[str] = Field(default_factory=list)
    allow_multiple: bool = True


class HearingSession(BaseModel):
    """Estado completo de uma sessão de hearing.

    Invariante: `len(asked_questions) == turn_index + 1`. A pergunta
    corrente é sempre o último item de `asked_questions`.
    """

    session_id: str
    turn_index: int = 0
    total_turns: int
    slots: dict[str, str] = Field(default_factory=dict)
    asked_questions: list[str] = Field(default_factory=list)
    conversation_history: list[ConversationTurn] = Field(default_factory=list)
    current_suggestions: list[str] = Field(default_factory=list)
    current_allow_multiple: bool = True
    status: HearingStatus = HearingStatus.ACTIVE
    completion_reason: str | None = None
    reference_data: dict[str, Any] | None = None
    data_source: DataSource = DataSource.NONE
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def validate_turns(self) -> HearingSession:
        if self.turn_index < 0:
            msg = "turn_index deve ser >= 0"
            raise ValueError(msg)
        if len(self.asked_questions) != self.turn_index + 1:
            msg = "asked_questions deve ter exatamente turn_index + 1 perguntas"
            raise ValueError(msg)
        return self

    def touch(self) -> None:
        self.updated_at = _utcnow()

    @property
    def current_question(self) -> str:
        return self.asked_questions[-1]

    @property
    def is_completed(self) -> bool:
        return self.status is HearingStatus.COMPLETED


class Decision(BaseModel):
    """Saída do motor de decisão: concluir ou perguntar."""

    is_complete: bool
    next_question: str | None = None
    reason: str
    source: DecisionSource

    @model_validator(mode="after")
    def validate_question(self) -> Decision:
        if not self.is_complete and not (self.next_question and self.next_question.strip()):
            msg = "next_question é obrigatório quando is_complete=False"
            raise ValueError(msg)
        if self.is_complete:
            self.next_question = None
        return self


class SuggestionResult(BaseModel):
    """Candidatos de resposta para uma pergunta."""

    suggestions: list[str]
    allow_multiple: bool
    question_type: QuestionType


class CachedTurn(BaseModel):
    """Turno pré-computado armazenado no cache de prefetch."""

    question: str
    suggestions: list[str] = Field(default_factory=list)
    allow_multiple: bool = True
    suggestions_available: bool = True
    generated_at: datetime = Field(default_factory=_utcnow)
