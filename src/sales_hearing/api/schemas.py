"""Contratos HTTP (camelCase na borda, snake_case no domínio)."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from sales_hearing.domain.hearing import ConversationTurn, DataSource, HearingStatus


class CamelModel(BaseModel):
    """Base com aliases camelCase; aceita também os nomes dos campos."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartSessionRequest(CamelModel):
    reference_data: dict[str, Any] | None = None
    data_source: DataSource = DataSource.NONE


class StartSessionResponse(CamelModel):
    session_id: str
    question: str
    turn_index: int
    total_turns: int
    suggestions: list[str]
    allow_multiple: bool
    suggestions_available: bool
    asked_questions: list[str]
    initial_slots: dict[str, str]


class SubmitAnswerRequest(CamelModel):
    session_id: str = Field(min_length=1)
    turn_index: int = Field(ge=0)
    answer: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    current_slots: dict[str, str] = Field(default_factory=dict)
    asked_questions: list[str] = Field(default_factory=list)
    reference_data: dict[str, Any] | None = None
    data_source: DataSource | None = None


class SubmitAnswerResponse(CamelModel):
    """Concluído: só `completed` e `slots` são relevantes."""

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


class HistoryTurn(CamelModel):
    question: str
    answer: str


class SuggestionsRequest(CamelModel):
    current_question: str = Field(min_length=1)
    reference_data: dict[str, Any] | None = None
    current_slots: dict[str, str] = Field(default_factory=dict)
    data_source: DataSource = DataSource.NONE
    conversation_history: list[HistoryTurn] = Field(default_factory=list)

    def history_turns(self) -> list[ConversationTurn]:
        return [
            ConversationTurn(question=turn.question, answer=turn.answer)
            for turn in self.conversation_history
        ]


class SuggestionsResponse(CamelModel):
    suggestions: list[str]
    allow_multiple: bool
    question_type: str


class CorrectTextRequest(CamelModel):
    text: str


class CorrectTextResponse(CamelModel):
    corrected_text: str


class SessionResponse(CamelModel):
    session_id: str
    status: HearingStatus
    turn_index: int
    total_turns: int
    slots: dict[str, str]
    asked_questions: list[str]
    conversation_history: list[HistoryTurn]
    completion_reason: str | None = None
