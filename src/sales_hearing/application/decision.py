"""Motor de decisão da próxima pergunta.

Ordem de avaliação:
1. Regras determinísticas baratas (pedido de parada, limite rígido).
2. LLM, com guardas: não conclui antes do mínimo de turnos e não aceita
   pergunta ausente ou repetida.
3. Fallback heurístico: slots obrigatórios por prioridade, pulando os
   já preenchidos e os de tópico já perguntado; depois follow-ups
   qualitativos.

`turn_index` é o índice do turno recém-respondido; `turn_index + 1`
perguntas já foram respondidas.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sales_hearing.ai import prompts
from sales_hearing.ai.llm_client import LLMClient
from sales_hearing.ai.parsing import Fallback, parse_json_object
from sales_hearing.application.topics import (
    CLOSING_QUESTION,
    QUALITATIVE_BUCKETS,
    QUALITATIVE_QUESTIONS,
    SLOT_QUESTIONS,
    ActionTense,
    analyze_action_tense,
    covered_topics,
    is_stop_request,
    is_topic_duplicate,
    topics_of,
)
from sales_hearing.domain.errors import LLMUnavailableError, MalformedLLMResponseError
from sales_hearing.domain.hearing import Decision, DecisionSource
from sales_hearing.domain.slots import REQUIRED_SLOTS, is_filled, missing_required
from sales_hearing.observability.logging import get_logger, log_fallback, preview
from sales_hearing.observability.timing import timed

logger: logging.Logger = get_logger(__name__)


class DecisionEngine:
    """Decide entre concluir o hearing ou fazer a próxima pergunta."""

    def __init__(self, llm_client: LLMClient, *, min_turns: int, max_turns: int) -> None:
        if not 1 <= min_turns <= max_turns:
            raise ValueError("Requer 1 <= min_turns <= max_turns")
        self._llm = llm_client
        self.min_turns = min_turns
        self.max_turns = max_turns

    async def decide(
        self,
        turn_index: int,
        slots: Mapping[str, str],
        last_answer: str,
        asked_questions: Sequence[str],
        reference_data: Mapping[str, Any] | None = None,
    ) -> Decision:
        deterministic = self.precheck(turn_index, last_answer)
        if deterministic is not None:
            logger.info(
                "decision_deterministic",
                extra={"turn_index": turn_index, "reason": deterministic.reason},
            )
            return deterministic

        llm_decision = await self._decide_with_llm(
            turn_index, slots, last_answer, asked_questions, reference_data
        )
        if llm_decision is not None:
            return llm_decision

        return self.fallback(turn_index, slots, last_answer, asked_questions)

    def precheck(self, turn_index: int, last_answer: str) -> Decision | None:
        """Regras que dispensam o LLM: parada explícita e limite rígido."""
        if last_answer and is_stop_request(last_answer):
            return Decision(
                is_complete=True, reason="stop_requested", source=DecisionSource.GUARD
            )
        if turn_index + 1 >= self.max_turns:
            return Decision(
                is_complete=True, reason="turn_cap_reached", source=DecisionSource.GUARD
            )
        return None

    def can_complete(self, turn_index: int) -> bool:
        """Mínimo de turnos respondidos já foi atingido."""
        return turn_index + 1 >= self.min_turns

    def accepts_prefetched(
        self,
        turn_index: int,
        question: str,
        slots: Mapping[str, str],
        asked_questions: Sequence[str],
    ) -> bool:
        """Valida uma pergunta pré-computada contra o estado atual.

        Rejeita se o tópico já foi perguntado, se todos os slots que ela
        mira já foram preenchidos, ou se a sessão já poderia concluir.
        """
        if is_topic_duplicate(question, asked_questions):
            return False
        targeted = [slot for slot in REQUIRED_SLOTS if slot in topics_of(question)]
        if targeted and all(is_filled(slots.get(slot)) for slot in targeted):
            return False
        return not (self.can_complete(turn_index) and not missing_required(slots))

    async def _decide_with_llm(
        self,
        turn_index: int,
        slots: Mapping[str, str],
        last_answer: str,
        asked_questions: Sequence[str],
        reference_data: Mapping[str, Any] | None,
    ) -> Decision | None:
        covered = sorted(covered_topics(asked_questions))
        try:
            with timed("decision", turn_index=turn_index):
                raw = await self._llm.complete(
                    system=prompts.get_decision_prompt(self.min_turns, self.max_turns),
                    user=prompts.format_decision_input(
                        answered_turns=turn_index + 1,
                        max_turns=self.max_turns,
                        slots=slots,
                        last_answer=last_answer,
                        asked_questions=asked_questions,
                        covered=covered,
                        action_tense=analyze_action_tense(last_answer).value,
                        reference_data=reference_data,
                    ),
                    temperature=0.4,
                    max_tokens=300,
                )
        except (LLMUnavailableError, MalformedLLMResponseError) as exc:
            log_fallback(logger, "decision", reason=type(exc).__name__)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "decision_llm_failed",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            log_fallback(logger, "decision", reason="unexpected_error")
            return None

        result = parse_json_object(raw)
        if isinstance(result, Fallback):
            logger.warning(
                "decision_parse_failed",
                extra={"reason": result.reason, "raw_preview": preview(raw)},
            )
            log_fallback(logger, "decision", reason=result.reason)
            return None

        data = result.value
        reason = str(data.get("reason") or "llm")
        if bool(data.get("is_complete")):
            if self.can_complete(turn_index):
                return Decision(is_complete=True, reason=reason, source=DecisionSource.LLM)
            logger.info(
                "decision_early_completion_ignored",
                extra={"turn_index": turn_index, "min_turns": self.min_turns},
            )

        question = data.get("next_question")
        if not isinstance(question, str) or not question.strip():
            log_fallback(logger, "decision", reason="missing_question")
            return None
        question = question.strip()
        if is_topic_duplicate(question, asked_questions):
            log_fallback(logger, "decision", reason="duplicate_topic")
            return None

        return Decision(
            is_complete=False, next_question=question, reason=reason, source=DecisionSource.LLM
        )

    def fallback(
        self,
        turn_index: int,
        slots: Mapping[str, str],
        last_answer: str,
        asked_questions: Sequence[str],
    ) -> Decision:
        """Heurística determinística (nunca usa LLM)."""
        missing = missing_required(slots)
        if not missing and self.can_complete(turn_index):
            return Decision(
                is_complete=True, reason="required_slots_filled", source=DecisionSource.FALLBACK
            )

        covered = covered_topics(asked_questions)

        def eligible(question: str) -> bool:
            topics = topics_of(question)
            return question not in asked_questions and not (topics & covered)

        slot_candidates = [
            (slot, SLOT_QUESTIONS[slot]) for slot in missing if eligible(SLOT_QUESTIONS[slot])
        ]

        # Ações só no passado e nenhuma próxima ação conhecida: perguntar a próxima
        tense = analyze_action_tense(last_answer)
        for slot, question in slot_candidates:
            if slot == "next_action" and tense is ActionTense.PAST:
                return self._ask(question, "past_actions_only")

        qualitative = [
            QUALITATIVE_QUESTIONS[bucket]
            for bucket in QUALITATIVE_BUCKETS
            if eligible(QUALITATIVE_QUESTIONS[bucket])
        ]

        if slot_candidates:
            slot, question = slot_candidates[0]
            return self._ask(question, f"missing_slot:{slot}")
        if qualitative:
            return self._ask(qualitative[0], "qualitative_followup")
        if CLOSING_QUESTION not in asked_questions:
            return self._ask(CLOSING_QUESTION, "closing_followup")

        return Decision(
            is_complete=True, reason="topics_exhausted", source=DecisionSource.FALLBACK
        )

    @staticmethod
    def _ask(question: str, reason: str) -> Decision:
        return Decision(
            is_complete=False, next_question=question, reason=reason, source=DecisionSource.FALLBACK
        )
