"""Tabela de transições do FSM do hearing.

- TRANSITIONS[(current_status, event)] = next_status
- COMPLETED é terminal (nenhuma transição de saída)
- Validação pura: sem side effects
"""

from __future__ import annotations

from enum import StrEnum

from sales_hearing.domain.hearing import HearingStatus


class HearingEvent(StrEnum):
    """Eventos que movem a sessão."""

    ANSWER_RECORDED = "ANSWER_RECORDED"
    """Resposta processada; próxima pergunta definida."""

    DECISION_COMPLETE = "DECISION_COMPLETE"
    """Motor de decisão sinalizou conclusão."""

    TURN_CAP_REACHED = "TURN_CAP_REACHED"
    """Limite rígido de turnos atingido."""

    STOP_REQUESTED = "STOP_REQUESTED"
    """Usuário pediu explicitamente para encerrar."""


TERMINAL_STATUSES = frozenset({HearingStatus.COMPLETED})

TRANSITIONS: dict[tuple[HearingStatus, HearingEvent], HearingStatus] = {
    (HearingStatus.ACTIVE, HearingEvent.ANSWER_RECORDED): HearingStatus.ACTIVE,
    (HearingStatus.ACTIVE, HearingEvent.DECISION_COMPLETE): HearingStatus.COMPLETED,
    (HearingStatus.ACTIVE, HearingEvent.TURN_CAP_REACHED): HearingStatus.COMPLETED,
    (HearingStatus.ACTIVE, HearingEvent.STOP_REQUESTED): HearingStatus.COMPLETED,
    # COMPLETED: sem transições de saída
}


def validate_transition(
    current: HearingStatus, event: HearingEvent
) -> tuple[bool, HearingStatus | None, str]:
    """Valida se uma transição é permitida.

    Retorna:
    - (True, next_status, ""): transição válida
    - (False, None, motivo): transição inválida

    Nunca lança exceção; apenas valida.
    """
    if current in TERMINAL_STATUSES:
        return False, None, f"Terminal status {current} has no transitions"

    key = (current, event)
    if key not in TRANSITIONS:
        return False, None, f"No transition from {current} on event {event}"

    return True, TRANSITIONS[key], ""
