"""Hierarquia de erros do hearing."""

from __future__ import annotations


class HearingError(Exception):
    """Erro base do motor de hearing."""


class LLMUnavailableError(HearingError):
    """LLM não configurado, desabilitado ou inalcançável."""


class MalformedLLMResponseError(HearingError):
    """LLM respondeu conteúdo não interpretável no formato esperado."""


class SessionNotFoundError(HearingError):
    """Sessão inexistente ou expirada."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Sessão não encontrada: {session_id[:8]}...")
        self.session_id = session_id


class TurnConflictError(HearingError):
    """turnIndex enviado difere do turno corrente da sessão."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"turnIndex esperado {expected}, recebido {received}")
        self.expected = expected
        self.received = received


class SessionCompletedError(HearingError):
    """Resposta enviada para sessão já concluída."""


class InvalidTransitionError(HearingError):
    """Transição rejeitada pelo FSM."""


class SuggestionGenerationError(HearingError):
    """Geração de sugestões falhou (sem fallback)."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Falha ao gerar sugestões: {reason}")
        self.reason = reason


class CacheError(HearingError):
    """Falha do backend de cache."""


class SessionStoreError(HearingError):
    """Erro ao persistir ou recuperar sessão."""


class EmptyAnswerError(HearingError):
    """Resposta vazia ou só com espaços."""
