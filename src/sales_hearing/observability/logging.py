"""Configuração de logging estruturado (JSON)."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from sales_hearing.observability.middleware import get_correlation_id

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
_PREVIEW_CHARS = 120


class CorrelationIdFilter(logging.Filter):
    """Insere correlation_id e service no record de log.

    Importante: nunca adicionar respostas do usuário ou dados de referência
    completos nos logs.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing if existing else get_correlation_id()
        record.service = self._service_name
        return True


def configure_logging(level: str, service_name: str, log_format: str = "json") -> None:
    """Configura logging com campos padrão do serviço (JSON ou texto)."""

    if log_format.lower() == "text":
        formatter: logging.Formatter = logging.Formatter(_TEXT_FORMAT)
    else:
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger simples; o filtro injeta service/correlation_id."""

    return logging.getLogger(name)


def preview(raw: str | None, limit: int = _PREVIEW_CHARS) -> str:
    """Trunca texto bruto (ex.: resposta do LLM) para log."""
    if not raw:
        return ""
    return raw if len(raw) <= limit else raw[:limit] + "..."


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Log observável de fallback usado.

    Args:
        logger: Logger instance
        component: Nome do componente (ex: "extraction", "decision")
        reason: Razão do fallback (ex: "llm_unavailable", "parse_error")
        elapsed_ms: Tempo decorrido em ms (quando aplicável)

    Exemplo:
        log_fallback(logger, "decision", reason="missing_question")
    """
    extra: dict[str, object] = {
        "fallback_used": True,
        "component": component,
    }
    if reason:
        extra["reason"] = reason
    if elapsed_ms is not None:
        extra["elapsed_ms"] = elapsed_ms

    logger.info(
        f"Fallback applied for {component}",
        extra=extra,
    )
