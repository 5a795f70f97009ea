"""Serviço de extração: resposta livre -> delta de slots.

Caminho principal: LLM com saída JSON. Se o LLM estiver indisponível ou
a resposta não for um objeto JSON, cai para a tabela de regras
determinísticas. Nunca lança; em falha total retorna {}.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from sales_hearing.ai import prompts
from sales_hearing.ai.llm_client import LLMClient
from sales_hearing.ai.parsing import Fallback, parse_json_object
from sales_hearing.application.extraction_rules import extract_with_rules
from sales_hearing.application.topics import is_undecided_answer, target_required_slot
from sales_hearing.domain.errors import LLMUnavailableError, MalformedLLMResponseError
from sales_hearing.domain.slots import ALL_SLOTS, LIST_DELIMITER, UNDECIDED_VALUE, is_filled
from sales_hearing.observability.logging import get_logger, log_fallback, preview
from sales_hearing.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

# Slots de valor único: se o LLM devolver lista, usa o primeiro item
SINGLE_VALUE_SLOTS = frozenset({"customer", "project", "budget", "schedule", "location"})

_ARTIFACTS = re.compile(r"^[\s\[\]{}\"'「」『』`]+|[\s\[\]{}\"'「」『』`]+$")
_EMPTY_MARKERS = frozenset({"", "null", "none", "n/a", "-", "なし", "無し", "不明"})


def _clean_scalar(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    text = str(value)
    text = _ARTIFACTS.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()
    return "" if text.lower() in _EMPTY_MARKERS else text


def _as_items(value: Any) -> list[str]:
    """Converte valor do LLM em lista de strings limpas."""
    if isinstance(value, str) and value.strip().startswith("["):
        # Array serializado como string: '["A", "B"]'
        try:
            value = json.loads(value)
        except ValueError:
            pass
    if isinstance(value, list | tuple):
        items = [_clean_scalar(item) for item in value]
    else:
        items = [_clean_scalar(value)]
    return [item for item in items if item]


def normalize_extraction(raw: Mapping[str, Any]) -> dict[str, str]:
    """Restringe ao esquema e achata listas com o delimitador."""
    delta: dict[str, str] = {}
    for key, value in raw.items():
        if key not in ALL_SLOTS:
            continue
        items = _as_items(value)
        if not items:
            continue
        if key in SINGLE_VALUE_SLOTS:
            delta[key] = items[0]
        else:
            unique = list(dict.fromkeys(items))
            delta[key] = LIST_DELIMITER.join(unique)
    return delta


class ExtractionService:
    """Extrai slots de uma resposta, com fallback por regras."""

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm = llm_client

    async def extract(
        self,
        answer: str,
        last_question: str,
        known_slots: Mapping[str, str],
    ) -> dict[str, str]:
        if not answer or not answer.strip():
            return {}

        delta = await self._extract_with_llm(answer, last_question, known_slots)
        if delta is None:
            delta = extract_with_rules(answer)

        return self._mark_undecided(delta, answer, last_question, known_slots)

    async def _extract_with_llm(
        self,
        answer: str,
        last_question: str,
        known_slots: Mapping[str, str],
    ) -> dict[str, str] | None:
        """Retorna delta via LLM ou None quando o fallback deve ser usado."""
        try:
            with timed("extraction"):
                raw = await self._llm.complete(
                    system=prompts.get_extraction_prompt(),
                    user=prompts.format_extraction_input(answer, last_question, known_slots),
                    temperature=0.1,
                    max_tokens=600,
                )
        except (LLMUnavailableError, MalformedLLMResponseError) as exc:
            log_fallback(logger, "extraction", reason=type(exc).__name__)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "extraction_llm_failed",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            log_fallback(logger, "extraction", reason="unexpected_error")
            return None

        result = parse_json_object(raw)
        if isinstance(result, Fallback):
            logger.warning(
                "extraction_parse_failed",
                extra={"reason": result.reason, "raw_preview": preview(raw)},
            )
            log_fallback(logger, "extraction", reason=result.reason)
            return None
        return normalize_extraction(result.value)

    @staticmethod
    def _mark_undecided(
        delta: dict[str, str],
        answer: str,
        last_question: str,
        known_slots: Mapping[str, str],
    ) -> dict[str, str]:
        """Registra "未定" no slot perguntado quando a resposta é indefinida."""
        slot = target_required_slot(last_question)
        if slot is None or is_filled(delta.get(slot)) or is_filled(known_slots.get(slot)):
            return delta
        if is_undecided_answer(answer):
            logger.info("slot_marked_undecided", extra={"slot": slot})
            return {**delta, slot: UNDECIDED_VALUE}
        return delta
