"""Correção de transcrições (pontuação e remoção de muletas de fala).

LLM primeiro; em qualquer falha, regras determinísticas.
"""

from __future__ import annotations

import logging
import re

from sales_hearing.ai import prompts
from sales_hearing.ai.llm_client import LLMClient
from sales_hearing.ai.parsing import Fallback, parse_json_object
from sales_hearing.domain.errors import LLMUnavailableError, MalformedLLMResponseError
from sales_hearing.observability.logging import get_logger, log_fallback, preview

logger: logging.Logger = get_logger(__name__)

_FILLERS_JA = re.compile(
    r"(?:えっと|えーと|ええと|あのー+|うーん|んーと|えー+|まあ|まぁ|そのー+|なんか)[、,\s]*"
)
_FILLERS_EN = re.compile(r"\b(?:um+|uh+|erm|you know)\b[,\s]*", re.IGNORECASE)
_REPEATED_ENDINGS = re.compile(r"(ました|です|ます)(?:\1)+")
_SENTENCE_END = re.compile(r"(ました|でした|です|ます)(?=[^\s。、！？!?」』）)がねよけかしのとなもでわ])")
_SPACES_AROUND_PUNCT = re.compile(r"\s*([。、！？])\s*")
_DUPLICATED_PUNCT = re.compile(r"([。、！？!?.,])\1+")
_COMMA_BEFORE_PERIOD = re.compile(r"、。")
_JAPANESE_CHARS = re.compile(r"[ぁ-んァ-ヴ一-龥]")
_TERMINATORS = ("。", "！", "？", "!", "?", ".")


def correct_with_rules(text: str) -> str:
    """Limpeza determinística de transcrição."""
    if not text or not text.strip():
        return text

    result = _FILLERS_JA.sub("", text)
    result = _FILLERS_EN.sub("", result)
    result = _REPEATED_ENDINGS.sub(r"\1", result)
    result = _SENTENCE_END.sub(r"\1。", result)
    result = re.sub(r"[ \t]+", " ", result).strip()
    result = _SPACES_AROUND_PUNCT.sub(r"\1", result)
    result = _DUPLICATED_PUNCT.sub(r"\1", result)
    result = _COMMA_BEFORE_PERIOD.sub("。", result)
    result = result.lstrip("、,。 ")

    if not result:
        return result
    if not result.endswith(_TERMINATORS):
        result += "。" if _JAPANESE_CHARS.search(result) else "."
    return result


class TextCorrector:
    """Corrige texto bruto de reconhecimento de voz."""

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm = llm_client

    async def correct(self, text: str) -> str:
        if not text or not text.strip():
            return text

        try:
            raw = await self._llm.complete(
                system=prompts.get_correction_prompt(),
                user=text,
                temperature=0.0,
                max_tokens=max(200, len(text) * 2),
            )
        except (LLMUnavailableError, MalformedLLMResponseError) as exc:
            log_fallback(logger, "text_correction", reason=type(exc).__name__)
            return correct_with_rules(text)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "text_correction_llm_failed",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            log_fallback(logger, "text_correction", reason="unexpected_error")
            return correct_with_rules(text)

        result = parse_json_object(raw)
        if isinstance(result, Fallback):
            logger.warning(
                "text_correction_parse_failed",
                extra={"reason": result.reason, "raw_preview": preview(raw)},
            )
            log_fallback(logger, "text_correction", reason=result.reason)
            return correct_with_rules(text)

        corrected = result.value.get("corrected_text")
        if not isinstance(corrected, str) or not corrected.strip():
            log_fallback(logger, "text_correction", reason="missing_corrected_text")
            return correct_with_rules(text)
        return corrected.strip()
