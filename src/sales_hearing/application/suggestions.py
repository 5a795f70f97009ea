"""Gerador de sugestões de resposta (4 a 6 candidatos por pergunta).

Diferente da extração e da decisão, este componente NÃO tem fallback
determinístico: se o LLM falhar ou devolver algo que não seja lista, a
falha é explícita (SuggestionGenerationError). Candidatos inventados
seriam piores do que nenhum.

Regras aplicadas sobre a saída do LLM:
- frases genéricas de escala ("とても良い", "普通"...) são descartadas;
- perguntas "quem" sem nomes conhecidos só aceitam cargos/departamentos
  vindos do LLM, mais a opção neutra "判断できなかった";
- perguntas "quem" com nomes conhecidos incluem os nomes reais;
- allow_multiple vem de um classificador por palavras-chave.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from sales_hearing.ai import prompts
from sales_hearing.ai.llm_client import LLMClient
from sales_hearing.ai.parsing import Fallback, Parsed, parse_json_array, parse_json_object
from sales_hearing.domain.errors import (
    LLMUnavailableError,
    MalformedLLMResponseError,
    SuggestionGenerationError,
)
from sales_hearing.domain.hearing import (
    ConversationTurn,
    DataSource,
    QuestionType,
    SuggestionResult,
)
from sales_hearing.domain.slots import LIST_DELIMITER
from sales_hearing.observability.logging import get_logger, preview
from sales_hearing.observability.timing import timed

logger: logging.Logger = get_logger(__name__)

DENYLIST: tuple[str, ...] = (
    "とても良い",
    "良い",
    "普通",
    "まあまあ",
    "やや懸念",
    "悪い",
    "特になし",
    "very good",
    "good",
    "average",
    "somewhat concerning",
    "bad",
    "neutral",
)

# Única opção neutra usada para completar perguntas "quem" sem nomes
UNDETERMINED_WHO = "判断できなかった"

_MAX_SUGGESTION_CHARS = 40

_WHO_STRONG = re.compile(r"誰|どなた|どの方|どちらの方|\bwho\b|\bwhom\b|which person", re.I)
_WHO_WEAK = re.compile(
    r"参加者|出席者|キーマン|決裁者|担当者|\b(?:participants?|attendees?|decision maker)\b", re.I
)
_HOW_FEEL = re.compile(
    r"雰囲気|反応|感じ|温度感|手応え|印象|様子|空気|どうでした|いかがでした|"
    r"\b(?:feel|felt|mood|reaction|atmosphere|impression)\b",
    re.I,
)

_SINGLE_SELECT = re.compile(
    r"最も|一番|いちばん|確率|確度|可能性|何[%％]|[%％]|一人|ひとり|一つだけ|"
    r"\b(?:most|least|probability|likelihood|chance|rank|single|one person)\b",
    re.I,
)

_ROLE_WORDS = re.compile(
    r"部門|部署|部$|担当|責任者|部長|課長|社長|役員|経営|マネージャー|リーダー|チーム|現場|"
    r"窓口|判断できなかった|不明|いなかった|\b(?:lead|manager|director|department|team|head|"
    r"officer|executive|staff)\b|could not|no one|none",
    re.I,
)
_HONORIFIC_NAME = re.compile(r"[一-龥々ァ-ヴー]{1,6}(?:さん|様|氏|くん|君)")
_EN_NAME = re.compile(r"\b(?:Mr|Ms|Mrs|Dr)\.?\s+[A-Z][a-z]+")
_EN_FULL_NAME = re.compile(r"\b([A-Z][a-z]+)\s+([A-Z][a-z]+)\b")
_CAPITALIZED_WORD = re.compile(r"\b[A-Z][a-z]+\b")
# Palavras capitalizadas que não são nomes próprios
_COMMON_EN_WORDS = frozenset(
    {"The", "A", "An", "No", "None", "Nobody", "Someone", "Everyone", "All", "Both", "Our",
     "Their", "Could", "Not", "Unknown", "Unclear", "Lead", "Manager", "Director", "Head",
     "Team", "Department", "Sales", "Marketing", "Engineering", "Finance", "Procurement",
     "Purchasing", "Operations", "Executive", "Executives", "Officer", "Chief", "Senior",
     "Product", "Project", "General", "Account", "Support", "Technical", "Staff", "Site",
     "Field", "Human", "Resources", "Information", "Systems", "Legal", "President", "Vice",
     "Board", "Management", "Owner", "Customer", "Client", "Buyer", "Business", "Development"}
)
_SURNAME_ROLE = re.compile(r"^([一-龥々]{1,4})(部長|課長|社長|専務|常務|係長|主任|室長|次長)$")
_DEPARTMENT_PREFIXES = frozenset(
    {"営業", "経営", "情報", "技術", "開発", "製造", "総務", "人事", "経理", "財務", "購買",
     "企画", "現場", "事業", "本", "副", "支店", "工場", "システム"}
)

_PARTICIPANT_KEYS = ("participants", "attendees", "contacts", "members", "参加者")


def classify_question(question: str) -> QuestionType:
    """Tipo semântico da pergunta: quem, o quê, ou como foi sentido."""
    if _WHO_STRONG.search(question):
        return QuestionType.WHO
    if _HOW_FEEL.search(question):
        return QuestionType.HOW_FEEL
    if _WHO_WEAK.search(question):
        return QuestionType.WHO
    return QuestionType.WHAT


def allows_multiple(question: str) -> bool:
    """Seleção única para ranking/probabilidade; múltipla por padrão.

    Perguntas de listagem (participantes, problemas, funcionalidades) caem
    no padrão múltiplo.
    """
    return not _SINGLE_SELECT.search(question)


def is_denylisted(candidate: str) -> bool:
    """Frase genérica de escala (sem ganho de informação)."""
    normalized = candidate.strip().lower().rstrip("。.!！")
    for phrase in DENYLIST:
        phrase = phrase.lower()
        if normalized == phrase:
            return True
        # Frases compostas também são barradas quando embutidas
        if len(phrase) >= 4 and (" " in phrase or not phrase.isascii()) and phrase in normalized:
            return True
    return False


def looks_like_person_name(candidate: str) -> bool:
    """Heurística para nomes próprios de pessoas (JP e EN)."""
    if _HONORIFIC_NAME.search(candidate) or _EN_NAME.search(candidate):
        return True
    for first, last in _EN_FULL_NAME.findall(candidate):
        if first not in _COMMON_EN_WORDS and last not in _COMMON_EN_WORDS:
            return True
    # "鈴木 部長" e "鈴木部長" são o mesmo padrão
    match = _SURNAME_ROLE.match(re.sub(r"\s+", "", candidate))
    return bool(match and match.group(1) not in _DEPARTMENT_PREFIXES)


def is_role_descriptor(candidate: str) -> bool:
    """Cargo/departamento sem nome próprio ("IT部門の責任者", "the IT lead")."""
    if looks_like_person_name(candidate) or not _ROLE_WORDS.search(candidate):
        return False
    # Palavra capitalizada desconhecida ("Sarah, IT lead") é tratada como nome
    return all(word in _COMMON_EN_WORDS for word in _CAPITALIZED_WORD.findall(candidate))


def _split_names(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in re.split(r"[、,，/]", value) if part.strip()]
    if isinstance(value, list | tuple):
        names: list[str] = []
        for item in value:
            if isinstance(item, Mapping):
                item = item.get("name") or item.get("氏名")
            if isinstance(item, str) and item.strip():
                names.append(item.strip())
        return names
    return []


def participant_names(
    reference_data: Mapping[str, Any] | None, current_slots: Mapping[str, str]
) -> list[str]:
    """Nomes de participantes conhecidos (referência + slots)."""
    names: list[str] = []
    if reference_data:
        for key in _PARTICIPANT_KEYS:
            names.extend(_split_names(reference_data.get(key)))
    participants = current_slots.get("participants", "")
    if participants:
        names.extend(part for part in participants.split(LIST_DELIMITER) if part.strip())
    return list(dict.fromkeys(name.strip() for name in names))


class SuggestionGenerator:
    """Gera candidatos de resposta via LLM, sem fallback."""

    def __init__(self, llm_client: LLMClient, *, min_count: int = 4, max_count: int = 6) -> None:
        self._llm = llm_client
        self.min_count = min_count
        self.max_count = max_count

    async def suggest(
        self,
        question: str,
        reference_data: Mapping[str, Any] | None,
        current_slots: Mapping[str, str],
        data_source: DataSource = DataSource.NONE,
        recent_history: Sequence[ConversationTurn] = (),
    ) -> SuggestionResult:
        question_type = classify_question(question)
        names = participant_names(reference_data, current_slots)

        raw = await self._call_llm(
            question, question_type, reference_data, current_slots, data_source,
            recent_history, names,
        )
        candidates = self._parse_candidates(raw)
        suggestions = self._apply_rules(candidates, question_type, names)

        if len(suggestions) < self.min_count:
            logger.warning(
                "suggestions_insufficient",
                extra={"valid_count": len(suggestions), "question_type": question_type.value},
            )
            raise SuggestionGenerationError("insufficient_candidates")

        return SuggestionResult(
            suggestions=suggestions[: self.max_count],
            allow_multiple=allows_multiple(question),
            question_type=question_type,
        )

    async def _call_llm(
        self,
        question: str,
        question_type: QuestionType,
        reference_data: Mapping[str, Any] | None,
        current_slots: Mapping[str, str],
        data_source: DataSource,
        recent_history: Sequence[ConversationTurn],
        names: Sequence[str],
    ) -> str:
        try:
            with timed("suggestions", question_type=question_type.value):
                return await self._llm.complete(
                    system=prompts.get_suggestion_prompt(
                        question_type, DENYLIST, self.min_count, self.max_count
                    ),
                    user=prompts.format_suggestion_input(
                        question=question,
                        reference_data=reference_data,
                        current_slots=current_slots,
                        data_source=data_source,
                        recent_history=recent_history,
                        participant_names=names,
                    ),
                    temperature=0.5,
                    max_tokens=400,
                )
        except (LLMUnavailableError, MalformedLLMResponseError) as exc:
            logger.error("suggestions_llm_unavailable", extra={"error_type": type(exc).__name__})
            raise SuggestionGenerationError("llm_unavailable") from exc
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "suggestions_llm_failed",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            raise SuggestionGenerationError("llm_error") from exc

    @staticmethod
    def _parse_candidates(raw: str) -> list[str]:
        """Aceita array puro ou objeto {"suggestions": [...]}."""
        result = parse_json_object(raw)
        items: Any = None
        if isinstance(result, Parsed):
            items = result.value.get("suggestions")
        else:
            array_result = parse_json_array(raw)
            if isinstance(array_result, Parsed):
                items = array_result.value

        if not isinstance(items, list):
            reason = result.reason if isinstance(result, Fallback) else "non_array_suggestions"
            logger.warning(
                "suggestions_parse_failed",
                extra={"reason": reason, "raw_preview": preview(raw)},
            )
            raise SuggestionGenerationError("non_array_response")

        return [item.strip() for item in items if isinstance(item, str) and item.strip()]

    def _apply_rules(
        self, candidates: Sequence[str], question_type: QuestionType, names: Sequence[str]
    ) -> list[str]:
        kept: list[str] = []
        for candidate in candidates:
            if len(candidate) > _MAX_SUGGESTION_CHARS or is_denylisted(candidate):
                continue
            if candidate not in kept:
                kept.append(candidate)

        if question_type is not QuestionType.WHO:
            return kept

        if not names:
            # Sem participantes conhecidos: só cargos vindos do LLM, mais a opção neutra
            roles = [c for c in kept if is_role_descriptor(c)]
            if UNDETERMINED_WHO not in roles:
                roles.append(UNDETERMINED_WHO)
            return roles

        # Nomes reais primeiro; nomes que não estão nos dados são descartados
        grounded = [
            c for c in kept
            if not looks_like_person_name(c) or any(name in c for name in names)
        ]
        named = [name for name in names if not any(name in c for c in grounded)]
        merged = list(dict.fromkeys([*named, *grounded]))
        return merged[: self.max_count]
