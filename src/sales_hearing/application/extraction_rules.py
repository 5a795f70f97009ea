"""Tabela declarativa de regras de extração (fallback sem LLM).

Formato: `slot -> (ExtractionRule, ...)`. As regras de cada slot são
avaliadas em ordem e a primeira que casa vence. Regras com
`collect_all=True` juntam todas as ocorrências únicas com o delimitador
de lista. Tudo é determinístico e testável sem LLM.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from re import Pattern

from sales_hearing.domain.slots import LIST_DELIMITER
from sales_hearing.observability.logging import get_logger

logger = get_logger(__name__)

_TRAILING_PARTICLES = re.compile(r"(?:について|には|では|に|を|で|が|は|と|も)$")
_EDGE_PUNCT = re.compile(r"^[\s、。,.・「」『』\"']+|[\s、。,.・「」『』\"']+$")
_KANA_KANJI = "一-龥々ァ-ヴー"
_NAME_CHARS = f"[{_KANA_KANJI}A-Za-z0-9＆&]"


def clean_value(text: str) -> str:
    """Normaliza espaços, pontuação nas bordas e partículas finais."""
    value = re.sub(r"\s+", " ", text).strip()
    value = _EDGE_PUNCT.sub("", value)
    value = _TRAILING_PARTICLES.sub("", value)
    return _EDGE_PUNCT.sub("", value)


@dataclass(frozen=True, slots=True)
class ExtractionRule:
    """Regra de extração de um slot.

    Attributes:
        pattern: Regex compilada
        group: Grupo capturado usado como valor
        transform: Pós-processamento do valor capturado
        collect_all: Junta todas as ocorrências (slots de lista)
        exclude: Valores descartados após o transform
    """

    pattern: Pattern[str]
    group: int = 0
    transform: Callable[[str], str] = clean_value
    collect_all: bool = False
    exclude: frozenset[str] = field(default_factory=frozenset)

    def apply(self, text: str) -> str | None:
        if self.collect_all:
            values: list[str] = []
            for match in self.pattern.finditer(text):
                value = self.transform(match.group(self.group))
                if value and value not in self.exclude and value not in values:
                    values.append(value)
            return LIST_DELIMITER.join(values) if values else None

        match = self.pattern.search(text)
        if match is None:
            return None
        value = self.transform(match.group(self.group))
        if not value or value in self.exclude:
            return None
        return value


def _rule(
    pattern: str,
    *,
    group: int = 0,
    transform: Callable[[str], str] = clean_value,
    collect_all: bool = False,
    exclude: frozenset[str] = frozenset(),
    flags: int = 0,
) -> ExtractionRule:
    return ExtractionRule(
        pattern=re.compile(pattern, flags),
        group=group,
        transform=transform,
        collect_all=collect_all,
        exclude=exclude,
    )


def _label(label: str) -> Callable[[str], str]:
    return lambda _matched: label


_COMPANY_SUFFIXES = (
    "株式会社|有限会社|合同会社|ホールディングス|建設|工業|商事|物産|銀行|"
    "製作所|電機|電工|不動産|システムズ|産業|工務店|運輸|証券|保険"
)
_MONTHS_EN = (
    "january|february|march|april|may|june|july|august|september|october|november|december"
)
_ROLES_JA = "本部長|部長|課長|次長|社長|副社長|専務|常務|取締役|係長|主任|室長|マネージャー|担当者"
_HONORIFICS_JA = "様|さん|氏"
_NON_NAMES = frozenset({"客様", "客さん", "皆様", "皆さん", "先方様", "担当者"})

RULES: dict[str, tuple[ExtractionRule, ...]] = {
    "customer": (
        _rule(rf"(?:株式会社|有限会社|合同会社)\s?{_NAME_CHARS}{{1,15}}"),
        _rule(rf"{_NAME_CHARS}{{1,15}}?(?:{_COMPANY_SUFFIXES})"),
        _rule(
            r"\b[A-Z][\w&]*(?:\s+[A-Z][\w&]*)*\s+"
            r"(?:Inc|Corp|Corporation|Co|Ltd|LLC|Group|Holdings)\b\.?"
        ),
        _rule(
            rf"({_NAME_CHARS}{{2,15}})(?:様|さん)との(?:商談|打ち合わせ|面談|ミーティング)",
            group=1,
        ),
    ),
    "project": (
        _rule(r"[「『]([^」』]{2,30})[」』](?:の)?(?:案件|プロジェクト|件)", group=1),
        _rule(
            rf"({_NAME_CHARS}{{2,20}}(?:導入|更新|リプレース|刷新|構築|開発|移行))"
            r"(?:の)?(?:案件|プロジェクト|件|について|に関する)",
            group=1,
        ),
        _rule(r"\bthe\s+([\w\- ]{2,30}?)\s+(?:project|deal)\b", group=1, flags=re.IGNORECASE),
    ),
    "next_action": (
        _rule(
            r"[^。\n]*(?:提案書|見積(?:書|もり)?|資料|デモ|トライアル|サンプル)[^。\n]*?"
            r"(?:送付|提出|作成|準備|送る|出す|実施|持参|お送り)[^。\n]*"
        ),
        _rule(r"[^。\n]*(?:次回|来週|今後|次は|後日)[^。\n]*(?:予定|します|する|ことに)[^。\n]*"),
        _rule(
            r"\b(?:next step|next action|we will|we'll|i will|i'll)\b[^.\n]*",
            flags=re.IGNORECASE,
        ),
    ),
    "budget": (
        _rule(
            r"(?:約|およそ|概算)?\s?[0-9０-９][0-9０-９,，.．]*\s?(?:億[0-9０-９,，]*)?(?:千万|百万|万)?円"
            r"(?:程度|前後|くらい|ぐらい|以内|規模)?"
        ),
        _rule(r"(?:約|およそ)?[0-9０-９][0-9０-９.．]*\s?(?:億|千万|百万|万)(?:程度|前後|規模)?"),
        _rule(
            r"(?:(?:about|around|approximately|roughly|up to)\s+)?[$¥]?\d[\d,.]*\s*"
            r"(?:million|thousand|billion|[km]\b)?\s*(?:yen|dollars?|usd|jpy)\b",
            flags=re.IGNORECASE,
        ),
        _rule(
            r"(?:(?:about|around|approximately|roughly|up to)\s+)?[$¥]\s?\d[\d,.]*\s*"
            r"(?:million|thousand|billion|[km]\b)?",
            flags=re.IGNORECASE,
        ),
    ),
    "schedule": (
        _rule(
            r"(?:[0-9０-９]{1,2}|来|今|再来)月(?:中|末|上旬|中旬|下旬|頃|ごろ)?"
            r"(?:まで)?(?:に)?(?:決定|決裁|導入|稼働|納品|開始|判断)?"
        ),
        _rule(r"[0-9０-９]+\s?(?:ヶ月|か月|カ月|週間|日間|年間)"),
        _rule(r"来週|再来週|今週|来年度?|今年度|来期|年内|年度末|期末"),
        _rule(
            rf"(?:(?:decision|deadline|launch|delivery|go-live|kick-?off)\s+)?"
            rf"(?:by|in|until|before|from)\s+(?:the\s+end\s+of\s+)?"
            rf"(?:{_MONTHS_EN}|next\s+(?:week|month|quarter|year)|q[1-4])\b",
            flags=re.IGNORECASE,
        ),
        _rule(r"\b\d+\s*(?:weeks?|months?|years?)\b", flags=re.IGNORECASE),
    ),
    "participants": (
        _rule(
            rf"[{_KANA_KANJI}A-Za-z]{{1,8}}(?:{_ROLES_JA})|[{_KANA_KANJI}]{{1,5}}(?:{_HONORIFICS_JA})",
            collect_all=True,
            exclude=_NON_NAMES,
        ),
        _rule(r"\b(?:Mr|Ms|Mrs|Dr)\.?\s+[A-Z][a-z]+", collect_all=True),
        _rule(
            r"\b(?:CTO|CEO|CFO|CIO|COO|VP|director|manager|head)\b(?:\s+of\s+[A-Za-z]+)?",
            collect_all=True,
            flags=re.IGNORECASE,
        ),
    ),
    "location": (
        _rule(rf"{_NAME_CHARS}{{0,10}}(?:本社|支社|支店|営業所|工場|事務所|会議室|オフィス|拠点)"),
        _rule(r"オンライン|Web会議|ウェブ会議|Zoom|Teams|リモート"),
        _rule(
            r"\b(?:at|in)\s+(?:their|the|our)\s+"
            r"(?:head\s+office|headquarters|office|hq|factory|meeting room|branch)\b",
            flags=re.IGNORECASE,
        ),
        _rule(r"\b(?:online|via zoom|on zoom|on teams|remotely)\b", flags=re.IGNORECASE),
    ),
    "issues": (
        _rule(r"[^。\n]*(?:課題|問題|懸念|困って|難しい|不足|不安|ネック)[^。\n]*"),
        _rule(
            r"[^.\n]*\b(?:issue|problem|concern|challenge|pain point|struggl)\w*[^.\n]*",
            flags=re.IGNORECASE,
        ),
    ),
    "competitor_info": (
        _rule(r"[^。\n]*(?:競合|他社|コンペ|相見積)[^。\n]*"),
        _rule(r"[^.\n]*\b(?:competitor|rival)s?\b[^.\n]*", flags=re.IGNORECASE),
    ),
    "closing_possibility": (
        _rule(r"(?:受注)?(?:確度|可能性|見込み)[^。\n]{0,10}?[0-9０-９]{1,3}\s?[%％]"),
        _rule(r"(?:受注)?確度(?:は)?[ABCＡＢＣ高中低]"),
        _rule(
            r"\d{1,3}\s?%\s*(?:chance|likelihood|probability)"
            r"|(?:chance|likelihood|probability)[^.\n]{0,15}?\d{1,3}\s?%",
            flags=re.IGNORECASE,
        ),
    ),
    "industry": (
        _rule(r"建設|ゼネコン|工務店|construction", transform=_label("建設業"), flags=re.I),
        _rule(r"製造|工業|製作所|メーカー|manufactur", transform=_label("製造業"), flags=re.I),
        _rule(r"銀行|証券|保険|金融|bank|insurance", transform=_label("金融"), flags=re.I),
        _rule(r"不動産|real estate", transform=_label("不動産"), flags=re.I),
        _rule(r"病院|クリニック|医療|hospital|clinic", transform=_label("医療"), flags=re.I),
        _rule(r"物流|運輸|運送|倉庫|logistics", transform=_label("物流"), flags=re.I),
        _rule(r"小売|スーパー|店舗|retail", transform=_label("小売"), flags=re.I),
        _rule(r"商事|物産|商社|trading", transform=_label("商社"), flags=re.I),
        _rule(
            r"ソフトウェア|SaaS|システム会社|IT企業|software",
            transform=_label("IT・通信"),
            flags=re.I,
        ),
    ),
}


def extract_with_rules(
    text: str, rules: Mapping[str, tuple[ExtractionRule, ...]] = RULES
) -> dict[str, str]:
    """Aplica a tabela de regras; nunca lança (mapa vazio em falha total)."""
    if not text or not text.strip():
        return {}

    delta: dict[str, str] = {}
    for slot, slot_rules in rules.items():
        for rule in slot_rules:
            try:
                value = rule.apply(text)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "extraction_rule_failed",
                    extra={"slot": slot, "error_type": type(exc).__name__},
                )
                continue
            if value:
                delta[slot] = value
                break
    return delta
