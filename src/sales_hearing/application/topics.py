"""Buckets de tópicos, perguntas-modelo e detectores de intenção.

Cada pergunta é mapeada para o conjunto de buckets cujas palavras-chave
aparecem nela. Dois buckets-tipo existem:

- factuais: um por slot obrigatório (customer, project, ...)
- qualitativos: interest, reaction, temperature, atmosphere, keyperson,
  positive, negative, competitor

As perguntas-modelo abaixo tocam exatamente um bucket cada, o que
garante que a deduplicação por bucket nunca bloqueie a pergunta errada.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from enum import StrEnum
from re import Pattern
from typing import Any

from sales_hearing.domain.slots import REQUIRED_SLOTS


def _bucket_pattern(japanese: Iterable[str], english: Iterable[str] = ()) -> Pattern[str]:
    parts = [re.escape(word) for word in japanese]
    parts.extend(rf"\b{re.escape(word)}" for word in english)
    return re.compile("|".join(parts), re.IGNORECASE)


TOPIC_BUCKETS: dict[str, Pattern[str]] = {
    # === Factuais (slots obrigatórios) ===
    "customer": _bucket_pattern(
        ("顧客", "お客様", "会社", "企業", "取引先"), ("customer", "client", "company")
    ),
    "project": _bucket_pattern(("案件", "プロジェクト", "商材"), ("project", "deal")),
    "next_action": _bucket_pattern(
        ("次に", "次の", "次回", "アクション", "今後", "予定"),
        ("next step", "next action", "follow-up", "follow up"),
    ),
    "budget": _bucket_pattern(
        ("予算", "費用", "金額", "価格", "見積"), ("budget", "price", "cost")
    ),
    "schedule": _bucket_pattern(
        ("スケジュール", "期間", "納期", "いつ", "時期", "期限"),
        ("schedule", "timeline", "deadline", "when"),
    ),
    "participants": _bucket_pattern(
        ("参加", "出席", "同席", "誰", "どなた"), ("participant", "attendee", "who")
    ),
    "location": _bucket_pattern(
        ("場所", "どこ", "どちらで", "会場"), ("location", "where", "venue")
    ),
    "issues": _bucket_pattern(
        ("課題", "問題", "懸念", "困り"), ("issue", "problem", "concern", "challenge")
    ),
    # === Qualitativos ===
    "interest": _bucket_pattern(("関心", "興味", "食いつ"), ("interest",)),
    "reaction": _bucket_pattern(("反応", "受け止め", "表情"), ("reaction", "react")),
    "temperature": _bucket_pattern(
        ("温度感", "熱量", "本気度", "確度", "可能性"),
        ("enthusias", "likelihood", "probability", "chance"),
    ),
    "atmosphere": _bucket_pattern(("雰囲気", "空気", "ムード"), ("atmosphere", "mood")),
    "keyperson": _bucket_pattern(
        ("キーマン", "決裁者", "決定権", "意思決定"), ("key person", "decision maker")
    ),
    "positive": _bucket_pattern(
        ("好感触", "手応え", "前向き", "印象に残"), ("positive", "impress")
    ),
    "negative": _bucket_pattern(
        ("不安", "慎重", "難色", "ネガティブ", "反対"), ("negative", "hesitat", "objection")
    ),
    "competitor": _bucket_pattern(("競合", "他社", "比較"), ("competitor", "rival")),
}

QUALITATIVE_BUCKETS: tuple[str, ...] = (
    "reaction",
    "keyperson",
    "interest",
    "atmosphere",
    "temperature",
    "competitor",
    "negative",
    "positive",
)

SLOT_QUESTIONS: dict[str, str] = {
    "customer": "どちらのお客様とお会いしましたか？",
    "project": "どのような案件についての商談でしたか？",
    "next_action": "今回の商談を受けて、次に何をする予定になりましたか？",
    "budget": "予算や金額についてのお話はありましたか？",
    "schedule": "スケジュールや納期についてはいかがでしたか？",
    "participants": "商談にはどなたが参加されましたか？",
    "location": "商談はどちらで行われましたか？",
    "issues": "何か課題や懸念事項、解決したい問題などはありましたか？",
}

QUALITATIVE_QUESTIONS: dict[str, str] = {
    "reaction": "提案を聞いたときの先方の反応はどうでしたか？",
    "keyperson": "決裁者やキーマンはどんな様子でしたか？",
    "interest": "先方が特に関心を示したのはどの部分でしたか？",
    "atmosphere": "商談中、場の雰囲気が変わった瞬間はありましたか？",
    "temperature": "受注の可能性はどのくらいだと感じましたか？",
    "competitor": "他社と比較されている様子はありましたか？",
    "negative": "先方が慎重になっていた点や不安そうだった点はありましたか？",
    "positive": "今回の商談で特に手応えを感じた点は何でしたか？",
}

CLOSING_QUESTION = "ほかに共有しておきたいことはありますか？"
OPENING_QUESTION = "お疲れ様です。今日はどんな商談がありましたか？"

_STOP_RE = re.compile(
    r"もう(?:終わり|終了|いい|大丈夫|十分)|終わりにし|終わりたい|終了し(?:て|たい)|"
    r"これで(?:終わり|以上|十分)|以上です|やめ(?:たい|ます|て)|"
    r"\bstop\b|that'?s all|\bfinish\b|no more questions|end (?:the )?(?:hearing|interview)",
    re.IGNORECASE,
)

_UNDECIDED_RE = re.compile(
    r"決まっていない|決まってない|未定|わからない|分からない|わかりません|分かりません|"
    r"不明|まだ決|検討中|\bnot decided\b|\bundecided\b|\btbd\b|don'?t know|\bunknown\b|not sure",
    re.IGNORECASE,
)

_PAST_ACTION_RE = re.compile(
    r"しました|行いました|伝えました|説明しました|提示しました|渡しました|聞きました|"
    r"\b(?:did|presented|explained|showed|visited|discussed|sent)\b",
    re.IGNORECASE,
)
_FUTURE_ACTION_RE = re.compile(
    r"予定|つもり|します(?!た)|する(?:こと|方向)|来週|次回|今後|後日|"
    r"\b(?:will|going to|plan to|next week|next time)\b",
    re.IGNORECASE,
)


class ActionTense(StrEnum):
    """Tempo verbal das ações descritas numa resposta."""

    PAST = "past"
    FUTURE = "future"
    MIXED = "mixed"
    NONE = "none"


def topics_of(question: str) -> frozenset[str]:
    """Buckets tocados por uma pergunta."""
    return frozenset(name for name, pattern in TOPIC_BUCKETS.items() if pattern.search(question))


def covered_topics(asked_questions: Iterable[str]) -> frozenset[str]:
    """União dos buckets de todas as perguntas já feitas."""
    covered: set[str] = set()
    for question in asked_questions:
        covered |= topics_of(question)
    return frozenset(covered)


def is_topic_duplicate(question: str, asked_questions: Iterable[str]) -> bool:
    """True se a pergunta repete texto ou só toca buckets já cobertos.

    Perguntas sem nenhum bucket só são duplicadas se o texto for igual.
    """
    asked = [q.strip() for q in asked_questions]
    if question.strip() in asked:
        return True
    topics = topics_of(question)
    return bool(topics) and topics <= covered_topics(asked)


def is_stop_request(answer: str) -> bool:
    """Usuário pediu para encerrar o hearing."""
    return bool(_STOP_RE.search(answer))


def is_undecided_answer(answer: str) -> bool:
    """Resposta diz que a informação ainda não está definida."""
    return bool(_UNDECIDED_RE.search(answer))


def target_required_slot(question: str) -> str | None:
    """Slot obrigatório que a pergunta mira (se for exatamente um)."""
    targets = [slot for slot in REQUIRED_SLOTS if slot in topics_of(question)]
    return targets[0] if len(targets) == 1 else None


def analyze_action_tense(answer: str) -> ActionTense:
    """Classifica se a resposta relata ações passadas, futuras ou ambas."""
    past = bool(_PAST_ACTION_RE.search(answer))
    future = bool(_FUTURE_ACTION_RE.search(answer))
    if past and future:
        return ActionTense.MIXED
    if past:
        return ActionTense.PAST
    if future:
        return ActionTense.FUTURE
    return ActionTense.NONE


def opening_question(reference_data: Mapping[str, Any] | None) -> str:
    """Pergunta do turno 0 (determinística)."""
    customer = reference_customer(reference_data)
    if customer:
        return f"お疲れ様です。{customer}様との商談はいかがでしたか？"
    return OPENING_QUESTION


def reference_customer(reference_data: Mapping[str, Any] | None) -> str | None:
    """Nome do cliente presente nos dados de referência, se houver."""
    if not reference_data:
        return None
    for key in ("customer", "customer_name", "company", "company_name", "client"):
        value = reference_data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
