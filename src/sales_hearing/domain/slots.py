"""Esquema de slots do hearing e regras de merge.

Slots obrigatórios descrevem os fatos da visita; slots de sinal capturam
a "temperatura" comercial (reação do decisor, concorrência, chance de
fechamento). Cada slot tem uma política de merge:

- OVERRIDE_ALWAYS: reextraído a cada turno; o valor mais recente vence.
- FILL_ONCE: escrito apenas enquanto vazio; depois fica congelado.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

LIST_DELIMITER = "、"
UNDECIDED_VALUE = "未定"


class MergePolicy(StrEnum):
    """Política de merge de um slot."""

    OVERRIDE_ALWAYS = "override_always"
    FILL_ONCE = "fill_once"


class SlotKind(StrEnum):
    """Categoria do slot no esquema."""

    REQUIRED = "required"
    SIGNAL = "signal"
    CONTEXT = "context"


@dataclass(frozen=True, slots=True)
class SlotSpec:
    """Definição estática de um slot."""

    name: str
    label: str
    description: str
    kind: SlotKind
    merge_policy: MergePolicy = MergePolicy.FILL_ONCE


_SPECS: tuple[SlotSpec, ...] = (
    # === Obrigatórios (ordem = prioridade do fallback de decisão) ===
    SlotSpec("customer", "顧客名", "訪問先の会社名・顧客名", SlotKind.REQUIRED),
    SlotSpec(
        "project",
        "案件名",
        "商談の対象となる案件・プロジェクト",
        SlotKind.REQUIRED,
        MergePolicy.OVERRIDE_ALWAYS,
    ),
    SlotSpec("next_action", "次のアクション", "今後自分たちが行う具体的な行動", SlotKind.REQUIRED),
    SlotSpec("budget", "予算", "予算・金額・費用感", SlotKind.REQUIRED),
    SlotSpec("schedule", "スケジュール", "期間・納期・決裁時期", SlotKind.REQUIRED),
    SlotSpec("participants", "参加者", "商談に参加した人物・役職", SlotKind.REQUIRED),
    SlotSpec(
        "location",
        "場所",
        "商談を行った場所",
        SlotKind.REQUIRED,
        MergePolicy.OVERRIDE_ALWAYS,
    ),
    SlotSpec("issues", "課題", "顧客の課題・懸念事項・解決したい問題", SlotKind.REQUIRED),
    # === Sinais qualitativos ===
    SlotSpec("key_person_reaction", "キーマンの反応", "決裁者・キーマンの反応", SlotKind.SIGNAL),
    SlotSpec("positive_points", "好感触ポイント", "顧客が前向きだった点", SlotKind.SIGNAL),
    SlotSpec("concerns_mood", "懸念の温度感", "顧客が示した懸念や慎重さ", SlotKind.SIGNAL),
    SlotSpec("competitor_info", "競合情報", "競合他社の検討状況", SlotKind.SIGNAL),
    SlotSpec("budget_reaction", "予算への反応", "金額提示に対する反応", SlotKind.SIGNAL),
    SlotSpec("next_step_mood", "次ステップへの温度感", "次の打ち合わせへの積極性", SlotKind.SIGNAL),
    SlotSpec("atmosphere_change", "雰囲気の変化", "商談中の場の空気の変化", SlotKind.SIGNAL),
    SlotSpec(
        "enthusiasm_level",
        "熱量",
        "顧客の関心度・熱量",
        SlotKind.SIGNAL,
        MergePolicy.OVERRIDE_ALWAYS,
    ),
    SlotSpec(
        "closing_possibility",
        "受注確度",
        "受注の可能性・確度",
        SlotKind.SIGNAL,
        MergePolicy.OVERRIDE_ALWAYS,
    ),
    SlotSpec("relationship_notes", "関係性メモ", "担当者との関係性", SlotKind.SIGNAL),
    SlotSpec("personal_info", "個人情報メモ", "雑談で得た担当者の人となり", SlotKind.SIGNAL),
    # === Contexto ===
    SlotSpec("summary", "概要", "最初の回答(商談の概要)", SlotKind.CONTEXT),
    SlotSpec("industry", "業界", "顧客の業界", SlotKind.CONTEXT),
)

SLOT_SPECS: dict[str, SlotSpec] = {spec.name: spec for spec in _SPECS}

REQUIRED_SLOTS: tuple[str, ...] = tuple(
    spec.name for spec in _SPECS if spec.kind is SlotKind.REQUIRED
)
SIGNAL_SLOTS: tuple[str, ...] = tuple(spec.name for spec in _SPECS if spec.kind is SlotKind.SIGNAL)
ALL_SLOTS: frozenset[str] = frozenset(SLOT_SPECS)


def is_filled(value: str | None) -> bool:
    """Slot com conteúdo útil (não vazio após strip)."""
    return bool(value and value.strip())


def merge_slots(current: Mapping[str, str], delta: Mapping[str, str]) -> dict[str, str]:
    """Aplica o delta extraído sobre os slots atuais.

    Chaves fora do esquema e valores vazios são ignorados. Nunca muta
    `current`; retorna um novo dicionário.
    """
    merged = dict(current)
    for name, value in delta.items():
        spec = SLOT_SPECS.get(name)
        if spec is None or not is_filled(value):
            continue
        value = value.strip()
        if spec.merge_policy is MergePolicy.OVERRIDE_ALWAYS:
            merged[name] = value
        elif not is_filled(merged.get(name)):
            merged[name] = value
    return merged


def missing_required(slots: Mapping[str, str]) -> list[str]:
    """Slots obrigatórios ainda vazios, na ordem de prioridade."""
    return [name for name in REQUIRED_SLOTS if not is_filled(slots.get(name))]
