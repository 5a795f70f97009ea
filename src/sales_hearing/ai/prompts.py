"""Prompts e formatação para chamadas ao LLM.

Responsabilidades:
- Definir system prompts (em japonês, idioma do hearing)
- Formatar inputs de cada ponto de LLM
- Manter instruções JSON estruturadas
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from sales_hearing.domain.hearing import ConversationTurn, DataSource, QuestionType
from sales_hearing.domain.slots import REQUIRED_SLOTS, SLOT_SPECS, MergePolicy, is_filled

_HISTORY_TURNS = 3


def _slot_catalog() -> str:
    lines = []
    for spec in SLOT_SPECS.values():
        policy = "毎回上書き" if spec.merge_policy is MergePolicy.OVERRIDE_ALWAYS else "初回のみ"
        lines.append(f"- {spec.name}: {spec.label}（{spec.description}／{policy}）")
    return "\n".join(lines)


def _known_slots_block(known_slots: Mapping[str, str]) -> str:
    filled = {k: v for k, v in known_slots.items() if is_filled(v)}
    if not filled:
        return "（まだ何も分かっていません）"
    return "\n".join(f"- {k}: {v}" for k, v in filled.items())


def _reference_block(reference_data: Mapping[str, Any] | None) -> str:
    if not reference_data:
        return "（参照データなし）"
    return json.dumps(reference_data, ensure_ascii=False, default=str)


def _history_block(history: Sequence[ConversationTurn]) -> str:
    recent = list(history)[-_HISTORY_TURNS:]
    if not recent:
        return "（履歴なし）"
    return "\n".join(f"Q: {turn.question}\nA: {turn.answer}" for turn in recent)


# === Extração ===


def get_extraction_prompt() -> str:
    """System prompt para extração estruturada de slots."""
    return f"""あなたは営業日報の入力を支援するアシスタントです。
営業担当者の回答から、商談に関する情報を抽出してください。

## 抽出対象の項目
{_slot_catalog()}

## ルール
1. 回答に明示されている情報だけを抽出し、推測で補わないこと。
2. 「初回のみ」の項目で既に値が分かっているものは抽出しないこと。
3. 該当する情報がない項目は出力に含めないこと。
4. 複数の値がある場合は文字列の配列で返してよい。
5. 回答がJSONオブジェクトのみになるようにすること。前後に文章を付けないこと。

```json
{{"customer": "株式会社〇〇", "budget": "約1000万円"}}
```
"""


def format_extraction_input(
    answer: str, last_question: str, known_slots: Mapping[str, str]
) -> str:
    """Formata pergunta, resposta e slots conhecidos para a extração."""
    return (
        f"## 直前の質問\n{last_question}\n\n"
        f"## 回答\n{answer}\n\n"
        f"## 既に分かっている情報\n{_known_slots_block(known_slots)}"
    )


# === Decisão de próxima pergunta ===


def get_decision_prompt(min_turns: int, max_turns: int) -> str:
    """System prompt para decidir a próxima pergunta."""
    required = "、".join(SLOT_SPECS[name].label for name in REQUIRED_SLOTS)
    return f"""あなたは商談後のヒアリングを行う優秀な営業マネージャーです。
次に何を質問するか、またはヒアリングを終了するかを判断してください。

## 必須項目
{required}

## ルール
1. 既に質問した話題（話題キーを参照）は二度と聞かないこと。
2. 序盤はお客様の温度感・反応・雰囲気・キーマンの様子など定性的な質問を優先し、
   終盤は未確認の事実（予算、スケジュール、次のアクション等）を確認すること。
3. ユーザーが「もう終わりたい」など終了を明示した場合は、直ちに is_complete を true にすること。
4. 回答済みの質問が {min_turns} 問未満の間は、終了の明示がない限り終了しないこと。
5. 質問は全体で最大 {max_turns} 問。これを超えることはできない。
6. 質問は1つだけ、短く自然な日本語で。

## 出力形式（JSONのみ）
```json
{{"is_complete": false, "next_question": "次の質問", "reason": "判断理由"}}
```
"""


def format_decision_input(
    *,
    answered_turns: int,
    max_turns: int,
    slots: Mapping[str, str],
    last_answer: str,
    asked_questions: Sequence[str],
    covered: Sequence[str],
    action_tense: str,
    reference_data: Mapping[str, Any] | None,
) -> str:
    """Formata o estado da sessão para o motor de decisão."""
    missing = [SLOT_SPECS[n].label for n in REQUIRED_SLOTS if not is_filled(slots.get(n))]
    asked = "\n".join(f"{i + 1}. {q}" for i, q in enumerate(asked_questions))
    return (
        f"## 進行状況\n回答済み: {answered_turns} / 最大 {max_turns} 問\n\n"
        f"## これまでの質問\n{asked}\n\n"
        f"## 話題キー（聞き済み）\n{', '.join(covered) or 'なし'}\n\n"
        f"## 最新の回答\n{last_answer or '（なし）'}\n"
        f"（回答内の行動の時制: {action_tense}）\n\n"
        f"## 分かっている情報\n{_known_slots_block(slots)}\n\n"
        f"## 未確認の必須項目\n{'、'.join(missing) or 'なし'}\n\n"
        f"## 参照データ\n{_reference_block(reference_data)}"
    )


# === Sugestões ===

_TYPE_GUIDANCE: dict[QuestionType, str] = {
    QuestionType.WHO: (
        "この質問は「誰」を尋ねています。候補は人物または役職・部署で答えること。"
        "参加者名が与えられていればその実名を使い、与えられていなければ"
        "「IT部門の責任者」「判断できなかった」のような役職・部署表現のみを使うこと。"
        "人名を創作しないこと。内容やテーマだけの候補は出さないこと。"
    ),
    QuestionType.WHAT: (
        "この質問は「何・どれ」を尋ねています。候補は具体的な話題・機能・内容で答えること。"
    ),
    QuestionType.HOW_FEEL: (
        "この質問は「どう感じたか」を尋ねています。候補は具体的な場面や言動に基づく"
        "温度感の描写で答えること。"
    ),
}


def get_suggestion_prompt(
    question_type: QuestionType, denylist: Sequence[str], min_count: int, max_count: int
) -> str:
    """System prompt para gerar candidatos de resposta."""
    banned = "、".join(f"「{phrase}」" for phrase in denylist)
    return f"""あなたは営業担当者の回答入力を助けるアシスタントです。
質問に対して、担当者がタップで選べる回答候補を {min_count}〜{max_count} 個作ってください。

## 質問タイプ
{_TYPE_GUIDANCE[question_type]}

## ルール
1. 参照データ・既知の情報・直近の会話に含まれる事実だけに基づくこと。
2. 具体的な数字や固有名詞を創作しないこと。
3. 次のような一般的な評価語は情報量がないため絶対に使わないこと: {banned}
4. 各候補は30文字以内。

## 出力形式（JSONのみ）
```json
{{"suggestions": ["候補1", "候補2", "候補3", "候補4"]}}
```
"""


def format_suggestion_input(
    *,
    question: str,
    reference_data: Mapping[str, Any] | None,
    current_slots: Mapping[str, str],
    data_source: DataSource,
    recent_history: Sequence[ConversationTurn],
    participant_names: Sequence[str],
) -> str:
    """Formata o contexto de grounding das sugestões."""
    names = "、".join(participant_names) or "（参加者名なし）"
    return (
        f"## 質問\n{question}\n\n"
        f"## 参照データ（出典: {data_source.value}）\n{_reference_block(reference_data)}\n\n"
        f"## 既知の情報\n{_known_slots_block(current_slots)}\n\n"
        f"## 参加者名\n{names}\n\n"
        f"## 直近の会話\n{_history_block(recent_history)}"
    )


# === Correção de texto ===


def get_correction_prompt() -> str:
    """System prompt para limpeza de transcrição."""
    return """あなたは音声入力の文字起こしを整えるアシスタントです。
次のルールで文章を整えてください。

1. 「えっと」「あのー」「まあ」などのフィラーを取り除く。
2. 句読点（、。）を適切に補う。
3. 意味や事実は変えない。要約しない。
4. JSONのみで返すこと。

```json
{"corrected_text": "整えた文章"}
```
"""
