"""Testes do gerador de sugestões (sem fallback)."""

from __future__ import annotations

import json

import pytest

from sales_hearing.ai.llm_client import DisabledLLMClient
from sales_hearing.application.suggestions import (
    UNDETERMINED_WHO,
    SuggestionGenerator,
    allows_multiple,
    classify_question,
    is_denylisted,
    is_role_descriptor,
    looks_like_person_name,
    participant_names,
)
from sales_hearing.domain.errors import SuggestionGenerationError
from sales_hearing.domain.hearing import QuestionType


def _reply(items: list[str]) -> str:
    return json.dumps({"suggestions": items}, ensure_ascii=False)


class TestClassification:
    @pytest.mark.parametrize(
        ("question", "expected"),
        [
            ("最も熱意を持っていたのは誰でしたか？", QuestionType.WHO),
            ("参加者はどなたでしたか？", QuestionType.WHO),
            ("先方の反応はどうでしたか？", QuestionType.HOW_FEEL),
            ("キーマンの反応はいかがでしたか？", QuestionType.HOW_FEEL),
            ("予算はいくらでしたか？", QuestionType.WHAT),
            ("Who was the decision maker?", QuestionType.WHO),
        ],
    )
    def test_classify_question(self, question: str, expected: QuestionType) -> None:
        assert classify_question(question) is expected

    @pytest.mark.parametrize(
        ("question", "expected"),
        [
            ("最も熱意を持っていたのは誰でしたか？", False),
            ("受注の可能性はどのくらいだと感じましたか？", False),
            ("参加者はどなたでしたか？", True),
            ("どんな課題がありましたか？", True),
        ],
    )
    def test_allows_multiple(self, question: str, expected: bool) -> None:
        assert allows_multiple(question) is expected


class TestRules:
    def test_denylist(self) -> None:
        assert is_denylisted("とても良い")
        assert is_denylisted("Good")
        assert is_denylisted("とても良いと言っていた")
        assert not is_denylisted("良い感触だった価格提示")
        assert not is_denylisted("good timing for renewal")

    def test_person_name_heuristics(self) -> None:
        assert looks_like_person_name("田中部長")
        assert looks_like_person_name("佐藤さん")
        assert looks_like_person_name("Mr. Smith")
        assert not looks_like_person_name("営業部長")
        assert not looks_like_person_name("IT部門の責任者")
        assert looks_like_person_name("鈴木 部長")
        assert looks_like_person_name("Sarah Lee, IT lead")
        assert not looks_like_person_name("Sales Manager")
        assert not looks_like_person_name("The IT lead")

    def test_role_descriptor(self) -> None:
        assert is_role_descriptor("the IT lead")
        assert is_role_descriptor("営業部の担当者")
        assert is_role_descriptor("could not be determined")
        assert not is_role_descriptor("Sarah, IT lead")
        assert not is_role_descriptor("鈴木 部長")
        assert not is_role_descriptor("在庫管理機能")

    def test_participant_names_from_reference_and_slots(self) -> None:
        names = participant_names(
            {"attendees": [{"name": "田中"}], "参加者": "佐藤、鈴木"},
            {"participants": "田中、山本"},
        )
        assert names == ["田中", "佐藤", "鈴木", "山本"]


class TestSuggestionGenerator:
    @pytest.mark.asyncio
    async def test_who_question_without_names_returns_roles_only(self, scripted_llm) -> None:
        scripted_llm.reply(
            "suggestions",
            _reply(
                [
                    "田中部長", "佐藤さん", "Sarah Lee, IT lead", "鈴木 部長",
                    "IT部門の責任者", "現場の担当者", "the IT lead", "とても良い",
                ]
            ),
        )
        generator = SuggestionGenerator(scripted_llm)

        result = await generator.suggest("最も熱意を持っていたのは誰でしたか？", None, {})

        assert result.question_type is QuestionType.WHO
        assert result.allow_multiple is False
        assert 4 <= len(result.suggestions) <= 6
        assert not any(looks_like_person_name(s) for s in result.suggestions)
        assert not any("田中" in s or "佐藤" in s for s in result.suggestions)
        assert result.suggestions == [
            "IT部門の責任者", "現場の担当者", "the IT lead", UNDETERMINED_WHO,
        ]
        assert not any("Sarah" in s or "鈴木" in s for s in result.suggestions)

    @pytest.mark.asyncio
    async def test_who_question_without_names_is_not_padded_with_invented_roles(
        self, scripted_llm
    ) -> None:
        scripted_llm.reply(
            "suggestions",
            _reply(["Sarah Lee, IT lead", "鈴木 部長", "IT部門の責任者", "John Smith"]),
        )
        generator = SuggestionGenerator(scripted_llm)

        with pytest.raises(SuggestionGenerationError):
            await generator.suggest("Who was most enthusiastic?", None, {})

    @pytest.mark.asyncio
    async def test_english_who_question_keeps_role_phrasing(self, scripted_llm) -> None:
        scripted_llm.reply(
            "suggestions",
            _reply(
                [
                    "Sarah Lee, IT lead", "鈴木 部長", "the IT lead",
                    "could not be determined", "営業部の担当者",
                ]
            ),
        )
        generator = SuggestionGenerator(scripted_llm)

        result = await generator.suggest("Who was most enthusiastic?", None, {})

        assert result.suggestions == [
            "the IT lead", "could not be determined", "営業部の担当者", UNDETERMINED_WHO,
        ]

    @pytest.mark.asyncio
    async def test_who_question_with_names_uses_real_names(self, scripted_llm) -> None:
        scripted_llm.reply(
            "suggestions", _reply(["田中部長", "鈴木さん", "IT部門の責任者", "現場の担当者"])
        )
        generator = SuggestionGenerator(scripted_llm)

        result = await generator.suggest(
            "商談で一番前向きだったのは誰ですか？",
            {"participants": ["田中部長", "佐藤さん"]},
            {},
        )

        assert "田中部長" in result.suggestions
        assert "佐藤さん" in result.suggestions
        assert "鈴木さん" not in result.suggestions

    @pytest.mark.asyncio
    async def test_denylisted_phrases_removed_and_capped(self, scripted_llm) -> None:
        scripted_llm.reply(
            "suggestions",
            _reply(
                [
                    "在庫管理機能", "とても良い", "普通", "帳票出力", "API連携",
                    "モバイル対応", "ダッシュボード", "権限管理",
                ]
            ),
        )
        generator = SuggestionGenerator(scripted_llm)

        result = await generator.suggest("特に関心を示した機能は何でしたか？", None, {})

        assert result.question_type is QuestionType.WHAT
        assert result.allow_multiple is True
        assert result.suggestions == [
            "在庫管理機能", "帳票出力", "API連携", "モバイル対応", "ダッシュボード", "権限管理",
        ]

    @pytest.mark.asyncio
    async def test_bare_array_is_accepted(self, scripted_llm) -> None:
        scripted_llm.reply("suggestions", '```json\n["価格", "導入時期", "サポート体制", "操作性"]\n```')
        generator = SuggestionGenerator(scripted_llm)

        result = await generator.suggest("どんな質問が出ましたか？", None, {})

        assert result.suggestions == ["価格", "導入時期", "サポート体制", "操作性"]

    @pytest.mark.asyncio
    async def test_llm_failure_is_explicit_error(self) -> None:
        generator = SuggestionGenerator(DisabledLLMClient())

        with pytest.raises(SuggestionGenerationError) as exc_info:
            await generator.suggest("先方の反応はどうでしたか？", None, {})

        assert exc_info.value.reason == "llm_unavailable"

    @pytest.mark.asyncio
    async def test_unexpected_llm_error(self, scripted_llm) -> None:
        scripted_llm.reply("suggestions", RuntimeError("boom"))

        with pytest.raises(SuggestionGenerationError) as exc_info:
            await SuggestionGenerator(scripted_llm).suggest("Q?", None, {})

        assert exc_info.value.reason == "llm_error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ['{"foo": 1}', "候補は思いつきません"])
    async def test_non_array_response_is_error(self, scripted_llm, raw: str) -> None:
        scripted_llm.reply("suggestions", raw)

        with pytest.raises(SuggestionGenerationError) as exc_info:
            await SuggestionGenerator(scripted_llm).suggest("Q?", None, {})

        assert exc_info.value.reason == "non_array_response"

    @pytest.mark.asyncio
    async def test_only_generic_phrases_is_error(self, scripted_llm) -> None:
        scripted_llm.reply("suggestions", _reply(["とても良い", "良い", "普通", "悪い", "A案"]))

        with pytest.raises(SuggestionGenerationError) as exc_info:
            await SuggestionGenerator(scripted_llm).suggest("提案の評価は？", None, {})

        assert exc_info.value.reason == "insufficient_candidates"

    @pytest.mark.asyncio
    async def test_long_candidates_dropped(self, scripted_llm) -> None:
        long_text = "とても長い説明" * 10
        scripted_llm.reply("suggestions", _reply([long_text, "価格", "納期", "品質", "保守"]))

        result = await SuggestionGenerator(scripted_llm).suggest("何が話題でしたか？", None, {})

        assert long_text not in result.suggestions
        assert len(result.suggestions) == 4
