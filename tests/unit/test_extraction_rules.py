"""Testes da tabela de regras de extração (sem LLM)."""

from __future__ import annotations

import re

from sales_hearing.application.extraction_rules import (
    ExtractionRule,
    clean_value,
    extract_with_rules,
)


class TestCleanValue:
    def test_strips_edge_punctuation_and_particles(self) -> None:
        assert clean_value("「株式会社ABC」は") == "株式会社ABC"

    def test_collapses_whitespace(self) -> None:
        assert clean_value("  next   week  ") == "next week"


class TestExtractWithRules:
    def test_budget_and_schedule_in_english(self) -> None:
        delta = extract_with_rules("budget is about 10 million yen, decision by March")
        assert "10 million yen" in delta["budget"]
        assert "March" in delta["schedule"]

    def test_budget_and_schedule_in_japanese(self) -> None:
        delta = extract_with_rules("予算は約1000万円で、3月までに決定したいとのことです")
        assert delta["budget"] == "約1000万円"
        assert delta["schedule"] == "3月までに決定"

    def test_customer_with_company_prefix(self) -> None:
        delta = extract_with_rules("株式会社ABCを訪問しました")
        assert delta["customer"] == "株式会社ABC"

    def test_customer_and_industry_from_suffix(self) -> None:
        delta = extract_with_rules("山田建設の打ち合わせに行きました")
        assert delta["customer"] == "山田建設"
        assert delta["industry"] == "建設業"

    def test_participants_collects_all_matches(self) -> None:
        delta = extract_with_rules("田中部長と佐藤さんが同席しました")
        assert delta["participants"] == "田中部長、佐藤さん"

    def test_generic_honorifics_are_not_participants(self) -> None:
        delta = extract_with_rules("お客様は前向きでした")
        assert "participants" not in delta

    def test_online_location(self) -> None:
        assert extract_with_rules("今日はオンラインで話しました")["location"] == "オンライン"

    def test_closing_possibility_percentage(self) -> None:
        delta = extract_with_rules("受注確度は70%くらいだと思います")
        assert "70%" in delta["closing_possibility"]

    def test_empty_text_returns_empty_map(self) -> None:
        assert extract_with_rules("") == {}
        assert extract_with_rules("   ") == {}

    def test_no_match_returns_empty_map(self) -> None:
        assert extract_with_rules("はい") == {}

    def test_first_matching_rule_wins(self) -> None:
        rules = {
            "customer": (
                ExtractionRule(pattern=re.compile(r"A社")),
                ExtractionRule(pattern=re.compile(r"B社")),
            )
        }
        assert extract_with_rules("B社とA社", rules) == {"customer": "A社"}

    def test_failing_rule_is_skipped(self) -> None:
        def boom(_value: str) -> str:
            raise RuntimeError("transform quebrado")

        rules = {
            "customer": (
                ExtractionRule(pattern=re.compile(r"A社"), transform=boom),
                ExtractionRule(pattern=re.compile(r"A社")),
            )
        }
        assert extract_with_rules("A社", rules) == {"customer": "A社"}
