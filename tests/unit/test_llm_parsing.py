"""Testes da interpretação de respostas do LLM (Parsed | Fallback)."""

from __future__ import annotations

from sales_hearing.ai.parsing import (
    Fallback,
    Parsed,
    parse_json_array,
    parse_json_object,
    strip_code_fences,
)


class TestStripCodeFences:
    def test_removes_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_removes_plain_fence(self) -> None:
        assert strip_code_fences('```\n["x"]\n```') == '["x"]'

    def test_text_without_fence_is_stripped(self) -> None:
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseJsonObject:
    def test_plain_object(self) -> None:
        assert parse_json_object('{"is_complete": false}') == Parsed({"is_complete": False})

    def test_fenced_object(self) -> None:
        result = parse_json_object('```json\n{"next_question": "Q"}\n```')
        assert isinstance(result, Parsed)
        assert result.value["next_question"] == "Q"

    def test_object_surrounded_by_prose(self) -> None:
        result = parse_json_object('以下が結果です。{"budget": "約1000万円"} 以上です。')
        assert result == Parsed({"budget": "約1000万円"})

    def test_empty_response(self) -> None:
        assert parse_json_object("") == Fallback("empty_response")
        assert parse_json_object(None) == Fallback("empty_response")

    def test_invalid_json(self) -> None:
        assert parse_json_object("not json at all") == Fallback("invalid_json")

    def test_unexpected_type(self) -> None:
        assert parse_json_object('["a", "b"]') == Fallback("unexpected_type:list")


class TestParseJsonArray:
    def test_plain_array(self) -> None:
        assert parse_json_array('["a", "b"]') == Parsed(["a", "b"])

    def test_array_surrounded_by_prose(self) -> None:
        assert parse_json_array('候補: ["a", "b"] です') == Parsed(["a", "b"])

    def test_object_is_not_array(self) -> None:
        assert parse_json_array('{"a": 1}') == Fallback("unexpected_type:dict")
