"""Interpretação de respostas de LLM em resultado etiquetado.

O LLM devolve texto livre que deveria ser JSON, às vezes dentro de
blocos ```json```. O parse nunca lança: retorna `Parsed(value)` ou
`Fallback(reason)` e quem chama decide o que fazer.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Parsed:
    """Parse bem-sucedido."""

    value: Any


@dataclass(frozen=True, slots=True)
class Fallback:
    """Parse falhou; `reason` é curto e sem conteúdo do usuário."""

    reason: str


ParseResult = Parsed | Fallback


def strip_code_fences(raw: str) -> str:
    """Remove cercas de código markdown, se houver."""
    match = _FENCE_RE.search(raw)
    if match:
        return match.group(1).strip()
    return raw.strip()


def _loads_between(text: str, opener: str, closer: str) -> Any:
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        raise ValueError("delimiters not found")
    return json.loads(text[start : end + 1])


def _parse(raw: str | None, opener: str, closer: str, expected: type) -> ParseResult:
    if raw is None or not raw.strip():
        return Fallback("empty_response")

    text = strip_code_fences(raw)
    try:
        value = json.loads(text)
    except ValueError:
        try:
            value = _loads_between(text, opener, closer)
        except ValueError:
            return Fallback("invalid_json")

    if not isinstance(value, expected):
        return Fallback(f"unexpected_type:{type(value).__name__}")
    return Parsed(value)


def parse_json_object(raw: str | None) -> ParseResult:
    """Extrai um objeto JSON (dict) do texto do LLM."""
    return _parse(raw, "{", "}", dict)


def parse_json_array(raw: str | None) -> ParseResult:
    """Extrai um array JSON (list) do texto do LLM."""
    return _parse(raw, "[", "]", list)
