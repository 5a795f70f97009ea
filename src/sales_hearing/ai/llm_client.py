"""Cliente LLM (OpenAI) usado por extração, decisão, sugestões e correção.

Contrato mínimo: `await complete(system=..., user=...) -> str`. Falhas de
rede/API viram LLMUnavailableError; resposta vazia vira
MalformedLLMResponseError. Quem chama decide o fallback.
"""

from __future__ import annotations

import logging
from typing import Protocol

from openai import APIError, APITimeoutError, AsyncOpenAI

from sales_hearing.config.settings import Settings
from sales_hearing.domain.errors import LLMUnavailableError, MalformedLLMResponseError
from sales_hearing.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class LLMClient(Protocol):
    """Protocolo de completions em texto livre."""

    async def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.3,
        max_tokens: int = 800,
    ) -> str: ...


class OpenAILLMClient:
    """Wrapper sobre AsyncOpenAI com timeout e retries configuráveis."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 15.0,
        max_retries: int = 2,
        base_url: str | None = None,
    ) -> None:
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=max_retries,
            timeout=timeout_seconds,
        )
        self._model = model
        self._timeout = timeout_seconds

    async def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.3,
        max_tokens: int = 800,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self._timeout,
            )
        except (APIError, APITimeoutError) as e:
            logger.warning(
                "llm_call_error",
                extra={"error": str(e), "error_type": type(e).__name__, "model": self._model},
            )
            raise LLMUnavailableError(f"LLM call failed: {type(e).__name__}") from e

        if not response.choices:
            raise MalformedLLMResponseError("LLM returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise MalformedLLMResponseError("LLM returned empty content")
        return content


class DisabledLLMClient:
    """Cliente usado quando OPENAI_ENABLED=false: sempre indisponível."""

    async def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.3,
        max_tokens: int = 800,
    ) -> str:
        raise LLMUnavailableError("LLM desabilitado (OPENAI_ENABLED=false)")


def create_llm_client(settings: Settings) -> LLMClient:
    """Cria cliente conforme feature flag e credenciais."""
    if not settings.openai_enabled or not settings.openai_api_key:
        logger.info("llm_disabled", extra={"openai_enabled": settings.openai_enabled})
        return DisabledLLMClient()
    return OpenAILLMClient(
        settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
        max_retries=settings.openai_max_retries,
        base_url=settings.openai_base_url,
    )
