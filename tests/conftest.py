from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from sales_hearing.api.app import create_app
from sales_hearing.config.settings import get_settings
from sales_hearing.domain.errors import LLMUnavailableError

# Marcadores presentes em cada system prompt
_COMPONENT_MARKERS = (
    ("suggestions", "回答候補"),
    ("decision", "次に何を質問するか"),
    ("correction", "文字起こし"),
)


def _component_of(system: str) -> str:
    for component, marker in _COMPONENT_MARKERS:
        if marker in system:
            return component
    return "extraction"


class ScriptedLLM:
    """LLM fake: respostas fixas por componente.

    Cada resposta pode ser str, exceção (lançada) ou callable(user) -> str.
    Componente sem resposta configurada lança LLMUnavailableError.
    """

    def __init__(self) -> None:
        self.replies: dict[str, object] = {}
        self.calls: list[tuple[str, str]] = []

    def reply(self, component: str, value: object) -> ScriptedLLM:
        self.replies[component] = value
        return self

    def calls_for(self, component: str) -> list[str]:
        return [user for name, user in self.calls if name == component]

    async def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.3,
        max_tokens: int = 800,
    ) -> str:
        component = _component_of(system)
        self.calls.append((component, user))
        value = self.replies.get(component)
        if value is None:
            raise LLMUnavailableError(f"sem resposta configurada para {component}")
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(user)
        return str(value)


@pytest.fixture()
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture()
def memory_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("SESSION_STORE_BACKEND", "memory")
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setenv("OPENAI_ENABLED", "false")
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client(memory_env: None):
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def client_factory(memory_env: None) -> Callable[..., TestClient]:
    """Cria TestClient com LLM injetado (lifespan fica a cargo do teste)."""

    def _factory(llm: object) -> TestClient:
        return TestClient(create_app(get_settings(), llm_client=llm))

    return _factory
