"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars.
Nunca hardcode secrets ou valores sensíveis.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_BACKENDS = {"memory", "redis"}


class Settings(BaseSettings):
    """Configurações lidas do ambiente.

    Comentários em PT-BR são obrigatórios por diretriz do projeto.
    """

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    # Aplicação
    service_name: str = "sales_hearing"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # OpenAI / IA
    openai_api_key: str | None = None
    openai_base_url: str | None = None  # Gateway compatível (opcional)
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 15.0
    openai_max_retries: int = 2
    openai_enabled: bool = False  # Feature flag (fail-safe: só heurísticas)

    # Cache volátil (prefetch de turnos)
    cache_backend: str = "memory"  # memory | redis
    redis_url: str | None = None
    prefetch_enabled: bool = True
    prefetch_ttl_seconds: int = 1800  # 30 minutos

    # Sessões de hearing
    session_store_backend: str = "memory"  # memory | redis
    session_ttl_seconds: int = 7200

    # Regras do hearing
    hearing_min_turns: int = 6  # Nunca concluir antes (exceto pedido de parada)
    hearing_max_turns: int = 9  # Limite rígido único (conclusão forçada)
    suggestion_min_count: int = 4
    suggestion_max_count: int = 6

    def validate_openai_config(self) -> list[str]:
        """Valida configuração de OpenAI.

        Se openai_enabled=True, verifica se OPENAI_API_KEY está configurado.
        Retorna lista de erros (vazia = OK).
        """
        errors: list[str] = []
        if self.openai_enabled and not self.openai_api_key:
            errors.append("OPENAI_ENABLED=true requer OPENAI_API_KEY configurado")
        if self.openai_timeout_seconds <= 0:
            errors.append("OPENAI_TIMEOUT_SECONDS deve ser > 0")
        return errors

    def validate_cache_config(self) -> list[str]:
        """Valida backend do cache de prefetch."""
        errors: list[str] = []
        backend = self.cache_backend.lower()
        if backend not in _VALID_BACKENDS:
            errors.append(
                f"CACHE_BACKEND '{backend}' inválido. Valores válidos: {_VALID_BACKENDS}"
            )
        if backend == "redis" and not self.redis_url:
            errors.append("CACHE_BACKEND=redis requer REDIS_URL configurado")
        if self.prefetch_ttl_seconds <= 0:
            errors.append("PREFETCH_TTL_SECONDS deve ser > 0")
        return errors

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de session store por ambiente.

        Em staging/prod, memory é proibido (instâncias stateless).
        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        if backend not in _VALID_BACKENDS:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. Valores válidos: {_VALID_BACKENDS}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em staging/production. "
                "Configure 'redis' para compartilhar sessões entre instâncias."
            )

        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")

        return errors

    def validate_hearing_config(self) -> list[str]:
        """Valida limites de turnos e de sugestões."""
        errors: list[str] = []
        if self.hearing_min_turns < 1:
            errors.append("HEARING_MIN_TURNS deve ser >= 1")
        if self.hearing_max_turns < self.hearing_min_turns:
            errors.append("HEARING_MAX_TURNS deve ser >= HEARING_MIN_TURNS")
        if not 1 <= self.suggestion_min_count <= self.suggestion_max_count:
            errors.append("Requer 1 <= SUGGESTION_MIN_COUNT <= SUGGESTION_MAX_COUNT")
        return errors

    def validate_all(self) -> list[str]:
        """Agrega todos os erros de validação."""
        errors: list[str] = []
        errors.extend(self.validate_openai_config())
        errors.extend(self.validate_cache_config())
        errors.extend(self.validate_session_store_config())
        errors.extend(self.validate_hearing_config())
        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna instância única de Settings (cacheada)."""
    return Settings()
