"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import redis
from fastapi import FastAPI

from sales_hearing.ai.llm_client import LLMClient, create_llm_client
from sales_hearing.api.routes import router
from sales_hearing.application.decision import DecisionEngine
from sales_hearing.application.extraction import ExtractionService
from sales_hearing.application.orchestrator import HearingOrchestrator
from sales_hearing.application.prefetch import PrefetchCache
from sales_hearing.application.suggestions import SuggestionGenerator
from sales_hearing.application.text_correction import TextCorrector
from sales_hearing.config.settings import Settings, get_settings
from sales_hearing.infra.cache import create_cache
from sales_hearing.infra.session_store import create_session_store
from sales_hearing.observability.logging import configure_logging, get_logger
from sales_hearing.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


def _create_redis_client(redis_url: str | None) -> Any:
    """Cria cliente Redis se URL disponível."""
    if not redis_url:
        return None
    try:
        return redis.from_url(redis_url, decode_responses=True)
    except (ValueError, redis.RedisError) as e:
        logger.warning("redis_connection_failed", extra={"error": str(e)})
        return None


def build_orchestrator(
    settings: Settings,
    llm_client: LLMClient | None = None,
    redis_client: Any = None,
) -> HearingOrchestrator:
    """Monta o orquestrador com os backends configurados."""
    llm = llm_client if llm_client is not None else create_llm_client(settings)

    store_backend = settings.session_store_backend.lower()
    cache_backend = settings.cache_backend.lower()
    if redis_client is None and "redis" in (store_backend, cache_backend):
        redis_client = _create_redis_client(settings.redis_url)
        if redis_client is None:
            raise ValueError("Backend redis configurado mas REDIS_URL ausente ou inválido")

    store = create_session_store(
        store_backend, client=redis_client if store_backend == "redis" else None
    )
    cache = create_cache(cache_backend, client=redis_client if cache_backend == "redis" else None)

    return HearingOrchestrator(
        store=store,
        extraction=ExtractionService(llm),
        decision=DecisionEngine(
            llm, min_turns=settings.hearing_min_turns, max_turns=settings.hearing_max_turns
        ),
        suggestions=SuggestionGenerator(
            llm,
            min_count=settings.suggestion_min_count,
            max_count=settings.suggestion_max_count,
        ),
        prefetch_cache=PrefetchCache(cache, ttl_seconds=settings.prefetch_ttl_seconds),
        corrector=TextCorrector(llm),
        session_ttl_seconds=settings.session_ttl_seconds,
        prefetch_enabled=settings.prefetch_enabled,
    )


def create_app(
    settings: Settings | None = None,
    *,
    llm_client: LLMClient | None = None,
    redis_client: Any = None,
) -> FastAPI:
    """Cria a aplicação FastAPI."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)

    validation_errors = settings.validate_all()
    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    orchestrator = build_orchestrator(settings, llm_client=llm_client, redis_client=redis_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.shutdown()
        logger.info("prefetch_tasks_shutdown")

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)

    app.state.settings = settings
    app.state.orchestrator = orchestrator

    logger.info(
        "app_created",
        extra={
            "environment": settings.environment,
            "llm_enabled": settings.openai_enabled,
            "session_store_backend": settings.session_store_backend,
            "cache_backend": settings.cache_backend,
        },
    )
    return app


app = create_app()
