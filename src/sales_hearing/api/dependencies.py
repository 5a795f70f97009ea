"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from sales_hearing.application.orchestrator import HearingOrchestrator
from sales_hearing.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_orchestrator(request: Request) -> HearingOrchestrator:
    """Retorna o orquestrador de hearing."""

    return request.app.state.orchestrator
