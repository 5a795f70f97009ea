"""Geradores de identificadores."""

from __future__ import annotations

import uuid


def new_session_id() -> str:
    """Gera um session_id único."""

    return str(uuid.uuid4())


def mask_id(value: str, visible: int = 8) -> str:
    """Versão truncada de um ID para logs."""
    return value[:visible] + "..."
