"""Context manager para instrumentação de latência."""

from __future__ import annotations

import contextlib
import time
from collections.abc import Generator

from sales_hearing.observability.logging import get_logger

logger = get_logger(__name__)


@contextlib.contextmanager
def timed(component: str, **fields: object) -> Generator[None, None, None]:
    """Mede e loga o tempo decorrido de um componente.

    Uso:
        with timed("extraction", turn_index=3):
            ...

    Loga `component_latency` com component, elapsed_ms e os campos extras.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "component_latency",
            extra={
                "component": component,
                "elapsed_ms": round(elapsed_ms, 2),
                **fields,
            },
        )
