"""Configurações centralizadas do sales_hearing.

Uso típico:
    from sales_hearing.config import get_settings
"""

from sales_hearing.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
