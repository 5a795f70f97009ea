"""Motor de hearing pós-visita comercial."""

__version__ = "0.1.0"
