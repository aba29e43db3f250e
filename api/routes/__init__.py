"""API Routes Package."""

from api.routes import health, mapping

__all__ = [
    "health",
    "mapping",
]
