"""API Package.

FastAPI server exposing master-data auto-mapping.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
