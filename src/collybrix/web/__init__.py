"""Web interface for Collybrix.

The FastAPI application serving the JSON API under /api and the
server-rendered dashboard under /dashboard.
"""

from __future__ import annotations

from collybrix.web.app import create_app
from collybrix.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
