# src/deepbug/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    articles_router,
    auth_router,
    chat_router,
    projects_router,
)

__all__ = [
    "auth_router",
    "chat_router",
    "articles_router",
    "projects_router",
]
