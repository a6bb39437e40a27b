# src/deepbug/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .articles import router as articles_router
from .auth import router as auth_router
from .chat import router as chat_router
from .projects import router as projects_router

__all__ = [
    "auth_router",
    "chat_router",
    "articles_router",
    "projects_router",
]
