# src/deepbug/services/__init__.py
"""Business logic services for the DeepBug portal."""

from .articles import ArticleService, ProjectService
from .auth import AuthService
from .chat import ChatService
from .rate_limit import RateLimiter
from .realtime import ChangeFeed
from .session_store import SessionStore
from .tokens import AccessTokenService

__all__ = [
    "AccessTokenService",
    "ArticleService",
    "AuthService",
    "ChangeFeed",
    "ChatService",
    "ProjectService",
    "RateLimiter",
    "SessionStore",
]
