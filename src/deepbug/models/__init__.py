# src/deepbug/models/__init__.py
"""SQLAlchemy models for the DeepBug application."""

from .article import Article, Project
from .ban import BanRecord
from .chat import ChatMessage, ChatSession
from .user import AdminAccount, UserAccount

__all__ = [
    "Article", "Project",
    "BanRecord",
    "ChatMessage", "ChatSession",
    "AdminAccount", "UserAccount",
]
