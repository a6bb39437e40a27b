# src/deepbug/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .article import (
    AccessTokenOut,
    ArticleCreate,
    ArticleOut,
    ArticleUpdate,
    LikeRequest,
    ProjectCreate,
    ProjectOut,
    ProjectUpdate,
)
from .auth import (
    AdminAuthResult,
    AdminData,
    AuthResult,
    CurrentIdentity,
    LoginRequest,
    ProviderLoginRequest,
    RegisterRequest,
    UserData,
)
from .chat import BanOut, BanRequest, ChatMessageOut, ChatStatus, SendMessageRequest
from .common import ActionResult, CreatedResult

__all__ = [
    "AccessTokenOut",
    "ArticleCreate", "ArticleOut", "ArticleUpdate", "LikeRequest",
    "ProjectCreate", "ProjectOut", "ProjectUpdate",
    "AdminAuthResult", "AdminData", "AuthResult", "CurrentIdentity",
    "LoginRequest", "ProviderLoginRequest", "RegisterRequest", "UserData",
    "BanOut", "BanRequest", "ChatMessageOut", "ChatStatus", "SendMessageRequest",
    "ActionResult", "CreatedResult",
]
