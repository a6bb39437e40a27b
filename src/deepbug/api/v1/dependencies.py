"""Shared API dependencies for sessions, services and access control."""

from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.core.security import generate_secure_id
from deepbug.core.settings import settings
from deepbug.db.session import get_db
from deepbug.schemas.auth import AdminData, UserData
from deepbug.schemas.common import ActionResult
from deepbug.services.auth import AuthService
from deepbug.services.chat import ChatService
from deepbug.services.identity import IdentityProvider, get_identity_provider
from deepbug.services.rate_limit import RateLimiter, get_rate_limiter
from deepbug.services.realtime import ChangeFeed, get_change_feed
from deepbug.services.session_store import KeyValueStorage, SessionStore, get_session_storage
from deepbug.services.tokens import validate_access_token

# Cookie naming the browser whose session slots a request reads and writes
CLIENT_COOKIE = "deepbug_client"

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
FeedDep = Annotated[ChangeFeed, Depends(get_change_feed)]

ResultT = TypeVar("ResultT", bound=ActionResult)


def get_client_id(request: Request, response: Response) -> str:
    """Return the caller's client id, issuing a cookie on first contact."""
    client_id = request.cookies.get(CLIENT_COOKIE)
    if not client_id:
        client_id = generate_secure_id()
        response.set_cookie(
            CLIENT_COOKIE,
            client_id,
            max_age=settings.session_timeout_seconds,
            httponly=True,
            samesite="lax",
        )
    return client_id


def get_session_store(
    client_id: Annotated[str, Depends(get_client_id)],
    storage: Annotated[KeyValueStorage, Depends(get_session_storage)],
) -> SessionStore:
    return SessionStore(storage, namespace=client_id)


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]


def get_auth_service(
    db: SessionDep,
    sessions: SessionStoreDep,
    identity: Annotated[IdentityProvider, Depends(get_identity_provider)],
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> AuthService:
    return AuthService(db, identity, rate_limiter, sessions)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_chat_service(db: SessionDep, feed: FeedDep) -> ChatService:
    return ChatService(db, feed=feed)


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


def get_current_user(auth: AuthServiceDep) -> UserData:
    """Return the signed-in user of this client.

    Raises:
        HTTPException: 401 when the client has no live user session.
    """
    user = auth.get_current_user()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=messages.LOGIN_REQUIRED,
        )
    return user


def get_current_admin(auth: AuthServiceDep) -> AdminData:
    """Return the signed-in administrator of this client.

    Raises:
        HTTPException: 403 when the client has no live admin session.
    """
    admin = auth.get_current_admin()
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=messages.ADMIN_REQUIRED,
        )
    return admin


# Type aliases for the signed-in principals
CurrentUserDep = Annotated[UserData, Depends(get_current_user)]
CurrentAdminDep = Annotated[AdminData, Depends(get_current_admin)]


def respond(result: ResultT, response: Response) -> ResultT:
    """Return ``result`` as the body, flagging failures with HTTP 400."""
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


def require_access_token(admin: AdminData, resource_id: str, token: str | None) -> None:
    """Reject edits unless ``token`` was issued to ``admin`` for ``resource_id``.

    Raises:
        HTTPException: 403 when the token is missing, foreign or expired.
    """
    if not token or not validate_access_token(token, admin.id, resource_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=messages.ACCESS_DENIED,
        )
