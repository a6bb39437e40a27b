"""Authentication endpoints for users and administrators."""

from __future__ import annotations

from fastapi import APIRouter, Response

from deepbug.api.v1.dependencies import AuthServiceDep, respond
from deepbug.schemas.auth import (
    AdminAuthResult,
    AuthResult,
    CurrentIdentity,
    LoginRequest,
    ProviderLoginRequest,
    RegisterRequest,
)
from deepbug.schemas.common import ActionResult

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResult)
async def register(
    payload: RegisterRequest,
    auth: AuthServiceDep,
    response: Response,
) -> AuthResult:
    """Create an email/password account and sign this client in."""
    result = auth.register_user(payload.name, payload.email, payload.password)
    return respond(result, response)


@router.post("/login", response_model=AuthResult)
async def login(
    payload: LoginRequest,
    auth: AuthServiceDep,
    response: Response,
) -> AuthResult:
    result = auth.login_user(payload.email, payload.password)
    return respond(result, response)


@router.post("/google", response_model=AuthResult)
async def login_with_google(
    payload: ProviderLoginRequest,
    auth: AuthServiceDep,
    response: Response,
) -> AuthResult:
    """Exchange a Google id token for a portal session."""
    result = auth.login_with_google(payload.id_token)
    return respond(result, response)


@router.post("/admin/login", response_model=AdminAuthResult)
async def login_admin(
    payload: LoginRequest,
    auth: AuthServiceDep,
    response: Response,
) -> AdminAuthResult:
    result = auth.login_admin(payload.email, payload.password)
    return respond(result, response)


@router.post("/logout", response_model=ActionResult)
async def logout(auth: AuthServiceDep) -> ActionResult:
    return auth.logout()


@router.get("/me", response_model=CurrentIdentity)
async def read_current_identity(auth: AuthServiceDep) -> CurrentIdentity:
    """Report who this client is signed in as; both fields may be null."""
    return CurrentIdentity(user=auth.get_current_user(), admin=auth.get_current_admin())
