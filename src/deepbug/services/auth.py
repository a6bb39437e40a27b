"""Sign-up, sign-in and sign-out for users and administrators.

Users authenticate with the identity provider and keep a profile row in
``user_account``; administrators are verified locally against a bcrypt hash.
Every flow ends with a single ``ActionResult`` carrying a localized message.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deepbug.core import messages
from deepbug.core.errors import (
    AuthorizationFailure,
    BackendFailure,
    DeepBugError,
    NotFound,
    RateLimited,
    ValidationFailure,
)
from deepbug.core.security import (
    hash_password,
    sanitize_html,
    validate_email,
    validate_name,
    validate_password,
    verify_password,
)
from deepbug.core.settings import Settings
from deepbug.db.time import Clock, from_timestamp
from deepbug.models import AdminAccount, UserAccount
from deepbug.models.user import PROVIDER_EMAIL, PROVIDER_GOOGLE
from deepbug.schemas.auth import AdminAuthResult, AdminData, AuthResult, UserData
from deepbug.schemas.common import ActionResult
from deepbug.services.identity import IdentityProvider, IdentityProviderError, IdentityUser
from deepbug.services.rate_limit import RateLimiter, admin_identifier
from deepbug.services.session_store import SessionStore

logger = logging.getLogger(__name__)

ADMIN_PASSWORD_ROUNDS = 12


class AuthService:
    """Authentication flows bound to one client's session slots."""

    def __init__(
        self,
        db: Session,
        identity: IdentityProvider,
        rate_limiter: RateLimiter,
        sessions: SessionStore,
        *,
        clock: Clock = time.time,
    ) -> None:
        self.db = db
        self.identity = identity
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self._clock = clock

    def _check_rate_limit(self, identifier: str) -> None:
        decision = self.rate_limiter.check(identifier)
        if not decision.allowed:
            remaining = decision.remaining_seconds or 0
            raise RateLimited(messages.rate_limited(remaining), remaining)

    @staticmethod
    def _identity_call(call: Callable[..., IdentityUser], *args: object) -> IdentityUser:
        try:
            return call(*args)
        except IdentityProviderError as exc:
            raise BackendFailure(messages.provider_error(exc.code)) from exc

    def _find_user_by_email(self, email: str) -> UserAccount | None:
        return self.db.scalars(select(UserAccount).where(UserAccount.email == email)).first()

    def _start_user_session(self, account: UserAccount) -> UserData:
        user = UserData.model_validate(account)
        self.sessions.set_user_session(account.id, user.model_dump(mode="json"))
        return user

    # --- Users ----------------------------------------------------------------------
    def register_user(self, name: str, email: str, password: str) -> AuthResult:
        """Create a provider account and its profile, then sign the client in."""
        identifier = (email or "").lower()
        try:
            if not validate_name(name):
                raise ValidationFailure(messages.INVALID_NAME)
            if not validate_email(email):
                raise ValidationFailure(messages.INVALID_EMAIL_OR_TOO_LONG)
            if not validate_password(password):
                raise ValidationFailure(messages.INVALID_PASSWORD)
            self._check_rate_limit(identifier)
            if self._find_user_by_email(identifier) is not None:
                raise ValidationFailure(messages.USER_EXISTS)

            clean_name = sanitize_html(name)
            identity_user = self._identity_call(
                self.identity.create_account, email, password, clean_name
            )
            account = UserAccount(
                id=identity_user.uid,
                name=clean_name,
                email=identifier,
                provider=PROVIDER_EMAIL,
                avatar=identity_user.photo_url,
                is_active=True,
                is_banned=False,
            )
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
            user = self._start_user_session(account)
        except DeepBugError as exc:
            return AuthResult(success=False, message=exc.message)
        except SQLAlchemyError:
            logger.error("Error registering %s", identifier, exc_info=True)
            self.db.rollback()
            return AuthResult(success=False, message=messages.UNEXPECTED_ERROR)

        self.rate_limiter.reset(identifier)
        logger.info("Registered user %s", account.id)
        return AuthResult(success=True, message=messages.REGISTERED, user=user)

    def login_user(self, email: str, password: str) -> AuthResult:
        identifier = (email or "").lower()
        try:
            if not validate_email(email):
                raise ValidationFailure(messages.INVALID_EMAIL)
            self._check_rate_limit(identifier)

            identity_user = self._identity_call(self.identity.sign_in, email, password)
            account = self.db.get(UserAccount, identity_user.uid)
            if account is None:
                raise NotFound(messages.USER_DATA_MISSING)
            if account.is_banned:
                self.identity.sign_out()
                raise AuthorizationFailure(messages.ACCOUNT_BANNED)

            account.last_login = from_timestamp(self._clock())
            self.db.commit()
            self.db.refresh(account)
            user = self._start_user_session(account)
        except DeepBugError as exc:
            return AuthResult(success=False, message=exc.message)
        except SQLAlchemyError:
            logger.error("Error signing in %s", identifier, exc_info=True)
            self.db.rollback()
            return AuthResult(success=False, message=messages.UNEXPECTED_ERROR)

        self.rate_limiter.reset(identifier)
        return AuthResult(success=True, message=messages.LOGGED_IN, user=user)

    def login_with_google(self, id_token: str) -> AuthResult:
        """Sign in with a Google id token, creating the profile on first use."""
        try:
            identity_user = self._identity_call(self.identity.sign_in_with_provider, id_token)
            account = self.db.get(UserAccount, identity_user.uid)
            if account is None:
                account = UserAccount(
                    id=identity_user.uid,
                    name=sanitize_html(identity_user.display_name or messages.GOOGLE_DEFAULT_NAME),
                    email=(identity_user.email or "").lower(),
                    provider=PROVIDER_GOOGLE,
                    avatar=identity_user.photo_url,
                    is_active=True,
                    is_banned=False,
                )
                self.db.add(account)
            elif account.is_banned:
                self.identity.sign_out()
                raise AuthorizationFailure(messages.ACCOUNT_BANNED)
            else:
                account.last_login = from_timestamp(self._clock())

            self.db.commit()
            self.db.refresh(account)
            user = self._start_user_session(account)
        except AuthorizationFailure as exc:
            return AuthResult(success=False, message=exc.message)
        except BackendFailure as exc:
            logger.warning("Google sign-in rejected: %s", exc.message)
            return AuthResult(success=False, message=messages.GOOGLE_LOGIN_FAILED)
        except SQLAlchemyError:
            logger.error("Error storing Google profile", exc_info=True)
            self.db.rollback()
            return AuthResult(success=False, message=messages.GOOGLE_LOGIN_FAILED)

        return AuthResult(success=True, message=messages.LOGGED_IN, user=user)

    # --- Administrators -------------------------------------------------------------
    def login_admin(self, email: str, password: str) -> AdminAuthResult:
        """Verify administrator credentials locally and open the admin slot.

        Unknown emails and wrong passwords produce the same message.
        """
        identifier = admin_identifier((email or "").lower())
        try:
            if not validate_email(email):
                raise ValidationFailure(messages.INVALID_EMAIL)
            self._check_rate_limit(identifier)

            admin = self.db.scalars(
                select(AdminAccount).where(
                    AdminAccount.email == email.lower(),
                    AdminAccount.is_active.is_(True),
                )
            ).first()
            if admin is None or not verify_password(password or "", admin.password_hash):
                raise AuthorizationFailure(messages.INVALID_CREDENTIALS)

            admin.last_login = from_timestamp(self._clock())
            self.db.commit()
            self.db.refresh(admin)
            data = AdminData(
                id=str(admin.id),
                name=admin.name,
                email=admin.email,
                is_active=admin.is_active,
                created_at=admin.created_at,
                last_login=admin.last_login,
            )
            self.sessions.set_admin_session(data.id, data.model_dump(mode="json"))
        except DeepBugError as exc:
            return AdminAuthResult(success=False, message=exc.message)
        except SQLAlchemyError:
            logger.error("Error signing in administrator", exc_info=True)
            self.db.rollback()
            return AdminAuthResult(success=False, message=messages.ADMIN_LOGIN_FAILED)

        self.rate_limiter.reset(identifier)
        logger.info("Administrator %s signed in", data.id)
        return AdminAuthResult(success=True, message=messages.ADMIN_LOGGED_IN, admin=data)

    # --- Session ----------------------------------------------------------------------
    def logout(self) -> ActionResult:
        try:
            self.identity.sign_out()
        except IdentityProviderError as exc:
            logger.warning("Identity sign-out failed: %s", exc.code)
        self.sessions.clear_user_session()
        self.sessions.clear_admin_session()
        return ActionResult.ok(messages.LOGGED_OUT)

    def get_current_user(self) -> UserData | None:
        record = self.sessions.get_user_session()
        if record is None:
            return None
        return UserData.model_validate(record.subject_data)

    def get_current_admin(self) -> AdminData | None:
        record = self.sessions.get_admin_session()
        if record is None:
            return None
        return AdminData.model_validate(record.subject_data)

    def is_authenticated(self) -> bool:
        return self.sessions.is_valid_session()

    def is_admin_authenticated(self) -> bool:
        return self.sessions.is_valid_admin_session()


def ensure_default_admin(db: Session, config: Settings) -> AdminAccount | None:
    """Create the configured default administrator when no administrator exists.

    Returns the new account, or None when one already existed or no password is
    configured.
    """
    if db.scalars(select(AdminAccount).limit(1)).first() is not None:
        return None
    if not config.default_admin_password:
        logger.warning("DEFAULT_ADMIN_PASSWORD is not set; skipping default administrator")
        return None

    admin = AdminAccount(
        name=config.default_admin_name,
        email=config.default_admin_email.lower(),
        password_hash=hash_password(config.default_admin_password, ADMIN_PASSWORD_ROUNDS),
        role="admin",
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Created default administrator %s", admin.email)
    return admin
