# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-deepbug")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from deepbug.core.security import hash_password
from deepbug.core.settings import Settings
from deepbug.db.session import Base
from deepbug.db.session import get_db as app_get_session
from deepbug.main import app as fastapi_app
from deepbug.models import AdminAccount, UserAccount
from deepbug.services.auth import AuthService
from deepbug.services.chat import ChatService
from deepbug.services.identity import IdentityProviderError, IdentityUser, get_identity_provider
from deepbug.services.rate_limit import RateLimiter, get_rate_limiter
from deepbug.services.realtime import ChangeFeed, get_change_feed
from deepbug.services.session_store import MemoryStorage, SessionStore, get_session_storage

TEST_DB_URL = "sqlite://"
ADMIN_EMAIL = "admin@deepbug.com"
ADMIN_PASSWORD = "AdminPass123"
USER_PASSWORD = "Password123"


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIdentityProvider:
    """In-memory stand-in for the Firebase client."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.google_users: dict[str, IdentityUser] = {}
        self.sign_out_calls = 0
        self.fail_with: str | None = None
        self._next_uid = 1

    def _new_uid(self) -> str:
        uid = f"uid-{self._next_uid}"
        self._next_uid += 1
        return uid

    def _maybe_fail(self) -> None:
        if self.fail_with:
            raise IdentityProviderError(self.fail_with)

    def create_account(
        self, email: str, password: str, display_name: str | None = None
    ) -> IdentityUser:
        self._maybe_fail()
        if email.lower() in self.accounts:
            raise IdentityProviderError("auth/email-already-in-use")
        user = IdentityUser(uid=self._new_uid(), email=email.lower(), display_name=display_name)
        self.accounts[email.lower()] = {"password": password, "user": user}
        return user

    def sign_in(self, email: str, password: str) -> IdentityUser:
        self._maybe_fail()
        account = self.accounts.get(email.lower())
        if account is None:
            raise IdentityProviderError("auth/user-not-found")
        if account["password"] != password:
            raise IdentityProviderError("auth/wrong-password")
        return account["user"]

    def sign_in_with_provider(self, id_token: str) -> IdentityUser:
        self._maybe_fail()
        user = self.google_users.get(id_token)
        if user is None:
            raise IdentityProviderError("auth/invalid-credential")
        return user

    def sign_out(self) -> None:
        self.sign_out_calls += 1


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_attempts=5, lockout_seconds=15 * 60, clock=clock)


@pytest.fixture()
def sessions(storage: MemoryStorage, clock: FakeClock) -> SessionStore:
    return SessionStore(storage, "client-a", timeout_seconds=24 * 60 * 60, clock=clock)


@pytest.fixture()
def chat_service(db_session: Session, feed: ChangeFeed, clock: FakeClock) -> Iterator[ChatService]:
    service = ChatService(db_session, feed=feed, clock=clock)
    try:
        yield service
    finally:
        service.unsubscribe_all()


@pytest.fixture()
def auth_service(
    db_session: Session,
    identity: FakeIdentityProvider,
    rate_limiter: RateLimiter,
    sessions: SessionStore,
    clock: FakeClock,
) -> AuthService:
    return AuthService(db_session, identity, rate_limiter, sessions, clock=clock)


@pytest.fixture()
def admin_account(db_session: Session) -> AdminAccount:
    """Persist an active administrator with a cheap bcrypt hash."""
    admin = AdminAccount(
        name="Test Admin",
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD, rounds=4),
        role="admin",
        is_active=True,
    )
    db_session.add(admin)
    db_session.commit()
    db_session.refresh(admin)
    return admin


@pytest.fixture()
def user_account(db_session: Session, identity: FakeIdentityProvider) -> UserAccount:
    """Persist a regular user known to the fake identity provider."""
    identity_user = identity.create_account("sara@gmail.com", USER_PASSWORD, "Sara")
    account = UserAccount(
        id=identity_user.uid,
        name="Sara",
        email="sara@gmail.com",
        provider="email",
        is_active=True,
        is_banned=False,
    )
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    identity: FakeIdentityProvider,
    storage: MemoryStorage,
    rate_limiter: RateLimiter,
    feed: ChangeFeed,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides = {
        app_get_session: _get_session_override,
        get_identity_provider: lambda: identity,
        get_session_storage: lambda: storage,
        get_rate_limiter: lambda: rate_limiter,
        get_change_feed: lambda: feed,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def admin_client(client: TestClient, admin_account: AdminAccount) -> TestClient:
    """A client whose admin slot is signed in."""
    response = client.post(
        "/api/v1/auth/admin/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return client


@pytest.fixture()
def user_client(client: TestClient, user_account: UserAccount) -> TestClient:
    """A client whose user slot is signed in."""
    response = client.post(
        "/api/v1/auth/login",
        json={"email": user_account.email, "password": USER_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return Settings()  # type: ignore[call-arg]
