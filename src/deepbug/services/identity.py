"""Identity provider client.

Account credentials for regular users live with the identity provider, not in
the portal database. ``FirebaseIdentityProvider`` talks to the Firebase Identity
Toolkit REST API; tests substitute any object satisfying ``IdentityProvider``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlencode

import httpx

from deepbug.core.settings import settings

logger = logging.getLogger(__name__)

NETWORK_ERROR_CODE = "auth/network-request-failed"
UNKNOWN_ERROR_CODE = "auth/internal-error"

# Identity Toolkit REST error strings -> client SDK style codes.
REST_ERROR_CODES: dict[str, str] = {
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "WEAK_PASSWORD": "auth/weak-password",
    "INVALID_EMAIL": "auth/invalid-email",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
    "USER_DISABLED": "auth/user-disabled",
}


@dataclass(frozen=True)
class IdentityUser:
    uid: str
    email: str | None
    display_name: str | None = None
    photo_url: str | None = None


class IdentityProviderError(Exception):
    """Raised with an ``auth/...`` code when the provider rejects a call."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        super().__init__(detail or code)
        self.code = code


class IdentityProvider(Protocol):
    def create_account(
        self, email: str, password: str, display_name: str | None = None
    ) -> IdentityUser: ...

    def sign_in(self, email: str, password: str) -> IdentityUser: ...

    def sign_in_with_provider(self, id_token: str) -> IdentityUser: ...

    def sign_out(self) -> None: ...


def map_rest_error(message: str | None) -> str:
    """Translate a REST error message such as ``WEAK_PASSWORD : ...`` into a code."""
    if not message:
        return UNKNOWN_ERROR_CODE
    key = message.split(":", 1)[0].strip()
    return REST_ERROR_CODES.get(key, UNKNOWN_ERROR_CODE)


class FirebaseIdentityProvider:
    """Email/password and Google sign-in against the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        request_uri: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.firebase_api_key
        self.request_uri = request_uri or settings.identity_request_uri
        self._client = httpx.Client(
            base_url=base_url or settings.firebase_auth_base_url,
            timeout=httpx.Timeout(
                timeout_seconds if timeout_seconds is not None
                else settings.identity_http_timeout_seconds
            ),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(
                f"/accounts:{endpoint}",
                params={"key": self.api_key or ""},
                json=payload,
            )
        except httpx.HTTPError as exc:
            logger.warning("Identity provider request %s failed: %s", endpoint, exc)
            raise IdentityProviderError(NETWORK_ERROR_CODE, str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = (body.get("error") or {}).get("message")
            code = map_rest_error(message)
            logger.info("Identity provider rejected %s: %s", endpoint, message)
            raise IdentityProviderError(code, message)
        return body

    @staticmethod
    def _to_user(body: dict[str, Any]) -> IdentityUser:
        return IdentityUser(
            uid=body["localId"],
            email=body.get("email"),
            display_name=body.get("displayName") or None,
            photo_url=body.get("photoUrl") or body.get("profilePicture") or None,
        )

    def create_account(
        self, email: str, password: str, display_name: str | None = None
    ) -> IdentityUser:
        body = self._post(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        if display_name:
            self._post(
                "update",
                {
                    "idToken": body["idToken"],
                    "displayName": display_name,
                    "returnSecureToken": False,
                },
            )
            body = {**body, "displayName": display_name}
        return self._to_user(body)

    def sign_in(self, email: str, password: str) -> IdentityUser:
        body = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_user(body)

    def sign_in_with_provider(self, id_token: str) -> IdentityUser:
        """Exchange a Google OAuth id token for a provider account."""
        body = self._post(
            "signInWithIdp",
            {
                "postBody": urlencode({"id_token": id_token, "providerId": "google.com"}),
                "requestUri": self.request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        return self._to_user(body)

    def sign_out(self) -> None:
        # The REST API holds no server-side sign-in state to revoke.
        logger.debug("Identity provider sign-out")


_identity_provider: FirebaseIdentityProvider | None = None


def get_identity_provider() -> IdentityProvider:
    """Return the process-wide identity provider client."""
    global _identity_provider
    if _identity_provider is None:
        _identity_provider = FirebaseIdentityProvider()
    return _identity_provider
