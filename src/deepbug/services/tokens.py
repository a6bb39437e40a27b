"""Capability tokens binding a subject to a resource for a bounded time.

The token payload is the plain string ``subject:resource:issued_at_ms`` carried
in an HS256 compact JWS, so anyone can read it but only the holder of
``SECRET_KEY`` can mint one. Tokens are stateless; they age out after the
session timeout.
"""
from __future__ import annotations

import logging
import time

from jose import jws
from jose.exceptions import JOSEError

from deepbug.core.settings import settings
from deepbug.db.time import Clock

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
RESOURCE_SEPARATOR = ":"


class AccessTokenService:
    """Mint and check access tokens for (subject, resource) pairs."""

    def __init__(
        self,
        secret_key: str | None = None,
        *,
        ttl_seconds: int | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._secret_key = secret_key or settings.secret_key
        self._ttl_ms = (ttl_seconds if ttl_seconds is not None else settings.session_timeout_seconds) * 1000
        self._clock = clock

    def generate(self, subject_id: str, resource_id: str) -> str:
        """Mint a token for the pair.

        Raises:
            ValueError: if ``resource_id`` contains ``:``, the payload separator.
        """
        if RESOURCE_SEPARATOR in resource_id:
            raise ValueError(f"Resource id must not contain {RESOURCE_SEPARATOR!r}: {resource_id}")
        issued_at_ms = int(self._clock() * 1000)
        payload = f"{subject_id}:{resource_id}:{issued_at_ms}".encode("utf-8")
        return jws.sign(payload, self._secret_key, algorithm=TOKEN_ALGORITHM)

    def validate(self, token: str, subject_id: str, resource_id: str) -> bool:
        """Return True iff ``token`` was minted for this pair and has not aged out."""
        try:
            payload = jws.verify(token, self._secret_key, algorithms=[TOKEN_ALGORITHM])
            # Resource ids and timestamps never contain ':'; subject ids might.
            token_subject, token_resource, issued = payload.decode("utf-8").rsplit(":", 2)
            issued_at_ms = int(issued)
        except (JOSEError, UnicodeDecodeError, ValueError):
            logger.debug("Rejecting malformed access token")
            return False

        if token_subject != subject_id or token_resource != resource_id:
            return False

        age_ms = int(self._clock() * 1000) - issued_at_ms
        return age_ms < self._ttl_ms


def generate_access_token(subject_id: str, resource_id: str) -> str:
    return AccessTokenService().generate(subject_id, resource_id)


def validate_access_token(token: str, subject_id: str, resource_id: str) -> bool:
    return AccessTokenService().validate(token, subject_id, resource_id)
