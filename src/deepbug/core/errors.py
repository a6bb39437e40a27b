"""Failure types raised inside the service layer.

Services raise these while walking a guard chain and convert them into
``ActionResult`` failures at their public boundary, so callers only ever see a
single localized message.
"""

from __future__ import annotations


class DeepBugError(Exception):
    """Base class for policy failures carrying a user-facing message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(DeepBugError):
    """Input rejected before any backend call was made."""


class RateLimited(DeepBugError):
    """Identifier is locked out for ``remaining_seconds`` more seconds."""

    def __init__(self, message: str, remaining_seconds: int) -> None:
        super().__init__(message)
        self.remaining_seconds = remaining_seconds


class AuthorizationFailure(DeepBugError):
    """Caller is banned, unauthenticated, or holds a stale/mismatched token."""


class NotFound(DeepBugError):
    """The operation target does not exist."""


class BackendFailure(DeepBugError):
    """The identity provider or the document store rejected a call."""
