"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """Outcome of a user-triggered operation.

    ``message`` is localized and meant to be shown to the user as-is.
    """

    success: bool
    message: str = Field(..., description="Localized, display-ready message.")

    @classmethod
    def ok(cls, message: str, **extra: object) -> ActionResult:
        return cls(success=True, message=message, **extra)

    @classmethod
    def fail(cls, message: str, **extra: object) -> ActionResult:
        return cls(success=False, message=message, **extra)


class CreatedResult(ActionResult):
    """Result of a create operation carrying the new document id."""

    id: int | None = None
