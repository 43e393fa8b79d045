from __future__ import annotations

from typing import Any


class CaseflowError(Exception):
    """Base class for errors surfaced to API callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "error": self.kind}
        payload.update(self.details)
        return payload


class NotFoundError(CaseflowError):
    """Raised when a case, template or document version does not exist."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(CaseflowError):
    """Raised when the actor has no relation to the case."""

    kind = "forbidden"
    status_code = 403


class ValidationError(CaseflowError):
    """Raised when domain validation fails."""

    kind = "validation_error"
    status_code = 400


class ConflictError(CaseflowError):
    """Raised for disallowed transitions and concurrent-write collisions."""

    kind = "conflict"
    status_code = 409


class DependencyError(CaseflowError):
    """Raised when storage or an external collaborator fails."""

    kind = "dependency_error"
    status_code = 502


def require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    return text
