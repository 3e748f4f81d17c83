"""Error taxonomy for version lifecycle and draft-scoped mutations.

All errors are recoverable by the caller and are raised before, or instead
of, any committed write. The HTTP layer maps them to problem+json through
``questionnaire_versions.http.error_mapping``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class VersioningError(Exception):
    code = "VERSIONING_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.operation = operation

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "detail": self.message}
        if self.operation:
            body["operation"] = self.operation
        return body


class InvalidStateError(VersioningError):
    """A structural mutation or transition targeted a version in the wrong status."""

    code = "VERSION_NOT_DRAFT"


class ConflictError(VersioningError):
    """A transition would break the single-Draft or single-Published rule."""

    code = "DRAFT_ALREADY_EXISTS"


class NotFoundError(VersioningError):
    code = "RESOURCE_NOT_FOUND"


class ValidationError(VersioningError, ValueError):
    """Malformed payload; ``errors`` lists ``{"path", "code"}`` entries."""

    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[List[Dict[str, str]]] = None,
        code: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=code, operation=operation)
        self.errors = list(errors or [])

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


__all__ = [
    "VersioningError",
    "InvalidStateError",
    "ConflictError",
    "NotFoundError",
    "ValidationError",
]
