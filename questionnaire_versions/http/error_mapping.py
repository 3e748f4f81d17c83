"""Central mapping of versioning errors to HTTP statuses.

Single source of truth used by the problem+json handler and by the HTTP
client when translating problem responses back into typed errors.
"""

from __future__ import annotations

from typing import Dict, Type

from questionnaire_versions.logic.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    VersioningError,
)

ERROR_STATUS: Dict[Type[VersioningError], int] = {
    InvalidStateError: 409,
    ConflictError: 409,
    NotFoundError: 404,
    ValidationError: 422,
}

ERROR_TITLE: Dict[Type[VersioningError], str] = {
    InvalidStateError: "Invalid State",
    ConflictError: "Conflict",
    NotFoundError: "Not Found",
    ValidationError: "Unprocessable Entity",
}

# Problem ``kind`` member -> error class, for clients rebuilding typed errors
KIND_TO_ERROR: Dict[str, Type[VersioningError]] = {
    "InvalidState": InvalidStateError,
    "Conflict": ConflictError,
    "NotFound": NotFoundError,
    "Validation": ValidationError,
}
ERROR_TO_KIND: Dict[Type[VersioningError], str] = {v: k for k, v in KIND_TO_ERROR.items()}


def status_for(exc: VersioningError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


def title_for(exc: VersioningError) -> str:
    for cls in type(exc).__mro__:
        if cls in ERROR_TITLE:
            return ERROR_TITLE[cls]
    return "Bad Request"


def kind_for(exc: VersioningError) -> str:
    for cls in type(exc).__mro__:
        if cls in ERROR_TO_KIND:
            return ERROR_TO_KIND[cls]
    return "Versioning"


__all__ = [
    "ERROR_STATUS",
    "ERROR_TITLE",
    "KIND_TO_ERROR",
    "status_for",
    "title_for",
    "kind_for",
]
