"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses for versioning errors, HTTP errors,
request validation failures and unexpected exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from questionnaire_versions.http.error_mapping import kind_for, status_for, title_for
from questionnaire_versions.logic.errors import VersioningError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_for(exc: VersioningError) -> Dict[str, Any]:
    status = status_for(exc)
    problem: Dict[str, Any] = {
        "type": "about:blank",
        "title": title_for(exc),
        "status": status,
        "kind": kind_for(exc),
    }
    problem.update(exc.to_dict())
    return problem


async def handle_versioning_error(request: Request, exc: VersioningError) -> JSONResponse:  # noqa: D401
    problem = problem_for(exc)
    logger.info(
        "error_handler.handle path=%s code=%s status=%s operation=%s",
        request.url.path,
        problem.get("code"),
        problem.get("status"),
        problem.get("operation"),
    )
    return JSONResponse(problem, status_code=int(problem["status"]), media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = dict(exc.detail)
    else:
        detail = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        detail,
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        errors.append({"path": "$." + ".".join(loc) if loc else "$", "code": str(err.get("type", "invalid"))})
    problem = {
        "type": "about:blank",
        "title": "Invalid Request",
        "status": 422,
        "kind": "Validation",
        "code": "REQUEST_VALIDATION_FAILED",
        "detail": "Request validation failed",
        "errors": errors,
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        {"type": "about:blank", "title": "Internal Server Error", "status": 500},
        status_code=500,
        media_type=PROBLEM_MEDIA_TYPE,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_for",
    "handle_versioning_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
