"""HTTP client for the questionnaire version API.

Wraps an ``httpx.Client`` (a real connection pool or FastAPI's ``TestClient``)
and returns the same pydantic models the service produces. Problem+json
responses are mapped back to the typed errors of
``questionnaire_versions.logic.errors`` so callers handle one taxonomy on both
sides of the wire; any other non-2xx response raises ``httpx.HTTPStatusError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

import httpx
from pydantic import BaseModel

from questionnaire_versions.http.error_mapping import KIND_TO_ERROR
from questionnaire_versions.logic.errors import NotFoundError, ValidationError, VersioningError
from questionnaire_versions.models.versions import (
    CreateDraftRequest,
    CreateQuestionRequest,
    QuestionnaireStep,
    QuestionnaireVersion,
    QuestionnaireVersionDetail,
    QuestionTemplate,
    ReorderItem,
    ReorderRequest,
    UpdateQuestionRequest,
    UpdateStepRequest,
    VersionComparison,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_PATH = "/api/v1/admin/questionnaire-versions"

M = TypeVar("M", bound=BaseModel)


def _coerce(model: Type[M], payload: Union[M, Mapping[str, Any]]) -> M:
    if isinstance(payload, model):
        return payload
    return model.model_validate(dict(payload))


def _body(payload: BaseModel) -> Dict[str, Any]:
    return payload.model_dump(by_alias=True, exclude_unset=True, mode="json")


def error_from_response(response: httpx.Response) -> Optional[VersioningError]:
    """Rebuild a typed error from a problem+json body, or ``None`` if not one."""
    if "json" not in response.headers.get("content-type", ""):
        return None
    try:
        problem = response.json()
    except ValueError:
        return None
    if not isinstance(problem, dict):
        return None
    cls = KIND_TO_ERROR.get(str(problem.get("kind") or ""))
    if cls is None:
        return None
    detail = str(problem.get("detail") or problem.get("title") or "")
    code = problem.get("code")
    operation = problem.get("operation")
    if issubclass(cls, ValidationError):
        return cls(detail, errors=problem.get("errors") or [], code=code, operation=operation)
    return cls(detail, code=code, operation=operation)


class VersionApiClient:
    def __init__(
        self,
        http: httpx.Client,
        *,
        base_path: str = DEFAULT_BASE_PATH,
        actor: Optional[str] = None,
    ) -> None:
        self._http = http
        self._base = base_path.rstrip("/")
        self.actor = actor

    def _request(
        self,
        method: str,
        path: str = "",
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self.actor:
            headers["X-Actor-Id"] = self.actor
        url = self._base + path
        response = self._http.request(
            method,
            url,
            json=json,
            params={k: v for k, v in (params or {}).items() if v is not None},
            headers=headers,
        )
        if response.status_code >= 400:
            error = error_from_response(response)
            logger.info(
                "api_client.error method=%s url=%s status=%s code=%s",
                method,
                url,
                response.status_code,
                getattr(error, "code", None),
            )
            if error is not None:
                raise error
            response.raise_for_status()
        return response

    # ----------------------------------------------------------------- reads

    def get_version_history(self) -> List[QuestionnaireVersion]:
        return [QuestionnaireVersion.model_validate(v) for v in self._request("GET").json()]

    def get_active_draft(self, locale: Optional[str] = None) -> Optional[QuestionnaireVersionDetail]:
        response = self._request("GET", "/active", params={"locale": locale})
        if response.status_code == 204:
            return None
        return QuestionnaireVersionDetail.model_validate(response.json())

    def get_published_version(self, locale: Optional[str] = None) -> QuestionnaireVersionDetail:
        response = self._request("GET", "/published", params={"locale": locale})
        return QuestionnaireVersionDetail.model_validate(response.json())

    def get_active(self, locale: Optional[str] = None) -> Optional[QuestionnaireVersionDetail]:
        """Draft if one exists, else the Published version, else ``None``."""
        draft = self.get_active_draft(locale)
        if draft is not None:
            return draft
        try:
            return self.get_published_version(locale)
        except NotFoundError:
            return None

    def get_version_by_id(self, version_id: str, locale: Optional[str] = None) -> QuestionnaireVersionDetail:
        response = self._request("GET", f"/{version_id}", params={"locale": locale})
        return QuestionnaireVersionDetail.model_validate(response.json())

    def compare_versions(self, version_id: str, other_version_id: str) -> VersionComparison:
        response = self._request("GET", f"/{version_id}/compare/{other_version_id}")
        return VersionComparison.model_validate(response.json())

    # ----------------------------------------------------------- transitions

    def create_draft(self, notes: Optional[str] = None) -> QuestionnaireVersionDetail:
        response = self._request("POST", json=_body(CreateDraftRequest(notes=notes)))
        return QuestionnaireVersionDetail.model_validate(response.json())

    def publish_draft(self, version_id: str) -> QuestionnaireVersion:
        return QuestionnaireVersion.model_validate(self._request("POST", f"/{version_id}/publish").json())

    def discard_draft(self, version_id: str) -> None:
        self._request("DELETE", f"/{version_id}")

    def restore_version(self, version_id: str) -> QuestionnaireVersionDetail:
        response = self._request("POST", f"/{version_id}/restore")
        return QuestionnaireVersionDetail.model_validate(response.json())

    # ----------------------------------------------------------- draft edits

    def create_question(
        self,
        version_id: str,
        payload: Union[CreateQuestionRequest, Mapping[str, Any]],
    ) -> QuestionTemplate:
        body = _body(_coerce(CreateQuestionRequest, payload))
        response = self._request("POST", f"/{version_id}/questions", json=body)
        return QuestionTemplate.model_validate(response.json())

    def update_question(
        self,
        version_id: str,
        question_id: str,
        payload: Union[UpdateQuestionRequest, Mapping[str, Any]],
    ) -> QuestionTemplate:
        body = _body(_coerce(UpdateQuestionRequest, payload))
        response = self._request("PUT", f"/{version_id}/questions/{question_id}", json=body)
        return QuestionTemplate.model_validate(response.json())

    def delete_question(self, version_id: str, question_id: str) -> None:
        self._request("DELETE", f"/{version_id}/questions/{question_id}")

    def reorder_questions(
        self,
        version_id: str,
        items: Sequence[Union[ReorderItem, Mapping[str, Any]]],
    ) -> List[QuestionTemplate]:
        request = ReorderRequest(items=[_coerce(ReorderItem, i) for i in items])
        response = self._request("PUT", f"/{version_id}/questions/reorder", json=_body(request))
        return [QuestionTemplate.model_validate(q) for q in response.json()]

    def update_step(
        self,
        version_id: str,
        step_number: int,
        payload: Union[UpdateStepRequest, Mapping[str, Any]],
    ) -> QuestionnaireStep:
        body = _body(_coerce(UpdateStepRequest, payload))
        response = self._request("PUT", f"/{version_id}/steps/{step_number}", json=body)
        return QuestionnaireStep.model_validate(response.json())


__all__ = ["VersionApiClient", "DEFAULT_BASE_PATH", "error_from_response"]
