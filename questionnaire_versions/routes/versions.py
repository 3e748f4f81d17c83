"""Questionnaire version endpoints: lifecycle transitions and draft edits.

Route handlers stay thin: they resolve the lifecycle manager and mutation
gateway from application state, delegate, and let the problem+json handlers
render any ``VersioningError``.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request, Response

from questionnaire_versions.logic.display_locale import localize_version
from questionnaire_versions.logic.lifecycle import VersionLifecycleManager
from questionnaire_versions.logic.mutation_gateway import ScopedMutationGateway
from questionnaire_versions.logic.version_diff import compare_versions
from questionnaire_versions.models.versions import (
    CreateDraftRequest,
    CreateQuestionRequest,
    QuestionnaireStep,
    QuestionnaireVersion,
    QuestionnaireVersionDetail,
    QuestionTemplate,
    ReorderRequest,
    UpdateQuestionRequest,
    UpdateStepRequest,
    VersionComparison,
)

router = APIRouter(prefix="/admin/questionnaire-versions")
logger = logging.getLogger(__name__)

DisplayLocale = Optional[Literal["fr", "en"]]


def get_lifecycle(request: Request) -> VersionLifecycleManager:
    cfg = request.app.state.config
    return VersionLifecycleManager(
        request.app.state.engine,
        lineage=cfg.lineage.key,
        default_actor=cfg.lineage.default_actor,
        default_steps=cfg.lineage.default_steps,
    )


def get_gateway(request: Request) -> ScopedMutationGateway:
    return ScopedMutationGateway(request.app.state.engine)


def get_actor(x_actor_id: Optional[str] = Header(default=None, alias="X-Actor-Id")) -> Optional[str]:
    return x_actor_id.strip() if x_actor_id and x_actor_id.strip() else None


# ---------------------------------------------------------------- versions


@router.get("", response_model=List[QuestionnaireVersion], operation_id="getVersionHistory")
def get_version_history(lifecycle: VersionLifecycleManager = Depends(get_lifecycle)):
    return lifecycle.get_version_history()


@router.get("/active", response_model=QuestionnaireVersionDetail, operation_id="getActiveDraft")
def get_active_draft(
    locale: DisplayLocale = Query(default=None),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    draft = lifecycle.get_active_draft()
    if draft is None:
        return Response(status_code=204)
    return localize_version(draft, locale)


@router.get("/published", response_model=QuestionnaireVersionDetail, operation_id="getPublishedVersion")
def get_published_version(
    locale: DisplayLocale = Query(default=None),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    return localize_version(lifecycle.get_published_version(), locale)


@router.post("", response_model=QuestionnaireVersionDetail, status_code=201, operation_id="createDraft")
def create_draft(
    payload: Optional[CreateDraftRequest] = Body(default=None),
    actor: Optional[str] = Depends(get_actor),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    notes = payload.notes if payload is not None else None
    return lifecycle.create_draft(notes, actor=actor)


@router.get("/{version_id}", response_model=QuestionnaireVersionDetail, operation_id="getVersionById")
def get_version_by_id(
    version_id: str,
    locale: DisplayLocale = Query(default=None),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    return localize_version(lifecycle.get_version_by_id(version_id), locale)


@router.get(
    "/{version_id}/compare/{other_version_id}",
    response_model=VersionComparison,
    operation_id="compareVersions",
)
def compare(
    version_id: str,
    other_version_id: str,
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    base = lifecycle.get_version_by_id(version_id)
    target = lifecycle.get_version_by_id(other_version_id)
    return compare_versions(base, target)


@router.post("/{version_id}/publish", response_model=QuestionnaireVersion, operation_id="publishDraft")
def publish_draft(
    version_id: str,
    actor: Optional[str] = Depends(get_actor),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    return lifecycle.publish_draft(version_id, actor=actor)


@router.delete("/{version_id}", status_code=204, operation_id="discardDraft")
def discard_draft(version_id: str, lifecycle: VersionLifecycleManager = Depends(get_lifecycle)):
    lifecycle.discard_draft(version_id)
    return Response(status_code=204)


@router.post(
    "/{version_id}/restore",
    response_model=QuestionnaireVersionDetail,
    status_code=201,
    operation_id="restoreVersion",
)
def restore_version(
    version_id: str,
    actor: Optional[str] = Depends(get_actor),
    lifecycle: VersionLifecycleManager = Depends(get_lifecycle),
):
    return lifecycle.restore_version(version_id, actor=actor)


# ------------------------------------------------------------ draft edits


@router.post(
    "/{version_id}/questions",
    response_model=QuestionTemplate,
    status_code=201,
    operation_id="createQuestion",
)
def create_question(
    version_id: str,
    payload: CreateQuestionRequest,
    gateway: ScopedMutationGateway = Depends(get_gateway),
):
    return gateway.create_question(version_id, payload)


# Declared before the {question_id} route so "reorder" is not captured as an id
@router.put(
    "/{version_id}/questions/reorder",
    response_model=List[QuestionTemplate],
    operation_id="reorderQuestions",
)
def reorder_questions(
    version_id: str,
    payload: ReorderRequest,
    gateway: ScopedMutationGateway = Depends(get_gateway),
):
    return gateway.reorder_questions(version_id, payload.items)


@router.put(
    "/{version_id}/questions/{question_id}",
    response_model=QuestionTemplate,
    operation_id="updateQuestion",
)
def update_question(
    version_id: str,
    question_id: str,
    payload: UpdateQuestionRequest,
    gateway: ScopedMutationGateway = Depends(get_gateway),
):
    return gateway.update_question(version_id, question_id, payload)


@router.delete("/{version_id}/questions/{question_id}", status_code=204, operation_id="deleteQuestion")
def delete_question(
    version_id: str,
    question_id: str,
    gateway: ScopedMutationGateway = Depends(get_gateway),
):
    gateway.delete_question(version_id, question_id)
    return Response(status_code=204)


@router.put(
    "/{version_id}/steps/{step_number}",
    response_model=QuestionnaireStep,
    operation_id="updateStep",
)
def update_step(
    version_id: str,
    step_number: int,
    payload: UpdateStepRequest,
    gateway: ScopedMutationGateway = Depends(get_gateway),
):
    return gateway.update_step(version_id, step_number, payload)


__all__ = ["router", "get_lifecycle", "get_gateway", "get_actor"]
