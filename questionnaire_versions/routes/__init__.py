"""APIRouter registration for the Questionnaire Version Service."""

from __future__ import annotations

from fastapi import APIRouter

from questionnaire_versions.routes.versions import router as versions_router

api_router = APIRouter()
api_router.include_router(versions_router, tags=["QuestionnaireVersions"])

__all__ = ["api_router"]
