"""FastAPI application package for the Questionnaire Version Service.

The service keeps one questionnaire per lineage under a draft/publish
workflow: edits land in a single Draft, the Published version is never
mutated, and past versions stay as restorable Archived history. Business
logic lives in `questionnaire_versions/logic/`, route handlers in
`questionnaire_versions/routes/`, and the editor-side state mirror in
`questionnaire_versions/client/`.
"""

from __future__ import annotations

from questionnaire_versions.main import create_app

__all__ = ["create_app"]
