"""Version lifecycle transitions for one questionnaire lineage.

Owns the Draft/Published/Archived state machine: which version is active,
and how a Draft is created, published, discarded or restored. Every
transition runs in a single transaction; the store's partial unique indexes
serialise concurrent transitions and any violation surfaces as
``ConflictError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from questionnaire_versions.config import DEFAULT_STEPS, StepDefinition
from questionnaire_versions.db.base import get_engine, transaction
from questionnaire_versions.logic import events
from questionnaire_versions.logic.errors import ConflictError, InvalidStateError, NotFoundError
from questionnaire_versions.logic.repository_versions import (
    delete_version_tree,
    find_version_by_status,
    get_version_row,
    insert_version,
    list_versions,
    load_version_detail,
    mark_archived,
    mark_published,
    next_version_number,
    to_version,
)
from questionnaire_versions.logic.repository_questions import count_questions_by_version
from questionnaire_versions.logic.version_clone import clone_version_content, seed_default_steps
from questionnaire_versions.models.version_status import VersionStatus
from questionnaire_versions.models.versions import QuestionnaireVersion, QuestionnaireVersionDetail

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersionLifecycleManager:
    """State machine over the versions of a single lineage."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        lineage: str = "default",
        default_actor: str = "system",
        default_steps: Sequence[StepDefinition] = DEFAULT_STEPS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine or get_engine()
        self.lineage = lineage
        self.default_actor = default_actor
        self.default_steps = list(default_steps)
        self._clock = clock

    # ------------------------------------------------------------------ reads

    def get_active(self) -> Optional[QuestionnaireVersionDetail]:
        """Return the Draft if one exists, else the Published version, else None."""
        with self._engine.connect() as conn:
            row = find_version_by_status(conn, self.lineage, VersionStatus.DRAFT)
            if row is None:
                row = find_version_by_status(conn, self.lineage, VersionStatus.PUBLISHED)
            if row is None:
                return None
            return load_version_detail(conn, str(row["version_id"]))

    def get_active_draft(self) -> Optional[QuestionnaireVersionDetail]:
        with self._engine.connect() as conn:
            row = find_version_by_status(conn, self.lineage, VersionStatus.DRAFT)
            return load_version_detail(conn, str(row["version_id"])) if row else None

    def get_published_version(self) -> QuestionnaireVersionDetail:
        with self._engine.connect() as conn:
            row = find_version_by_status(conn, self.lineage, VersionStatus.PUBLISHED)
            if row is None:
                raise NotFoundError(
                    f"no published version exists for lineage {self.lineage}",
                    code="NO_PUBLISHED_VERSION",
                    operation="getPublishedVersion",
                )
            return load_version_detail(conn, str(row["version_id"]))

    def get_version_by_id(self, version_id: str) -> QuestionnaireVersionDetail:
        with self._engine.connect() as conn:
            detail = load_version_detail(conn, version_id)
        if detail is None or detail.lineage != self.lineage:
            raise NotFoundError(f"version {version_id} not found", operation="getVersionById")
        return detail

    def get_version_history(self) -> List[QuestionnaireVersion]:
        with self._engine.connect() as conn:
            return list_versions(conn, self.lineage)

    # ------------------------------------------------------------ transitions

    def create_draft(self, notes: Optional[str] = None, *, actor: Optional[str] = None) -> QuestionnaireVersionDetail:
        """Clone the Published version into a new Draft.

        With nothing published yet the Draft is seeded with the default steps.
        """
        actor = actor or self.default_actor
        draft_id = str(uuid.uuid4())
        now = self._clock()
        try:
            with transaction(self._engine) as conn:
                self._ensure_no_draft(conn, "createDraft")
                published = find_version_by_status(conn, self.lineage, VersionStatus.PUBLISHED)
                insert_version(
                    conn,
                    version_id=draft_id,
                    lineage=self.lineage,
                    created_by=actor,
                    created_at=now,
                    notes=notes,
                )
                if published is not None:
                    clone_version_content(
                        conn,
                        source_version_id=str(published["version_id"]),
                        target_version_id=draft_id,
                        now=now,
                    )
                else:
                    seed_default_steps(conn, version_id=draft_id, steps=self.default_steps)
                detail = load_version_detail(conn, draft_id)
        except IntegrityError as exc:
            raise self._draft_conflict("createDraft") from exc
        logger.info(
            "lifecycle.create_draft lineage=%s draft_id=%s source=%s actor=%s",
            self.lineage,
            draft_id,
            published["version_id"] if published is not None else None,
            actor,
        )
        events.publish(events.DRAFT_CREATED, {"version_id": draft_id, "lineage": self.lineage, "actor": actor})
        return detail

    def publish_draft(self, draft_id: str, *, actor: Optional[str] = None) -> QuestionnaireVersion:
        """Promote a Draft and archive the previously Published version atomically."""
        actor = actor or self.default_actor
        now = self._clock()
        archived_id: Optional[str] = None
        try:
            with transaction(self._engine) as conn:
                self._require_status(conn, draft_id, VersionStatus.DRAFT, "publishDraft")
                previous = find_version_by_status(conn, self.lineage, VersionStatus.PUBLISHED)
                if previous is not None:
                    archived_id = str(previous["version_id"])
                    mark_archived(conn, archived_id)
                number = next_version_number(conn, self.lineage)
                mark_published(
                    conn,
                    draft_id,
                    version_number=number,
                    published_at=now,
                    published_by=actor,
                )
                summary = to_version(
                    get_version_row(conn, draft_id),
                    count_questions_by_version(conn, [draft_id]).get(draft_id, 0),
                )
        except IntegrityError as exc:
            raise ConflictError(
                f"another version of lineage {self.lineage} was published concurrently",
                code="PUBLISHED_SLOT_TAKEN",
                operation="publishDraft",
            ) from exc
        logger.info(
            "lifecycle.publish_draft lineage=%s version_id=%s version_number=%s archived=%s actor=%s",
            self.lineage,
            draft_id,
            number,
            archived_id,
            actor,
        )
        if archived_id:
            events.publish(events.VERSION_ARCHIVED, {"version_id": archived_id, "lineage": self.lineage})
        events.publish(
            events.VERSION_PUBLISHED,
            {"version_id": draft_id, "version_number": number, "lineage": self.lineage, "actor": actor},
        )
        return summary

    def discard_draft(self, draft_id: str) -> None:
        """Delete a Draft and everything it owns."""
        with transaction(self._engine) as conn:
            self._require_status(conn, draft_id, VersionStatus.DRAFT, "discardDraft")
            delete_version_tree(conn, draft_id)
        logger.info("lifecycle.discard_draft lineage=%s version_id=%s", self.lineage, draft_id)
        events.publish(events.DRAFT_DISCARDED, {"version_id": draft_id, "lineage": self.lineage})

    def restore_version(
        self,
        version_id: str,
        *,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> QuestionnaireVersionDetail:
        """Clone any existing version into a new Draft; the source is untouched."""
        actor = actor or self.default_actor
        draft_id = str(uuid.uuid4())
        now = self._clock()
        try:
            with transaction(self._engine) as conn:
                source = get_version_row(conn, version_id)
                if source is None or source["lineage"] != self.lineage:
                    raise NotFoundError(f"version {version_id} not found", operation="restoreVersion")
                self._ensure_no_draft(conn, "restoreVersion")
                if notes is None:
                    label = source["version_number"] if source["version_number"] is not None else version_id
                    notes = f"Restored from version {label}"
                insert_version(
                    conn,
                    version_id=draft_id,
                    lineage=self.lineage,
                    created_by=actor,
                    created_at=now,
                    notes=notes,
                    restored_from_version_id=version_id,
                )
                clone_version_content(
                    conn,
                    source_version_id=version_id,
                    target_version_id=draft_id,
                    now=now,
                )
                detail = load_version_detail(conn, draft_id)
        except IntegrityError as exc:
            raise self._draft_conflict("restoreVersion") from exc
        logger.info(
            "lifecycle.restore_version lineage=%s source=%s draft_id=%s actor=%s",
            self.lineage,
            version_id,
            draft_id,
            actor,
        )
        events.publish(
            events.VERSION_RESTORED,
            {"version_id": draft_id, "source_version_id": version_id, "lineage": self.lineage, "actor": actor},
        )
        return detail

    # ---------------------------------------------------------------- helpers

    def _draft_conflict(self, operation: str) -> ConflictError:
        return ConflictError(
            f"a draft already exists for lineage {self.lineage}",
            operation=operation,
        )

    def _ensure_no_draft(self, conn: Connection, operation: str) -> None:
        if find_version_by_status(conn, self.lineage, VersionStatus.DRAFT) is not None:
            raise self._draft_conflict(operation)

    def _require_status(self, conn: Connection, version_id: str, status: str, operation: str):
        row = get_version_row(conn, version_id, for_update=True)
        if row is None or row["lineage"] != self.lineage:
            raise NotFoundError(f"version {version_id} not found", operation=operation)
        if row["status"] != status:
            raise InvalidStateError(
                f"{operation} requires a {status} version; version {version_id} is {row['status']}",
                operation=operation,
            )
        return row


__all__ = ["VersionLifecycleManager"]
