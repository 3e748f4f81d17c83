"""Version store helpers for ``questionnaire_version`` rows.

Reads return pydantic models; writes take an open connection. The partial
unique indexes declared on the table are the store-side guard for the
single-Draft and single-Published rules, so inserts and status flips may
raise ``sqlalchemy.exc.IntegrityError`` which the lifecycle manager maps to
``ConflictError``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.engine import Connection

from questionnaire_versions.logic.repository_questions import (
    count_questions_by_version,
    delete_questions_for_version,
    list_questions,
)
from questionnaire_versions.logic.repository_steps import delete_steps_for_version, list_steps
from questionnaire_versions.models.orm import QuestionnaireVersionRow
from questionnaire_versions.models.version_status import VersionStatus
from questionnaire_versions.models.versions import QuestionnaireVersion, QuestionnaireVersionDetail

logger = logging.getLogger(__name__)


def to_version(row: Mapping[str, Any], question_count: int = 0) -> QuestionnaireVersion:
    return QuestionnaireVersion(
        id=row["version_id"],
        lineage=row["lineage"],
        version_number=row["version_number"],
        status=row["status"],
        notes=row["notes"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        published_at=row["published_at"],
        published_by=row["published_by"],
        restored_from_version_id=row["restored_from_version_id"],
        question_count=int(question_count),
    )


def get_version_row(conn: Connection, version_id: str, *, for_update: bool = False) -> Optional[Mapping[str, Any]]:
    """Return the raw version row; ``for_update`` locks it where the dialect supports it."""
    stmt = select(QuestionnaireVersionRow).where(QuestionnaireVersionRow.version_id == version_id)
    if for_update:
        stmt = stmt.with_for_update()
    return conn.execute(stmt).mappings().first()


def find_version_by_status(conn: Connection, lineage: str, status: str) -> Optional[Mapping[str, Any]]:
    return conn.execute(
        select(QuestionnaireVersionRow)
        .where(QuestionnaireVersionRow.lineage == lineage)
        .where(QuestionnaireVersionRow.status == status)
    ).mappings().first()


def next_version_number(conn: Connection, lineage: str) -> int:
    row = conn.execute(
        select(func.coalesce(func.max(QuestionnaireVersionRow.version_number), 0)).where(
            QuestionnaireVersionRow.lineage == lineage
        )
    ).fetchone()
    base = int(row[0]) if row and row[0] is not None else 0
    return base + 1


def insert_version(
    conn: Connection,
    *,
    version_id: str,
    lineage: str,
    created_by: str,
    created_at: datetime,
    notes: Optional[str] = None,
    restored_from_version_id: Optional[str] = None,
) -> None:
    """Insert a new Draft row; the single-Draft index rejects a second one."""
    conn.execute(
        insert(QuestionnaireVersionRow).values(
            version_id=version_id,
            lineage=lineage,
            version_number=None,
            status=VersionStatus.DRAFT,
            notes=notes,
            created_by=created_by,
            created_at=created_at,
            restored_from_version_id=restored_from_version_id,
        )
    )


def mark_archived(conn: Connection, version_id: str) -> None:
    conn.execute(
        update(QuestionnaireVersionRow)
        .where(QuestionnaireVersionRow.version_id == version_id)
        .values(status=VersionStatus.ARCHIVED)
    )


def mark_published(
    conn: Connection,
    version_id: str,
    *,
    version_number: int,
    published_at: datetime,
    published_by: str,
) -> None:
    conn.execute(
        update(QuestionnaireVersionRow)
        .where(QuestionnaireVersionRow.version_id == version_id)
        .values(
            status=VersionStatus.PUBLISHED,
            version_number=int(version_number),
            published_at=published_at,
            published_by=published_by,
        )
    )


def delete_version_tree(conn: Connection, version_id: str) -> None:
    """Delete a version with its steps and questions."""
    questions = delete_questions_for_version(conn, version_id)
    steps = delete_steps_for_version(conn, version_id)
    conn.execute(
        delete(QuestionnaireVersionRow).where(QuestionnaireVersionRow.version_id == version_id)
    )
    logger.info(
        "delete_version_tree version_id=%s steps=%s questions=%s", version_id, steps, questions
    )


def list_versions(conn: Connection, lineage: str) -> List[QuestionnaireVersion]:
    """Return every version of a lineage: Draft first, then newest published first."""
    draft_first = case((QuestionnaireVersionRow.status == VersionStatus.DRAFT, 0), else_=1)
    rows = conn.execute(
        select(QuestionnaireVersionRow)
        .where(QuestionnaireVersionRow.lineage == lineage)
        .order_by(
            draft_first,
            QuestionnaireVersionRow.version_number.desc(),
            QuestionnaireVersionRow.created_at.desc(),
        )
    ).mappings().all()
    counts = count_questions_by_version(conn, [str(r["version_id"]) for r in rows])
    return [to_version(r, counts.get(str(r["version_id"]), 0)) for r in rows]


def load_version_detail(conn: Connection, version_id: str) -> Optional[QuestionnaireVersionDetail]:
    row = get_version_row(conn, version_id)
    if not row:
        return None
    steps = list_steps(conn, version_id)
    questions = list_questions(conn, version_id)
    summary = to_version(row, len(questions))
    return QuestionnaireVersionDetail(**summary.model_dump(), steps=steps, questions=questions)


__all__ = [
    "to_version",
    "get_version_row",
    "find_version_by_status",
    "next_version_number",
    "insert_version",
    "mark_archived",
    "mark_published",
    "delete_version_tree",
    "list_versions",
    "load_version_detail",
]
