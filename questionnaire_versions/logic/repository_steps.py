"""Step-related data access helpers.

These functions encapsulate reads and writes of ``questionnaire_step`` rows
to keep the lifecycle and gateway modules free of persistence details.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection

from questionnaire_versions.logic.repository_questions import count_questions_by_step
from questionnaire_versions.models.orm import QuestionnaireStepRow
from questionnaire_versions.models.versions import QuestionnaireStep

logger = logging.getLogger(__name__)


def to_step(row: Mapping[str, Any], question_count: int = 0) -> QuestionnaireStep:
    return QuestionnaireStep(
        id=row["step_id"],
        version_id=row["version_id"],
        step_number=int(row["step_number"]),
        title_fr=row["title_fr"],
        title_en=row["title_en"],
        description_fr=row["description_fr"],
        description_en=row["description_en"],
        is_active=bool(row["is_active"]),
        question_count=int(question_count),
    )


def insert_step(conn: Connection, values: Mapping[str, Any]) -> None:
    try:
        conn.execute(insert(QuestionnaireStepRow).values(**dict(values)))
    except Exception:
        logger.error(
            "insert_step failed version_id=%s step_number=%s",
            values.get("version_id"),
            values.get("step_number"),
            exc_info=True,
        )
        raise


def list_steps(conn: Connection, version_id: str) -> List[QuestionnaireStep]:
    rows = conn.execute(
        select(QuestionnaireStepRow)
        .where(QuestionnaireStepRow.version_id == version_id)
        .order_by(QuestionnaireStepRow.step_number)
    ).mappings().all()
    counts = count_questions_by_step(conn, version_id)
    return [to_step(r, counts.get(int(r["step_number"]), 0)) for r in rows]


def get_step(conn: Connection, version_id: str, step_number: int) -> Optional[QuestionnaireStep]:
    row = conn.execute(
        select(QuestionnaireStepRow)
        .where(QuestionnaireStepRow.version_id == version_id)
        .where(QuestionnaireStepRow.step_number == int(step_number))
    ).mappings().first()
    if not row:
        return None
    counts = count_questions_by_step(conn, version_id)
    return to_step(row, counts.get(int(step_number), 0))


def step_exists(conn: Connection, version_id: str, step_number: int) -> bool:
    row = conn.execute(
        select(QuestionnaireStepRow.step_id)
        .where(QuestionnaireStepRow.version_id == version_id)
        .where(QuestionnaireStepRow.step_number == int(step_number))
    ).first()
    return row is not None


def update_step_fields(conn: Connection, step_id: str, fields: Dict[str, Any]) -> None:
    if not fields:
        return
    try:
        conn.execute(
            update(QuestionnaireStepRow)
            .where(QuestionnaireStepRow.step_id == step_id)
            .values(**fields)
        )
    except Exception:
        logger.error("update_step_fields failed step_id=%s", step_id, exc_info=True)
        raise


def delete_steps_for_version(conn: Connection, version_id: str) -> int:
    result = conn.execute(
        delete(QuestionnaireStepRow).where(QuestionnaireStepRow.version_id == version_id)
    )
    return int(result.rowcount or 0)


__all__ = [
    "to_step",
    "insert_step",
    "list_steps",
    "get_step",
    "step_exists",
    "update_step_fields",
    "delete_steps_for_version",
]
