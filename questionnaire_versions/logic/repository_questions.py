"""Question template repository helpers.

Encapsulates reads and writes of ``question_template`` rows. Every function
takes an open connection so callers decide the transaction boundary.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection

from questionnaire_versions.models.orm import QuestionTemplateRow
from questionnaire_versions.models.question_type import QuestionType
from questionnaire_versions.models.versions import QuestionTemplate

logger = logging.getLogger(__name__)

# Model field name -> column name where the two differ
_FIELD_TO_COLUMN = {"order": "question_order"}


def to_question(row: Mapping[str, Any]) -> QuestionTemplate:
    return QuestionTemplate(
        id=row["question_id"],
        version_id=row["version_id"],
        origin_id=row["origin_id"],
        step_number=int(row["step_number"]),
        persona_type=row["persona_type"],
        question_text=row["question_text"],
        question_text_en=row["question_text_en"],
        help_text=row["help_text"],
        help_text_en=row["help_text_en"],
        question_type=row["question_type"],
        order=int(row["question_order"]),
        is_required=bool(row["is_required"]),
        section=row["section"],
        options=row["options"],
        options_en=row["options_en"],
        validation_rules=row["validation_rules"],
        conditional_logic=row["conditional_logic"],
        is_active=bool(row["is_active"]),
        created=row["created_at"],
        last_modified=row["last_modified"],
    )


def to_columns(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Translate ``QuestionTemplate`` field names into column names."""
    out: Dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, QuestionType):
            value = value.value
        out[_FIELD_TO_COLUMN.get(name, name)] = value
    return out


def insert_question(conn: Connection, values: Mapping[str, Any]) -> None:
    try:
        conn.execute(insert(QuestionTemplateRow).values(**dict(values)))
    except Exception:
        logger.error(
            "insert_question failed qid=%s version_id=%s",
            values.get("question_id"),
            values.get("version_id"),
            exc_info=True,
        )
        raise


def list_questions(conn: Connection, version_id: str) -> List[QuestionTemplate]:
    rows = conn.execute(
        select(QuestionTemplateRow)
        .where(QuestionTemplateRow.version_id == version_id)
        .order_by(QuestionTemplateRow.step_number, QuestionTemplateRow.question_order)
    ).mappings().all()
    return [to_question(r) for r in rows]


def list_step_question_ids(conn: Connection, version_id: str, step_number: int) -> List[str]:
    """Return the question ids of one step in their current order."""
    rows = conn.execute(
        select(QuestionTemplateRow.question_id)
        .where(QuestionTemplateRow.version_id == version_id)
        .where(QuestionTemplateRow.step_number == int(step_number))
        .order_by(QuestionTemplateRow.question_order, QuestionTemplateRow.question_id)
    ).fetchall()
    return [str(r[0]) for r in rows]


def list_step_questions(conn: Connection, version_id: str, step_number: int) -> List[QuestionTemplate]:
    rows = conn.execute(
        select(QuestionTemplateRow)
        .where(QuestionTemplateRow.version_id == version_id)
        .where(QuestionTemplateRow.step_number == int(step_number))
        .order_by(QuestionTemplateRow.question_order)
    ).mappings().all()
    return [to_question(r) for r in rows]


def get_question(conn: Connection, version_id: str, question_id: str) -> Optional[QuestionTemplate]:
    row = conn.execute(
        select(QuestionTemplateRow)
        .where(QuestionTemplateRow.version_id == version_id)
        .where(QuestionTemplateRow.question_id == question_id)
    ).mappings().first()
    return to_question(row) if row else None


def update_question_fields(conn: Connection, question_id: str, fields: Mapping[str, Any]) -> None:
    if not fields:
        return
    try:
        conn.execute(
            update(QuestionTemplateRow)
            .where(QuestionTemplateRow.question_id == question_id)
            .values(**to_columns(fields))
        )
    except Exception:
        logger.error("update_question_fields failed qid=%s", question_id, exc_info=True)
        raise


def delete_question_row(conn: Connection, question_id: str) -> None:
    conn.execute(delete(QuestionTemplateRow).where(QuestionTemplateRow.question_id == question_id))


def delete_questions_for_version(conn: Connection, version_id: str) -> int:
    result = conn.execute(
        delete(QuestionTemplateRow).where(QuestionTemplateRow.version_id == version_id)
    )
    return int(result.rowcount or 0)


def count_questions_by_version(conn: Connection, version_ids: List[str]) -> Dict[str, int]:
    if not version_ids:
        return {}
    rows = conn.execute(
        select(QuestionTemplateRow.version_id, func.count())
        .where(QuestionTemplateRow.version_id.in_(version_ids))
        .group_by(QuestionTemplateRow.version_id)
    ).fetchall()
    return {str(r[0]): int(r[1]) for r in rows}


def count_questions_by_step(conn: Connection, version_id: str) -> Dict[int, int]:
    rows = conn.execute(
        select(QuestionTemplateRow.step_number, func.count())
        .where(QuestionTemplateRow.version_id == version_id)
        .group_by(QuestionTemplateRow.step_number)
    ).fetchall()
    return {int(r[0]): int(r[1]) for r in rows}


__all__ = [
    "to_question",
    "to_columns",
    "insert_question",
    "list_questions",
    "list_step_question_ids",
    "list_step_questions",
    "get_question",
    "update_question_fields",
    "delete_question_row",
    "delete_questions_for_version",
    "count_questions_by_version",
    "count_questions_by_step",
]
