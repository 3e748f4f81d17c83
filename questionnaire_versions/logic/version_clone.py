"""Deep copy of a version's steps and questions into a new Draft.

Shared by draft creation and restore so both produce the same shape:
``stepNumber`` preserved, question order re-densified per step, fresh ids,
and ``origin_id`` carried over so a question can be followed across versions.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from itertools import groupby
from typing import Iterable, Tuple

from sqlalchemy.engine import Connection

from questionnaire_versions.logic.repository_questions import insert_question, list_questions
from questionnaire_versions.logic.repository_steps import insert_step, list_steps

logger = logging.getLogger(__name__)


def clone_version_content(
    conn: Connection,
    *,
    source_version_id: str,
    target_version_id: str,
    now: datetime,
) -> Tuple[int, int]:
    """Copy steps and questions from source to target; return (steps, questions)."""
    steps = list_steps(conn, source_version_id)
    for step in steps:
        insert_step(
            conn,
            {
                "step_id": str(uuid.uuid4()),
                "version_id": target_version_id,
                "step_number": step.step_number,
                "title_fr": step.title_fr,
                "title_en": step.title_en,
                "description_fr": step.description_fr,
                "description_en": step.description_en,
                "is_active": step.is_active,
            },
        )

    copied = 0
    questions = list_questions(conn, source_version_id)
    for step_number, group in groupby(questions, key=lambda q: q.step_number):
        for position, question in enumerate(sorted(group, key=lambda q: q.order), start=1):
            insert_question(
                conn,
                {
                    "question_id": str(uuid.uuid4()),
                    "version_id": target_version_id,
                    "origin_id": question.origin_id,
                    "step_number": step_number,
                    "persona_type": question.persona_type,
                    "question_text": question.question_text,
                    "question_text_en": question.question_text_en,
                    "help_text": question.help_text,
                    "help_text_en": question.help_text_en,
                    "question_type": question.question_type.value,
                    "question_order": position,
                    "is_required": question.is_required,
                    "section": question.section,
                    "options": question.options,
                    "options_en": question.options_en,
                    "validation_rules": question.validation_rules,
                    "conditional_logic": question.conditional_logic,
                    "is_active": question.is_active,
                    "created_at": now,
                    "last_modified": None,
                },
            )
            copied += 1

    logger.info(
        "clone_version_content source=%s target=%s steps=%s questions=%s",
        source_version_id,
        target_version_id,
        len(steps),
        copied,
    )
    return len(steps), copied


def seed_default_steps(conn: Connection, *, version_id: str, steps: Iterable) -> int:
    """Insert configured default steps into an empty Draft; return the count."""
    count = 0
    for definition in steps:
        insert_step(
            conn,
            {
                "step_id": str(uuid.uuid4()),
                "version_id": version_id,
                "step_number": definition.step_number,
                "title_fr": definition.title_fr,
                "title_en": definition.title_en,
                "description_fr": definition.description_fr,
                "description_en": definition.description_en,
                "is_active": True,
            },
        )
        count += 1
    return count


__all__ = ["clone_version_content", "seed_default_steps"]
