"""Draft-scoped structural writes for questions and steps.

Every operation resolves the owning version inside its own transaction,
locks the version row, and refuses to write unless the version is a Draft.
The status check and the write share the transaction, so a concurrent
publish cannot slip in between them. Each operation returns the entities it
changed so callers can patch local state without reloading.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from itertools import groupby
from typing import Any, Callable, Dict, List, Mapping, Sequence

from sqlalchemy.engine import Connection, Engine

from questionnaire_versions.db.base import get_engine, transaction
from questionnaire_versions.logic.errors import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from questionnaire_versions.logic.order_sequences import (
    apply_step_order,
    dense_mapping,
    plan_insert,
    plan_move,
    plan_reorder,
)
from questionnaire_versions.logic.question_validation import validate_question_fields
from questionnaire_versions.logic.repository_questions import (
    delete_question_row,
    get_question,
    insert_question,
    list_step_question_ids,
    list_step_questions,
    to_columns,
    update_question_fields,
)
from questionnaire_versions.logic.repository_steps import get_step, step_exists, update_step_fields
from questionnaire_versions.logic.repository_versions import get_version_row
from questionnaire_versions.models.version_status import VersionStatus
from questionnaire_versions.models.versions import (
    CreateQuestionRequest,
    QuestionnaireStep,
    QuestionTemplate,
    ReorderItem,
    UpdateQuestionRequest,
    UpdateStepRequest,
)

logger = logging.getLogger(__name__)

_NON_NULLABLE_QUESTION_FIELDS = ("question_text", "question_type", "step_number", "is_required", "is_active", "order")
_NON_NULLABLE_STEP_FIELDS = ("title_fr", "is_active")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _changed_only(ordered_ids: Sequence[str], mapping: Mapping[str, int]) -> Dict[str, int]:
    """Drop entries whose order would not change."""
    current = {qid: i + 1 for i, qid in enumerate(ordered_ids)}
    return {qid: o for qid, o in mapping.items() if current.get(qid) != o}


def _reject_nulls(changes: Mapping[str, Any], names: Sequence[str], operation: str) -> None:
    nulls = [n for n in names if n in changes and changes[n] is None]
    if nulls:
        raise ValidationError(
            f"{', '.join(nulls)} cannot be null",
            errors=[{"path": f"$.{n}", "code": "null_not_allowed"} for n in nulls],
            operation=operation,
        )


class ScopedMutationGateway:
    """Gatekeeper for every structural edit of a questionnaire version."""

    def __init__(self, engine: Engine | None = None, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._engine = engine or get_engine()
        self._clock = clock

    def _require_draft(self, conn: Connection, version_id: str, operation: str) -> Mapping[str, Any]:
        row = get_version_row(conn, version_id, for_update=True)
        if row is None:
            raise NotFoundError(f"version {version_id} not found", operation=operation)
        if row["status"] != VersionStatus.DRAFT:
            logger.info(
                "gateway.rejected operation=%s version_id=%s status=%s",
                operation,
                version_id,
                row["status"],
            )
            raise InvalidStateError(
                f"{operation} is only allowed on a Draft version; version {version_id} is {row['status']}",
                operation=operation,
            )
        return row

    def _require_step(self, conn: Connection, version_id: str, step_number: int, operation: str) -> None:
        if not step_exists(conn, version_id, step_number):
            raise ValidationError(
                f"step {step_number} does not exist in version {version_id}",
                errors=[{"path": "$.stepNumber", "code": "unknown_step"}],
                operation=operation,
            )

    # -------------------------------------------------------------- questions

    def create_question(self, version_id: str, request: CreateQuestionRequest) -> QuestionTemplate:
        operation = "createQuestion"
        question_id = str(uuid.uuid4())
        now = self._clock()
        with transaction(self._engine) as conn:
            self._require_draft(conn, version_id, operation)
            fields = request.model_dump()
            validate_question_fields(fields, operation=operation)
            self._require_step(conn, version_id, request.step_number, operation)

            ids = list_step_question_ids(conn, version_id, request.step_number)
            position, mapping = plan_insert(ids, request.order)
            apply_step_order(conn, version_id, request.step_number, _changed_only(ids, mapping))

            values = to_columns({k: v for k, v in fields.items() if k != "order"})
            values.update(
                question_id=question_id,
                version_id=version_id,
                origin_id=question_id,
                question_order=position,
                created_at=now,
                last_modified=None,
            )
            insert_question(conn, values)
            created = get_question(conn, version_id, question_id)
        logger.info(
            "gateway.create_question version_id=%s question_id=%s step=%s order=%s",
            version_id,
            question_id,
            request.step_number,
            position,
        )
        return created

    def update_question(
        self,
        version_id: str,
        question_id: str,
        request: UpdateQuestionRequest,
    ) -> QuestionTemplate:
        operation = "updateQuestion"
        changes = request.model_dump(exclude_unset=True)
        with transaction(self._engine) as conn:
            self._require_draft(conn, version_id, operation)
            current = get_question(conn, version_id, question_id)
            if current is None:
                raise NotFoundError(
                    f"question {question_id} not found in version {version_id}", operation=operation
                )
            _reject_nulls(changes, _NON_NULLABLE_QUESTION_FIELDS, operation)
            merged = {**current.model_dump(), **changes}
            validate_question_fields(merged, operation=operation)

            source_step = current.step_number
            target_step = int(merged["step_number"])
            new_order = changes.get("order")

            scalar = {k: v for k, v in changes.items() if k not in ("step_number", "order")}
            scalar["last_modified"] = self._clock()
            update_question_fields(conn, question_id, scalar)

            if target_step != source_step:
                self._require_step(conn, version_id, target_step, operation)
                # Park the question at order 0 in the target step; dense orders never use 0
                update_question_fields(conn, question_id, {"step_number": target_step, "order": 0})
                remaining = list_step_question_ids(conn, version_id, source_step)
                apply_step_order(conn, version_id, source_step, dense_mapping(remaining))
                target_ids = list_step_question_ids(conn, version_id, target_step)
                apply_step_order(conn, version_id, target_step, plan_move(target_ids, question_id, new_order))
            elif new_order is not None and int(new_order) != current.order:
                ids = list_step_question_ids(conn, version_id, source_step)
                mapping = plan_move(ids, question_id, int(new_order))
                apply_step_order(conn, version_id, source_step, _changed_only(ids, mapping))
            updated = get_question(conn, version_id, question_id)
        logger.info(
            "gateway.update_question version_id=%s question_id=%s fields=%s",
            version_id,
            question_id,
            sorted(changes),
        )
        return updated

    def delete_question(self, version_id: str, question_id: str) -> None:
        operation = "deleteQuestion"
        with transaction(self._engine) as conn:
            self._require_draft(conn, version_id, operation)
            current = get_question(conn, version_id, question_id)
            if current is None:
                raise NotFoundError(
                    f"question {question_id} not found in version {version_id}", operation=operation
                )
            delete_question_row(conn, question_id)
            remaining = list_step_question_ids(conn, version_id, current.step_number)
            apply_step_order(
                conn,
                version_id,
                current.step_number,
                {qid: o for qid, o in dense_mapping(remaining).items() if o >= current.order},
            )
        logger.info(
            "gateway.delete_question version_id=%s question_id=%s step=%s order=%s",
            version_id,
            question_id,
            current.step_number,
            current.order,
        )

    def reorder_questions(self, version_id: str, items: Sequence[ReorderItem]) -> List[QuestionTemplate]:
        """Apply a batch of ``(questionId, order)`` pairs; return the renumbered steps."""
        operation = "reorderQuestions"
        with transaction(self._engine) as conn:
            self._require_draft(conn, version_id, operation)
            if not items:
                raise ValidationError(
                    "reorder requires at least one item",
                    errors=[{"path": "$.items", "code": "empty"}],
                    operation=operation,
                )
            requested: Dict[str, int] = {}
            for item in items:
                if item.question_id in requested:
                    raise ValidationError(
                        f"question {item.question_id} appears more than once",
                        errors=[{"path": "$.items", "code": "duplicate_question"}],
                        operation=operation,
                    )
                requested[item.question_id] = int(item.order)

            steps: Dict[str, int] = {}
            for qid in requested:
                question = get_question(conn, version_id, qid)
                if question is None:
                    raise ValidationError(
                        f"question {qid} does not belong to version {version_id}",
                        errors=[{"path": "$.items", "code": "unknown_question"}],
                        operation=operation,
                    )
                steps[qid] = question.step_number

            result: List[QuestionTemplate] = []
            by_step = sorted(requested, key=lambda q: steps[q])
            for step_number, group in groupby(by_step, key=lambda q: steps[q]):
                ids = list_step_question_ids(conn, version_id, step_number)
                try:
                    mapping = plan_reorder(ids, {qid: requested[qid] for qid in group})
                except ValidationError as exc:
                    exc.operation = exc.operation or operation
                    raise
                apply_step_order(conn, version_id, step_number, _changed_only(ids, mapping))
                result.extend(list_step_questions(conn, version_id, step_number))
        logger.info(
            "gateway.reorder_questions version_id=%s items=%s steps=%s",
            version_id,
            len(requested),
            sorted(set(steps.values())),
        )
        return result

    # ------------------------------------------------------------------ steps

    def update_step(self, version_id: str, step_number: int, request: UpdateStepRequest) -> QuestionnaireStep:
        operation = "updateStep"
        changes = request.model_dump(exclude_unset=True)
        with transaction(self._engine) as conn:
            self._require_draft(conn, version_id, operation)
            step = get_step(conn, version_id, step_number)
            if step is None:
                raise NotFoundError(
                    f"step {step_number} not found in version {version_id}", operation=operation
                )
            _reject_nulls(changes, _NON_NULLABLE_STEP_FIELDS, operation)
            update_step_fields(conn, step.id, changes)
            updated = get_step(conn, version_id, step_number)
        logger.info(
            "gateway.update_step version_id=%s step_number=%s fields=%s",
            version_id,
            step_number,
            sorted(changes),
        )
        return updated


__all__ = ["ScopedMutationGateway"]
