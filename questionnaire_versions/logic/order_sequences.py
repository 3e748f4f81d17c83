"""Question order reindexing helpers.

Provides backend-authoritative, contiguous 1-based ordering for
``question_order`` within a ``(version_id, step_number)`` pair. The planning
functions are pure and operate on question ids listed in their current
order; ``apply_step_order`` persists a plan in the caller's transaction.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.engine import Connection

from questionnaire_versions.logic.errors import ValidationError
from questionnaire_versions.models.orm import QuestionTemplateRow

logger = logging.getLogger(__name__)


def _insert_index(length: int, proposed_order: Optional[int]) -> int:
    """Clamp a proposed 1-based position into a 0-based insert index."""
    if proposed_order is None:
        return length
    po = int(proposed_order)
    if po <= 1:
        return 0
    if po > length + 1:
        return length
    return po - 1


def dense_mapping(ordered_ids: Iterable[str]) -> Dict[str, int]:
    return {qid: i + 1 for i, qid in enumerate(ordered_ids)}


def is_dense(orders: Iterable[int]) -> bool:
    values = sorted(int(v) for v in orders)
    return values == list(range(1, len(values) + 1))


def plan_insert(ordered_ids: Sequence[str], proposed_order: Optional[int]) -> Tuple[int, Dict[str, int]]:
    """Return the slot for a new question and the new orders of existing ones.

    ``None`` or a position past the end appends; positions inside ``1..N+1``
    shift the question at that position and all later ones down by one.
    """
    insert_at = _insert_index(len(ordered_ids), proposed_order)
    mapping: Dict[str, int] = {}
    for i, qid in enumerate(ordered_ids):
        mapping[qid] = i + 1 if i < insert_at else i + 2
    return insert_at + 1, mapping


def plan_removal(ordered_ids: Sequence[str], removed_id: str) -> Dict[str, int]:
    """Close the gap left by ``removed_id``; later questions move up by one."""
    return dense_mapping(qid for qid in ordered_ids if qid != removed_id)


def plan_move(ordered_ids: Sequence[str], question_id: str, proposed_order: Optional[int]) -> Dict[str, int]:
    """Move ``question_id`` to ``proposed_order`` and renumber the whole step."""
    working: List[str] = [qid for qid in ordered_ids if qid != question_id]
    working.insert(_insert_index(len(working), proposed_order), question_id)
    return dense_mapping(working)


def plan_reorder(ordered_ids: Sequence[str], requested: Mapping[str, int]) -> Dict[str, int]:
    """Compute the dense order of a step from a client-supplied mapping.

    Requested questions are lifted out of the step and re-inserted in
    ascending requested order, each at its requested position clamped to the
    end of the step, so a partial mapping moves only the questions it names.
    A complete mapping reduces to sorting by requested order. The result is
    always ``1..N``.
    """
    position = {qid: i + 1 for i, qid in enumerate(ordered_ids)}
    unknown = [qid for qid in requested if qid not in position]
    if unknown:
        raise ValidationError(
            "reorder references questions outside the step",
            errors=[{"path": "$.items", "code": "unknown_question"}],
        )
    seen: Dict[int, str] = {}
    for qid, order in requested.items():
        if int(order) < 1:
            raise ValidationError(
                "reorder orders must be positive",
                errors=[{"path": "$.items", "code": "invalid_or_non_positive"}],
            )
        if int(order) in seen:
            raise ValidationError(
                "reorder assigns the same order twice within a step",
                errors=[{"path": "$.items", "code": "duplicate_order"}],
            )
        seen[int(order)] = qid

    working: List[str] = [qid for qid in ordered_ids if qid not in requested]
    for order in sorted(seen):
        working.insert(_insert_index(len(working), order), seen[order])
    return dense_mapping(working)


def apply_step_order(
    conn: Connection,
    version_id: str,
    step_number: int,
    mapping: Mapping[str, int],
) -> None:
    """Persist ``mapping`` for one step without transient unique collisions.

    Two-phase write: existing orders are negated first, which keeps them
    distinct and out of the positive range, then final values are written.
    """
    if not mapping:
        return
    logger.info(
        "apply_step_order version_id=%s step_number=%s mapping=%s",
        version_id,
        step_number,
        dict(mapping),
    )
    conn.execute(
        update(QuestionTemplateRow)
        .where(QuestionTemplateRow.version_id == version_id)
        .where(QuestionTemplateRow.step_number == step_number)
        .where(QuestionTemplateRow.question_id.in_(list(mapping)))
        .values(question_order=-QuestionTemplateRow.question_order)
    )
    for qid, ord_val in mapping.items():
        conn.execute(
            update(QuestionTemplateRow)
            .where(QuestionTemplateRow.question_id == qid)
            .values(question_order=int(ord_val))
        )


__all__ = [
    "dense_mapping",
    "is_dense",
    "plan_insert",
    "plan_removal",
    "plan_move",
    "plan_reorder",
    "apply_step_order",
]
