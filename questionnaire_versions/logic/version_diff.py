"""Structural comparison between two versions of a lineage.

Questions are matched by ``origin_id``, which survives cloning, so a
question edited in a draft shows up as changed rather than removed and
re-added. Changed fields are reported by their wire names
(``questionText``, ``titleEN``).
"""

from __future__ import annotations

from typing import Dict, List

from questionnaire_versions.models.versions import (
    api_alias,
    QuestionChange,
    QuestionnaireVersionDetail,
    QuestionTemplate,
    StepChange,
    VersionComparison,
)

QUESTION_FIELDS = (
    "step_number",
    "order",
    "persona_type",
    "question_text",
    "question_text_en",
    "help_text",
    "help_text_en",
    "question_type",
    "is_required",
    "section",
    "options",
    "options_en",
    "validation_rules",
    "conditional_logic",
    "is_active",
)
STEP_FIELDS = ("title_fr", "title_en", "description_fr", "description_en", "is_active")


def _change(question: QuestionTemplate, fields: List[str] | None = None) -> QuestionChange:
    return QuestionChange(
        origin_id=question.origin_id,
        step_number=question.step_number,
        question_text=question.question_text,
        fields=list(fields or []),
    )


def compare_versions(base: QuestionnaireVersionDetail, target: QuestionnaireVersionDetail) -> VersionComparison:
    """Describe what changed going from ``base`` to ``target``."""
    base_questions: Dict[str, QuestionTemplate] = {q.origin_id: q for q in base.questions}
    target_questions: Dict[str, QuestionTemplate] = {q.origin_id: q for q in target.questions}

    added = [_change(q) for oid, q in target_questions.items() if oid not in base_questions]
    removed = [_change(q) for oid, q in base_questions.items() if oid not in target_questions]
    changed: List[QuestionChange] = []
    for oid, after in target_questions.items():
        before = base_questions.get(oid)
        if before is None:
            continue
        fields = [api_alias(f) for f in QUESTION_FIELDS if getattr(before, f) != getattr(after, f)]
        if fields:
            changed.append(_change(after, fields))

    base_steps = {s.step_number: s for s in base.steps}
    changed_steps: List[StepChange] = []
    for step in target.steps:
        before_step = base_steps.get(step.step_number)
        if before_step is None:
            changed_steps.append(StepChange(step_number=step.step_number, fields=[api_alias(f) for f in STEP_FIELDS]))
            continue
        fields = [api_alias(f) for f in STEP_FIELDS if getattr(before_step, f) != getattr(step, f)]
        if fields:
            changed_steps.append(StepChange(step_number=step.step_number, fields=fields))

    def _sort_key(c: QuestionChange):
        return (c.step_number, c.question_text)

    return VersionComparison(
        base_version_id=base.id,
        target_version_id=target.id,
        added_questions=sorted(added, key=_sort_key),
        removed_questions=sorted(removed, key=_sort_key),
        changed_questions=sorted(changed, key=_sort_key),
        changed_steps=changed_steps,
    )


__all__ = ["compare_versions"]
