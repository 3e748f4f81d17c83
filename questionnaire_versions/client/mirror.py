"""In-memory mirror of the active questionnaire version for editor clients.

The mirror holds the last ``get_active()`` result and patches it from the
entities each successful API call returns instead of reloading the whole
version. Sibling questions whose order shifts as a side effect of a create,
move or delete are renumbered locally with the same planners the server uses,
so the local copy stays dense. ``reorder_questions`` applies the renumbered
questions the server sends back.

Failures never touch local state: a typed API error is recorded in ``error``
and re-raised; a transport failure (no answer at all) marks the mirror
``stale``, attempts a resync through ``get_active()`` and re-raises.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar, Union

import httpx

from questionnaire_versions.client.api_client import VersionApiClient
from questionnaire_versions.logic.display_locale import localize_version
from questionnaire_versions.logic.errors import InvalidStateError, VersioningError
from questionnaire_versions.logic.order_sequences import plan_insert, plan_move, plan_removal
from questionnaire_versions.models.version_status import VersionStatus
from questionnaire_versions.models.versions import (
    CreateQuestionRequest,
    QuestionnaireStep,
    QuestionnaireVersionDetail,
    QuestionTemplate,
    ReorderItem,
    UpdateQuestionRequest,
    UpdateStepRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _step_ids(questions: Sequence[QuestionTemplate], step_number: int) -> List[str]:
    in_step = [q for q in questions if q.step_number == step_number]
    return [q.id for q in sorted(in_step, key=lambda q: q.order)]


def _find_question(questions: Sequence[QuestionTemplate], question_id: str) -> Optional[QuestionTemplate]:
    return next((q for q in questions if q.id == question_id), None)


def _renumber(questions: List[QuestionTemplate], mapping: Mapping[str, int]) -> List[QuestionTemplate]:
    return [
        q.model_copy(update={"order": mapping[q.id]}) if q.id in mapping and q.order != mapping[q.id] else q
        for q in questions
    ]


class ClientMirror:
    def __init__(self, api: VersionApiClient, *, locale: Optional[str] = None) -> None:
        self._api = api
        self.locale = locale
        self.active_version: Optional[QuestionnaireVersionDetail] = None
        self.dirty = False
        self.error: Optional[Exception] = None
        self.stale = False

    @property
    def is_edit_mode(self) -> bool:
        return self.active_version is not None and self.active_version.status == VersionStatus.DRAFT

    def clear_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------- plumbing

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        self.error = None
        try:
            return fn(*args)
        except (VersioningError, httpx.HTTPStatusError) as exc:
            self.error = exc
            raise
        except httpx.TransportError as exc:
            self.error = exc
            self.stale = True
            logger.warning("mirror.transport_failure call=%s error=%s", getattr(fn, "__name__", fn), exc)
            self._resync()
            raise

    def _resync(self) -> None:
        try:
            self._set_active(self._api.get_active(self.locale))
        except (VersioningError, httpx.HTTPError):
            logger.warning("mirror.resync_failed", exc_info=True)
            return
        self.stale = False
        logger.info("mirror.resynced version_id=%s", getattr(self.active_version, "id", None))

    def _set_active(self, detail: Optional[QuestionnaireVersionDetail]) -> None:
        self.active_version = localize_version(detail, self.locale) if detail is not None else None

    def _require_draft(self, operation: str) -> QuestionnaireVersionDetail:
        if not self.is_edit_mode:
            exc = InvalidStateError(f"cannot {operation}: no active draft", operation=operation)
            self.error = exc
            raise exc
        return self.active_version  # type: ignore[return-value]

    def _patch(
        self,
        current: QuestionnaireVersionDetail,
        *,
        questions: Optional[List[QuestionTemplate]] = None,
        steps: Optional[List[QuestionnaireStep]] = None,
    ) -> None:
        qs = sorted(questions if questions is not None else current.questions, key=lambda q: (q.step_number, q.order))
        per_step = Counter(q.step_number for q in qs)
        st = [
            s.model_copy(update={"question_count": per_step.get(s.step_number, 0)})
            for s in (steps if steps is not None else current.steps)
        ]
        self._set_active(current.model_copy(update={"questions": qs, "steps": st, "question_count": len(qs)}))
        self.dirty = True

    # ---------------------------------------------------------- transitions

    def load_version(self) -> Optional[QuestionnaireVersionDetail]:
        detail = self._call(self._api.get_active, self.locale)
        self._set_active(detail)
        self.stale = False
        return self.active_version

    def create_draft(self, notes: Optional[str] = None) -> QuestionnaireVersionDetail:
        draft = self._call(self._api.create_draft, notes)
        self._set_active(draft)
        self.dirty = False
        self.stale = False
        logger.info("mirror.create_draft version_id=%s", draft.id)
        return self.active_version  # type: ignore[return-value]

    def restore_version(self, version_id: str) -> QuestionnaireVersionDetail:
        draft = self._call(self._api.restore_version, version_id)
        self._set_active(draft)
        self.dirty = False
        self.stale = False
        logger.info("mirror.restore_version source=%s draft=%s", version_id, draft.id)
        return self.active_version  # type: ignore[return-value]

    def publish_draft(self) -> Optional[QuestionnaireVersionDetail]:
        draft = self._require_draft("publishDraft")
        self._call(self._api.publish_draft, draft.id)
        self.dirty = False
        return self.load_version()

    def discard_draft(self) -> Optional[QuestionnaireVersionDetail]:
        draft = self._require_draft("discardDraft")
        self._call(self._api.discard_draft, draft.id)
        self.dirty = False
        return self.load_version()

    # ---------------------------------------------------------- draft edits

    def create_question(self, payload: Union[CreateQuestionRequest, Mapping[str, Any]]) -> QuestionTemplate:
        draft = self._require_draft("createQuestion")
        created = self._call(self._api.create_question, draft.id, payload)
        questions = list(draft.questions)
        _, mapping = plan_insert(_step_ids(questions, created.step_number), created.order)
        questions = _renumber(questions, mapping)
        questions.append(created)
        self._patch(draft, questions=questions)
        return created

    def update_question(
        self,
        question_id: str,
        payload: Union[UpdateQuestionRequest, Mapping[str, Any]],
    ) -> QuestionTemplate:
        draft = self._require_draft("updateQuestion")
        updated = self._call(self._api.update_question, draft.id, question_id, payload)
        previous = _find_question(draft.questions, question_id)
        questions = [q for q in draft.questions if q.id != question_id]
        if previous is not None and previous.step_number != updated.step_number:
            source_ids = _step_ids(draft.questions, previous.step_number)
            questions = _renumber(questions, plan_removal(source_ids, question_id))
        target_ids = _step_ids(questions, updated.step_number) + [question_id]
        mapping = plan_move(target_ids, question_id, updated.order)
        questions = _renumber(questions, mapping)
        questions.append(updated)
        self._patch(draft, questions=questions)
        return updated

    def delete_question(self, question_id: str) -> None:
        draft = self._require_draft("deleteQuestion")
        self._call(self._api.delete_question, draft.id, question_id)
        previous = _find_question(draft.questions, question_id)
        questions = [q for q in draft.questions if q.id != question_id]
        if previous is not None:
            step_ids = _step_ids(draft.questions, previous.step_number)
            questions = _renumber(questions, plan_removal(step_ids, question_id))
        self._patch(draft, questions=questions)

    def reorder_questions(
        self,
        items: Sequence[Union[ReorderItem, Mapping[str, Any]]],
    ) -> List[QuestionTemplate]:
        draft = self._require_draft("reorderQuestions")
        renumbered = self._call(self._api.reorder_questions, draft.id, items)
        by_id: Dict[str, QuestionTemplate] = {q.id: q for q in renumbered}
        questions = [by_id.pop(q.id, q) for q in draft.questions]
        questions.extend(by_id.values())
        self._patch(draft, questions=questions)
        return renumbered

    def update_step(
        self,
        step_number: int,
        payload: Union[UpdateStepRequest, Mapping[str, Any]],
    ) -> QuestionnaireStep:
        draft = self._require_draft("updateStep")
        updated = self._call(self._api.update_step, draft.id, step_number, payload)
        steps = [updated if s.step_number == step_number else s for s in draft.steps]
        self._patch(draft, steps=steps)
        return updated


__all__ = ["ClientMirror"]
