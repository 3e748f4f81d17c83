"""Display-locale projection of version payloads.

The locale is always an explicit argument. English values fall back to the
French source text when absent.
"""

from __future__ import annotations

from typing import Optional

from questionnaire_versions.models.versions import (
    QuestionnaireStep,
    QuestionnaireVersionDetail,
    QuestionTemplate,
)

SUPPORTED_LOCALES = ("fr", "en")


def _pick(locale: str, fr: Optional[str], en: Optional[str]) -> Optional[str]:
    if locale == "en" and en:
        return en
    return fr


def localize_step(step: QuestionnaireStep, locale: str) -> QuestionnaireStep:
    return step.model_copy(
        update={
            "display_title": _pick(locale, step.title_fr, step.title_en),
            "display_description": _pick(locale, step.description_fr, step.description_en),
        }
    )


def localize_question(question: QuestionTemplate, locale: str) -> QuestionTemplate:
    return question.model_copy(
        update={
            "display_text": _pick(locale, question.question_text, question.question_text_en),
            "display_help_text": _pick(locale, question.help_text, question.help_text_en),
            "display_options": _pick(locale, question.options, question.options_en),
        }
    )


def localize_version(detail: QuestionnaireVersionDetail, locale: Optional[str]) -> QuestionnaireVersionDetail:
    """Return a copy of ``detail`` with display fields filled; ``None`` leaves it as is."""
    if locale is None:
        return detail
    if locale not in SUPPORTED_LOCALES:
        raise ValueError(f"unsupported display locale: {locale}")
    return detail.model_copy(
        update={
            "steps": [localize_step(s, locale) for s in detail.steps],
            "questions": [localize_question(q, locale) for q in detail.questions],
        }
    )


__all__ = ["SUPPORTED_LOCALES", "localize_step", "localize_question", "localize_version"]
