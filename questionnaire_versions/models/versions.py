"""Pydantic models for questionnaire version payloads.

Field names are snake_case in Python and camelCase on the wire; the
bilingual suffixes keep their upper-case form (``titleFR``, ``optionsEN``).
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from questionnaire_versions.models.question_type import QuestionType


def api_alias(name: str) -> str:
    for suffix, tag in (("_fr", "FR"), ("_en", "EN")):
        if name.endswith(suffix):
            return to_camel(name[: -len(suffix)]) + tag
    return to_camel(name)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=api_alias, populate_by_name=True)


class QuestionnaireStep(ApiModel):
    id: str
    version_id: str
    step_number: int
    title_fr: str
    title_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    is_active: bool = True
    question_count: int = 0
    # Filled only when a display locale is requested
    display_title: Optional[str] = None
    display_description: Optional[str] = None


class QuestionTemplate(ApiModel):
    id: str
    version_id: str
    origin_id: str
    step_number: int
    persona_type: Optional[str] = None
    question_text: str
    question_text_en: Optional[str] = None
    help_text: Optional[str] = None
    help_text_en: Optional[str] = None
    question_type: QuestionType
    order: int
    is_required: bool = False
    section: Optional[str] = None
    options: Optional[str] = None
    options_en: Optional[str] = None
    validation_rules: Optional[str] = None
    conditional_logic: Optional[str] = None
    is_active: bool = True
    created: datetime
    last_modified: Optional[datetime] = None
    display_text: Optional[str] = None
    display_help_text: Optional[str] = None
    display_options: Optional[str] = None


class QuestionnaireVersion(ApiModel):
    id: str
    lineage: str
    version_number: Optional[int] = None
    status: str
    notes: Optional[str] = None
    created_by: str
    created_at: datetime
    published_at: Optional[datetime] = None
    published_by: Optional[str] = None
    restored_from_version_id: Optional[str] = None
    question_count: int = 0


class QuestionnaireVersionDetail(QuestionnaireVersion):
    steps: List[QuestionnaireStep] = Field(default_factory=list)
    questions: List[QuestionTemplate] = Field(default_factory=list)


class CreateDraftRequest(ApiModel):
    notes: Optional[str] = None


class CreateQuestionRequest(ApiModel):
    question_text: str = Field(min_length=1)
    question_text_en: Optional[str] = None
    help_text: Optional[str] = None
    help_text_en: Optional[str] = None
    question_type: QuestionType
    step_number: int = Field(ge=1)
    persona_type: Optional[str] = None
    order: Optional[int] = None
    is_required: bool = False
    section: Optional[str] = None
    options: Optional[str] = None
    options_en: Optional[str] = None
    validation_rules: Optional[str] = None
    conditional_logic: Optional[str] = None
    is_active: bool = True


class UpdateQuestionRequest(ApiModel):
    question_text: Optional[str] = None
    question_text_en: Optional[str] = None
    help_text: Optional[str] = None
    help_text_en: Optional[str] = None
    question_type: Optional[QuestionType] = None
    step_number: Optional[int] = Field(default=None, ge=1)
    persona_type: Optional[str] = None
    order: Optional[int] = None
    is_required: Optional[bool] = None
    section: Optional[str] = None
    options: Optional[str] = None
    options_en: Optional[str] = None
    validation_rules: Optional[str] = None
    conditional_logic: Optional[str] = None
    is_active: Optional[bool] = None


class UpdateStepRequest(ApiModel):
    title_fr: Optional[str] = None
    title_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title_fr")
    @classmethod
    def title_fr_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("titleFR must be a non-empty string")
        return v


class ReorderItem(ApiModel):
    question_id: str
    order: int


class ReorderRequest(ApiModel):
    items: List[ReorderItem]


class StepChange(ApiModel):
    step_number: int
    fields: List[str]


class QuestionChange(ApiModel):
    origin_id: str
    step_number: int
    question_text: str
    fields: List[str] = Field(default_factory=list)


class VersionComparison(ApiModel):
    base_version_id: str
    target_version_id: str
    added_questions: List[QuestionChange] = Field(default_factory=list)
    removed_questions: List[QuestionChange] = Field(default_factory=list)
    changed_questions: List[QuestionChange] = Field(default_factory=list)
    changed_steps: List[StepChange] = Field(default_factory=list)


__all__ = [
    "api_alias",
    "ApiModel",
    "QuestionnaireStep",
    "QuestionTemplate",
    "QuestionnaireVersion",
    "QuestionnaireVersionDetail",
    "CreateDraftRequest",
    "CreateQuestionRequest",
    "UpdateQuestionRequest",
    "UpdateStepRequest",
    "ReorderItem",
    "ReorderRequest",
    "StepChange",
    "QuestionChange",
    "VersionComparison",
]
