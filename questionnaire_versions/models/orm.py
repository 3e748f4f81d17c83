"""ORM tables for questionnaire versions, steps and question templates.

The single-Draft and single-Published rules are enforced by partial unique
indexes on ``questionnaire_version.lineage``; dense question order is backed
by a unique constraint over ``(version_id, step_number, question_order)``.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base

from questionnaire_versions.models.version_status import VersionStatus


Base = declarative_base()

_DRAFT_ONLY = text(f"status = '{VersionStatus.DRAFT}'")
_PUBLISHED_ONLY = text(f"status = '{VersionStatus.PUBLISHED}'")


class QuestionnaireVersionRow(Base):  # type: ignore[valid-type]
    __tablename__ = "questionnaire_version"
    __table_args__ = (
        UniqueConstraint("lineage", "version_number", name="uq_version_lineage_number"),
        Index(
            "uq_version_lineage_single_draft",
            "lineage",
            unique=True,
            sqlite_where=_DRAFT_ONLY,
            postgresql_where=_DRAFT_ONLY,
        ),
        Index(
            "uq_version_lineage_single_published",
            "lineage",
            unique=True,
            sqlite_where=_PUBLISHED_ONLY,
            postgresql_where=_PUBLISHED_ONLY,
        ),
    )

    version_id = Column(String, primary_key=True)
    lineage = Column(String, nullable=False)
    version_number = Column(Integer, nullable=True)
    status = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    published_by = Column(String, nullable=True)
    restored_from_version_id = Column(String, nullable=True)


class QuestionnaireStepRow(Base):  # type: ignore[valid-type]
    __tablename__ = "questionnaire_step"
    __table_args__ = (
        UniqueConstraint("version_id", "step_number", name="uq_step_version_number"),
    )

    step_id = Column(String, primary_key=True)
    version_id = Column(
        ForeignKey("questionnaire_version.version_id", ondelete="CASCADE"), nullable=False
    )
    step_number = Column(Integer, nullable=False)
    title_fr = Column(Text, nullable=False)
    title_en = Column(Text, nullable=True)
    description_fr = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class QuestionTemplateRow(Base):  # type: ignore[valid-type]
    __tablename__ = "question_template"
    __table_args__ = (
        UniqueConstraint(
            "version_id", "step_number", "question_order", name="uq_question_step_order"
        ),
    )

    question_id = Column(String, primary_key=True)
    version_id = Column(
        ForeignKey("questionnaire_version.version_id", ondelete="CASCADE"), nullable=False
    )
    # Id of the question this one was first cloned from; stable across versions
    origin_id = Column(String, nullable=False)
    step_number = Column(Integer, nullable=False)
    persona_type = Column(String, nullable=True)
    question_text = Column(Text, nullable=False)
    question_text_en = Column(Text, nullable=True)
    help_text = Column(Text, nullable=True)
    help_text_en = Column(Text, nullable=True)
    question_type = Column(String, nullable=False)
    question_order = Column(Integer, nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    section = Column(String, nullable=True)
    options = Column(Text, nullable=True)
    options_en = Column(Text, nullable=True)
    validation_rules = Column(Text, nullable=True)
    conditional_logic = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_modified = Column(DateTime(timezone=True), nullable=True)


__all__ = [
    "Base",
    "QuestionnaireVersionRow",
    "QuestionnaireStepRow",
    "QuestionTemplateRow",
]
