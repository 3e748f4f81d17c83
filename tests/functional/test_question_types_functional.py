"""Question type dispatch and payload validation."""

from __future__ import annotations

import json

import pytest

from questionnaire_versions.logic.errors import ValidationError
from questionnaire_versions.logic.question_validation import validate_question_fields
from questionnaire_versions.models.question_type import (
    REQUIRED_FIELDS,
    QuestionType,
    required_fields_for,
)

CHOICE_TYPES = {QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE, QuestionType.SCALE}


def _fields(question_type, **extra):
    base = {"question_text": "Quelle est votre mission ?", "question_type": question_type}
    base.update(extra)
    return base


def test_every_question_type_declares_required_fields():
    assert set(REQUIRED_FIELDS) == set(QuestionType)


@pytest.mark.parametrize("question_type", list(QuestionType))
def test_options_required_exactly_for_choice_types(question_type):
    assert ("options" in required_fields_for(question_type)) is (question_type in CHOICE_TYPES)
    assert required_fields_for(question_type.value) == REQUIRED_FIELDS[question_type]


@pytest.mark.parametrize("question_type", sorted(CHOICE_TYPES, key=lambda t: t.value))
def test_choice_types_accept_a_json_option_list(question_type):
    fields = _fields(question_type.value, options=json.dumps(["1", "2", "3"]))

    assert validate_question_fields(fields, operation="createQuestion") is question_type


@pytest.mark.parametrize(
    "options, code",
    [
        (None, "missing_or_not_a_json_list"),
        ("", "missing_or_not_a_json_list"),
        ("not json", "missing_or_not_a_json_list"),
        (json.dumps({"a": 1}), "missing_or_not_a_json_list"),
        (json.dumps([]), "empty"),
    ],
)
def test_choice_types_reject_bad_options(options, code):
    with pytest.raises(ValidationError) as ei:
        validate_question_fields(_fields("SingleChoice", options=options), operation="createQuestion")

    assert ei.value.errors == [{"path": "$.options", "code": code}]
    assert ei.value.operation == "createQuestion"


def test_text_types_do_not_need_options():
    assert validate_question_fields(_fields("LongText"), operation="createQuestion") is QuestionType.LONG_TEXT


def test_english_options_must_match_french_length():
    fields = _fields(
        "MultipleChoice",
        options=json.dumps(["Oui", "Non"]),
        options_en=json.dumps(["Yes"]),
    )

    with pytest.raises(ValidationError) as ei:
        validate_question_fields(fields, operation="updateQuestion")

    assert {"path": "$.optionsEN", "code": "length_mismatch"} in ei.value.errors


def test_unknown_question_type_is_rejected():
    with pytest.raises(ValidationError) as ei:
        validate_question_fields(_fields("Essay"), operation="createQuestion")

    assert {"path": "$.questionType", "code": "unknown_question_type"} in ei.value.errors


def test_blank_text_and_bad_order_are_reported_together():
    with pytest.raises(ValidationError) as ei:
        validate_question_fields(
            {"question_text": "  ", "question_type": "Number", "order": 0},
            operation="createQuestion",
        )

    codes = {(e["path"], e["code"]) for e in ei.value.errors}
    assert codes == {("$.questionText", "missing"), ("$.order", "invalid_or_non_positive")}
