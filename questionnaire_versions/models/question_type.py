"""Question types and their type-specific required fields.

Every ``QuestionType`` member has an entry in ``REQUIRED_FIELDS``; the table
is checked for completeness at import time so adding a member without
declaring its requirements fails fast.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class QuestionType(str, Enum):
    SHORT_TEXT = "ShortText"
    LONG_TEXT = "LongText"
    SINGLE_CHOICE = "SingleChoice"
    MULTIPLE_CHOICE = "MultipleChoice"
    NUMBER = "Number"
    CURRENCY = "Currency"
    PERCENTAGE = "Percentage"
    DATE = "Date"
    YES_NO = "YesNo"
    SCALE = "Scale"


_NO_EXTRA: FrozenSet[str] = frozenset()
_CHOICES: FrozenSet[str] = frozenset({"options"})

REQUIRED_FIELDS: Dict[QuestionType, FrozenSet[str]] = {
    QuestionType.SHORT_TEXT: _NO_EXTRA,
    QuestionType.LONG_TEXT: _NO_EXTRA,
    QuestionType.SINGLE_CHOICE: _CHOICES,
    QuestionType.MULTIPLE_CHOICE: _CHOICES,
    QuestionType.NUMBER: _NO_EXTRA,
    QuestionType.CURRENCY: _NO_EXTRA,
    QuestionType.PERCENTAGE: _NO_EXTRA,
    QuestionType.DATE: _NO_EXTRA,
    QuestionType.YES_NO: _NO_EXTRA,
    QuestionType.SCALE: _CHOICES,
}

_missing = set(QuestionType) - set(REQUIRED_FIELDS)
if _missing:
    raise RuntimeError(f"question types without required-field rules: {sorted(m.value for m in _missing)}")


def required_fields_for(question_type: QuestionType) -> FrozenSet[str]:
    """Return the payload fields that must be non-empty for ``question_type``."""
    return REQUIRED_FIELDS[QuestionType(question_type)]


__all__ = ["QuestionType", "REQUIRED_FIELDS", "required_fields_for"]
