"""Type-aware validation for question template payloads.

Create and update payloads are validated against the merged question state
so an update that switches ``questionType`` to a choice type without
supplying options is rejected just like a create would be.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping

from questionnaire_versions.logic.errors import ValidationError
from questionnaire_versions.models.question_type import QuestionType, required_fields_for


def _parse_option_list(raw: Any) -> List[Any] | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None
    return parsed


def validate_question_fields(fields: Mapping[str, Any], *, operation: str) -> QuestionType:
    """Validate a complete question snapshot and return its question type.

    ``fields`` uses the snake_case names of ``QuestionTemplate``. Raises
    ``ValidationError`` listing every failing path.
    """
    errors: List[Dict[str, str]] = []

    text = fields.get("question_text")
    if not isinstance(text, str) or not text.strip():
        errors.append({"path": "$.questionText", "code": "missing"})

    try:
        qtype = QuestionType(fields.get("question_type"))
    except ValueError:
        errors.append({"path": "$.questionType", "code": "unknown_question_type"})
        raise ValidationError("invalid question payload", errors=errors, operation=operation)

    for name in sorted(required_fields_for(qtype)):
        if name == "options":
            options = _parse_option_list(fields.get("options"))
            if options is None:
                errors.append({"path": "$.options", "code": "missing_or_not_a_json_list"})
            elif not options:
                errors.append({"path": "$.options", "code": "empty"})
        elif fields.get(name) in (None, ""):
            errors.append({"path": f"$.{name}", "code": "missing"})

    options_en_raw = fields.get("options_en")
    if options_en_raw not in (None, ""):
        options_en = _parse_option_list(options_en_raw)
        options = _parse_option_list(fields.get("options"))
        if options_en is None:
            errors.append({"path": "$.optionsEN", "code": "not_a_json_list"})
        elif options is not None and len(options_en) != len(options):
            errors.append({"path": "$.optionsEN", "code": "length_mismatch"})

    order = fields.get("order")
    if order is not None and int(order) < 1:
        errors.append({"path": "$.order", "code": "invalid_or_non_positive"})

    if errors:
        raise ValidationError(
            f"invalid {qtype.value} question payload", errors=errors, operation=operation
        )
    return qtype


__all__ = ["validate_question_fields"]
