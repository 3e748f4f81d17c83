"""VersionStatus enumeration for questionnaire versions.

Provides a simple constants container instead of an Enum so the values can
be used directly as column values and in partial index predicates.
"""

from __future__ import annotations


class VersionStatus:
    DRAFT = "Draft"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"

    ALL = (DRAFT, PUBLISHED, ARCHIVED)


__all__ = ["VersionStatus"]
