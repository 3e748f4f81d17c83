"""Database bootstrap utilities for the Questionnaire Version Service.

This module exposes convenience imports for engine construction, the
transaction helper and schema creation. The DB layer does not leak ORM
models into route handlers.
"""

from questionnaire_versions.db.base import get_engine, reset_engine, transaction
from questionnaire_versions.db.schema import create_schema, drop_schema

__all__ = [
    "get_engine",
    "reset_engine",
    "transaction",
    "create_schema",
    "drop_schema",
]
