"""Schema bootstrap for the version store.

Creates the tables and partial unique indexes declared in
``questionnaire_versions.models.orm``. Intended for local development, CI and
single-node deployments; production databases may apply the same DDL
through their own migration tooling.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from questionnaire_versions.models.orm import Base

logger = logging.getLogger(__name__)


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)
    logger.info("db.schema.created tables=%s", sorted(Base.metadata.tables))


def drop_schema(engine: Engine) -> None:
    Base.metadata.drop_all(engine)
    logger.info("db.schema.dropped")
