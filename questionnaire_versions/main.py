from __future__ import annotations

import logging
import os
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from questionnaire_versions.config import AppConfig, load_config
from questionnaire_versions.db.base import get_engine
from questionnaire_versions.db.schema import create_schema
from questionnaire_versions.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
    handle_versioning_error,
)
from questionnaire_versions.http.request_id import RequestIdMiddleware
from questionnaire_versions.logging_setup import configure_logging
from questionnaire_versions.logic.errors import VersioningError
from questionnaire_versions.middleware.cors import apply_cors
from questionnaire_versions.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(engine: Engine) -> Callable[[], dict]:
    def check() -> dict:
        try:
            with engine.connect() as conn:
                conn.execute(sql_text("SELECT 1")).fetchone()
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    ``config`` defaults to ``load_config()``. The schema is created at build
    time unless ``database.auto_create_schema`` is off.
    """
    configure_logging()
    cfg = config or load_config()
    engine = get_engine(cfg.database.dsn)
    if cfg.database.auto_create_schema:
        create_schema(engine)
    else:
        logger.info("auto_create_schema disabled; expecting an existing schema")

    app = FastAPI(title="Questionnaire Version Service")
    app.state.config = cfg
    app.state.engine = engine

    app.add_exception_handler(VersioningError, handle_versioning_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=cfg.api.cors_origins)

    app.include_router(api_router, prefix=cfg.api.prefix)

    health_check = _health_check(engine)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info(
        "app.created lineage=%s prefix=%s dialect=%s",
        cfg.lineage.key,
        cfg.api.prefix,
        engine.dialect.name,
    )
    return app


def run() -> None:
    """Serve the application with uvicorn; ``HOST``/``PORT`` override the bind address."""
    import uvicorn

    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )
