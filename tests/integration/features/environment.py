"""Behave environment hooks for version lifecycle integration tests.

When ``TEST_BASE_URL`` is set, scenarios run against that live API (which
must start from an empty lineage). Otherwise each scenario boots the FastAPI
app in-process on a fresh in-memory SQLite database and talks to it through
``TestClient``.
"""

from __future__ import annotations

import os
from typing import Any

import httpx
from fastapi.testclient import TestClient

from questionnaire_versions.client.api_client import VersionApiClient
from questionnaire_versions.client.mirror import ClientMirror
from questionnaire_versions.config import ApiConfig, AppConfig, DatabaseConfig, LineageConfig
from questionnaire_versions.db.base import reset_engine
from questionnaire_versions.main import create_app

IN_MEMORY_DB = "sqlite+pysqlite:///:memory:"


def _http_client() -> httpx.Client:
    base_url = os.environ.get("TEST_BASE_URL", "").strip().rstrip("/")
    if base_url:
        return httpx.Client(base_url=base_url, timeout=10.0)
    reset_engine()
    app = create_app(
        AppConfig(
            database=DatabaseConfig(dsn=IN_MEMORY_DB),
            lineage=LineageConfig(),
            api=ApiConfig(),
        )
    )
    return TestClient(app)


def before_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    context.http = _http_client()
    context.api = VersionApiClient(context.http, actor="behave")
    context.mirror = ClientMirror(context.api)
    context.vars = {}
    context.last_error = None


def after_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    http = getattr(context, "http", None)
    if http is not None:
        http.close()
    reset_engine()
