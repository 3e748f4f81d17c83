"""Functional test bootstrap for the questionnaire version service.

Every test gets a fresh in-memory SQLite database: the cached engine is
reset, the schema is created, and the domain event buffer is cleared. The
FastAPI app is built against the same engine so HTTP, client and mirror
tests observe exactly what the lifecycle manager and gateway wrote.
"""

from __future__ import annotations

import os

import pytest

# Point the service at in-memory SQLite before any engine is built
DB_URL = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_URL"] = DB_URL
os.environ.pop("TEST_DATABASE_URL", None)

from fastapi.testclient import TestClient  # noqa: E402

from questionnaire_versions.client.api_client import VersionApiClient  # noqa: E402
from questionnaire_versions.client.mirror import ClientMirror  # noqa: E402
from questionnaire_versions.config import ApiConfig, AppConfig, DatabaseConfig, LineageConfig  # noqa: E402
from questionnaire_versions.db.base import get_engine, reset_engine  # noqa: E402
from questionnaire_versions.db.schema import create_schema, drop_schema  # noqa: E402
from questionnaire_versions.logic.events import get_buffered_events  # noqa: E402
from questionnaire_versions.logic.lifecycle import VersionLifecycleManager  # noqa: E402
from questionnaire_versions.logic.mutation_gateway import ScopedMutationGateway  # noqa: E402
from questionnaire_versions.main import create_app  # noqa: E402
from questionnaire_versions.models.question_type import QuestionType  # noqa: E402
from questionnaire_versions.models.versions import CreateQuestionRequest  # noqa: E402


@pytest.fixture
def engine():
    reset_engine()
    eng = get_engine(DB_URL)
    create_schema(eng)
    get_buffered_events(clear=True)
    yield eng
    drop_schema(eng)
    reset_engine()


@pytest.fixture
def manager(engine) -> VersionLifecycleManager:
    return VersionLifecycleManager(engine)


@pytest.fixture
def gateway(engine) -> ScopedMutationGateway:
    return ScopedMutationGateway(engine)


@pytest.fixture
def make_question():
    """Factory for create payloads; defaults to a ShortText question in step 1."""

    def _make(text: str = "Question", *, step_number: int = 1, **extra) -> CreateQuestionRequest:
        extra.setdefault("question_type", QuestionType.SHORT_TEXT)
        return CreateQuestionRequest(question_text=text, step_number=step_number, **extra)

    return _make


@pytest.fixture
def published_v1(manager, gateway, make_question):
    """Publish version 1 holding three questions in step 1; return its detail."""
    draft = manager.create_draft("first release")
    for text in ("Q1", "Q2", "Q3"):
        gateway.create_question(draft.id, make_question(text))
    manager.publish_draft(draft.id)
    get_buffered_events(clear=True)
    return manager.get_published_version()


@pytest.fixture
def app(engine):
    cfg = AppConfig(
        database=DatabaseConfig(dsn=DB_URL),
        lineage=LineageConfig(),
        api=ApiConfig(),
    )
    return create_app(cfg)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def api(client) -> VersionApiClient:
    return VersionApiClient(client, actor="editor@example.com")


@pytest.fixture
def mirror(api) -> ClientMirror:
    return ClientMirror(api)


def step_orders(detail, step_number: int = 1) -> list[int]:
    return sorted(q.order for q in detail.questions if q.step_number == step_number)


def step_texts(detail, step_number: int = 1) -> list[str]:
    in_step = [q for q in detail.questions if q.step_number == step_number]
    return [q.question_text for q in sorted(in_step, key=lambda q: q.order)]


@pytest.fixture
def orders_of():
    return step_orders


@pytest.fixture
def texts_of():
    return step_texts
