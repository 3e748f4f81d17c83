"""Configuration loading: precedence and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from questionnaire_versions.config import DEFAULT_STEPS, LineageConfig, load_config

ENV_KEYS = (
    "DATABASE_URL",
    "AUTO_CREATE_SCHEMA",
    "QUESTIONNAIRE_LINEAGE",
    "DEFAULT_ACTOR",
    "API_PREFIX",
    "CORS_ORIGINS",
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults_without_any_source(workdir):
    cfg = load_config()

    assert cfg.database.dsn == "sqlite+pysqlite:///:memory:"
    assert cfg.database.auto_create_schema is True
    assert cfg.lineage.key == "default"
    assert cfg.lineage.default_actor == "system"
    assert [s.step_number for s in cfg.lineage.default_steps] == [1, 2, 3, 4, 5]
    assert cfg.api.prefix == "/api/v1"
    assert cfg.api.cors_origins == ["*"]


def test_json_file_is_the_base(workdir):
    (workdir / "versions_config.json").write_text(
        json.dumps(
            {
                "database": {"dsn": "sqlite:///file.db", "auto_create_schema": False},
                "lineage": {
                    "key": "business-plan",
                    "default_steps": [
                        {"step_number": 2, "title_fr": "Deux"},
                        {"step_number": 1, "title_fr": "Un"},
                    ],
                },
                "api": {"prefix": "/api/v2/", "cors_origins": ["https://admin.example.com"]},
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config()

    assert cfg.database.dsn == "sqlite:///file.db"
    assert cfg.database.auto_create_schema is False
    assert cfg.lineage.key == "business-plan"
    assert [s.title_fr for s in cfg.lineage.default_steps] == ["Un", "Deux"]
    assert cfg.api.prefix == "/api/v2"
    assert cfg.api.cors_origins == ["https://admin.example.com"]


def test_text_files_override_json_and_env_overrides_both(workdir, monkeypatch):
    (workdir / "versions_config.json").write_text(json.dumps({"lineage": {"key": "from-json"}}), encoding="utf-8")
    (workdir / "config").mkdir()
    (workdir / "config" / "lineage.key").write_text("from-file\n", encoding="utf-8")
    (workdir / "config" / "lineage.default_actor").write_text("file-actor", encoding="utf-8")

    assert load_config().lineage.key == "from-file"

    monkeypatch.setenv("QUESTIONNAIRE_LINEAGE", "from-env")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    cfg = load_config()

    assert cfg.lineage.key == "from-env"
    assert cfg.lineage.default_actor == "file-actor"
    assert cfg.api.cors_origins == ["https://a.example", "https://b.example"]


def test_invalid_prefix_is_rejected(workdir, monkeypatch):
    monkeypatch.setenv("API_PREFIX", "api")

    with pytest.raises(PydanticValidationError):
        load_config()


def test_default_steps_must_be_contiguous():
    with pytest.raises(PydanticValidationError):
        LineageConfig(default_steps=[DEFAULT_STEPS[0], DEFAULT_STEPS[2]])
