"""Configuration utilities for the Questionnaire Version Service.

This module loads application configuration with the following rules:
- Primary source: `versions_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_VERSIONS_CONFIG = Path("versions_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str
    auto_create_schema: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class StepDefinition(BaseModel):
    step_number: int = Field(ge=1)
    title_fr: str
    title_en: Optional[str] = None
    description_fr: Optional[str] = None
    description_en: Optional[str] = None

    @field_validator("title_fr")
    @classmethod
    def title_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("step title_fr must be a non-empty string")
        return v


DEFAULT_STEPS: List[StepDefinition] = [
    StepDefinition(step_number=1, title_fr="Vision et mission", title_en="Vision & Mission"),
    StepDefinition(step_number=2, title_fr="Marché et clients", title_en="Market & Customers"),
    StepDefinition(step_number=3, title_fr="Produits et services", title_en="Products & Services"),
    StepDefinition(step_number=4, title_fr="Stratégie et opérations", title_en="Strategy & Operations"),
    StepDefinition(step_number=5, title_fr="Finances et croissance", title_en="Financials & Growth"),
]


class LineageConfig(BaseModel):
    key: str = Field(default="default", min_length=1)
    default_actor: str = Field(default="system", min_length=1)
    default_steps: List[StepDefinition] = Field(default_factory=lambda: list(DEFAULT_STEPS))

    @field_validator("default_steps")
    @classmethod
    def steps_must_be_numbered_from_one(cls, v: List[StepDefinition]) -> List[StepDefinition]:
        numbers = sorted(s.step_number for s in v)
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError("lineage.default_steps must be numbered 1..N without gaps")
        return sorted(v, key=lambda s: s.step_number)


class ApiConfig(BaseModel):
    prefix: str = Field(default="/api/v1")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("prefix")
    @classmethod
    def prefix_must_be_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("api.prefix must start with '/'")
        return v.rstrip("/")


class AppConfig(BaseModel):
    database: DatabaseConfig
    lineage: LineageConfig
    api: ApiConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) versions_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_VERSIONS_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_create_text = _env("AUTO_CREATE_SCHEMA") or _read_config_file("database.auto_create_schema") or _base("database.auto_create_schema", "true")

    # Lineage
    lineage_key = _env("QUESTIONNAIRE_LINEAGE") or _read_config_file("lineage.key") or _base("lineage.key", "default")
    default_actor = _env("DEFAULT_ACTOR") or _read_config_file("lineage.default_actor") or _base("lineage.default_actor", "system")
    steps_raw = (base.get("lineage") or {}).get("default_steps") if isinstance(base.get("lineage"), dict) else None

    # API
    prefix = _env("API_PREFIX") or _read_config_file("api.prefix") or _base("api.prefix", "/api/v1")
    origins_text = _env("CORS_ORIGINS") or _read_config_file("api.cors_origins")
    if origins_text:
        origins = [o.strip() for o in origins_text.split(",") if o.strip()]
    else:
        origins = (base.get("api") or {}).get("cors_origins") or ["*"]

    try:
        lineage_kwargs: dict = {"key": str(lineage_key).strip(), "default_actor": str(default_actor).strip()}
        if steps_raw is not None:
            lineage_kwargs["default_steps"] = steps_raw
        cfg = AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                auto_create_schema=str(auto_create_text).strip().lower() in {"1", "true", "yes"},
            ),
            lineage=LineageConfig(**lineage_kwargs),
            api=ApiConfig(prefix=str(prefix).strip(), cors_origins=list(origins)),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "ApiConfig",
    "DatabaseConfig",
    "LineageConfig",
    "StepDefinition",
    "DEFAULT_STEPS",
    "load_config",
]
