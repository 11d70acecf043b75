from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.records import RecordKind
from ..search.smart_search import DEFAULT_LIMIT as DEFAULT_SEARCH_LIMIT

"""Configuration loading for the pharmadist CLI.

Responsibilities:
- Load YAML (default: config/pharmadist.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults for every optional section
- Resolve the PostgreSQL DSN: environment first, YAML as fallback
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/pharmadist.yml")

DEFAULT_CHUNK_SIZE = 500

# products and parties indexes of the ERP schema
DEFAULT_SEARCH_FIELDS: dict[str, list[str]] = {
    "products": ["name", "manufacturer", "batch", "hsn"],
    "parties": ["name", "gstin", "phone"],
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportSettings:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    keep_na_strings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchSettings:
    default_limit: int = DEFAULT_SEARCH_LIMIT
    min_chars: int = 1


@dataclass(frozen=True)
class TableConfig:
    kind: RecordKind
    table: str
    search_fields: list[str]


@dataclass(frozen=True)
class AppConfig:
    tables: dict[str, TableConfig]  # "products" / "parties"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    import_settings: ImportSettings = field(default_factory=ImportSettings)
    search: SearchSettings = field(default_factory=SearchSettings)

    def table_for(self, kind: RecordKind) -> TableConfig:
        try:
            return self.tables[kind.table_key]
        except KeyError:
            raise ConfigError(f"no table configured for {kind.table_key}") from None


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_config(data: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from already-loaded YAML data."""
    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    imp_raw = data.get("import") or {}
    import_settings = ImportSettings(
        chunk_size=imp_raw.get("chunk_size", DEFAULT_CHUNK_SIZE),
        keep_na_strings=list(imp_raw.get("keep_na_strings", [])),
    )

    search_raw = data.get("search") or {}
    search = SearchSettings(
        default_limit=search_raw.get("default_limit", DEFAULT_SEARCH_LIMIT),
        min_chars=search_raw.get("min_chars", 1),
    )

    tables: dict[str, TableConfig] = {}
    for key, raw in data["tables"].items():
        tables[key] = TableConfig(
            kind=RecordKind.from_table_key(key),
            table=raw["table"],
            search_fields=list(raw.get("search_fields") or DEFAULT_SEARCH_FIELDS[key]),
        )

    return AppConfig(tables=tables, database=db, import_settings=import_settings, search=search)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return parse_config(data)


def resolve_dsn(db: DatabaseConfig, environ: Mapping[str, str] | None = None) -> str:
    """Resolve the libpq connection string.

    Order:
        1. DATABASE_URL / PGDSN (full DSN)
        2. database.dsn from the config
        3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling
           back to the matching config key, then to libpq-ish defaults
    """
    env = os.environ if environ is None else environ
    dsn = env.get("DATABASE_URL") or env.get("PGDSN") or db.dsn
    if dsn:
        return dsn

    host = env.get("PGHOST", db.host or "localhost")
    port = env.get("PGPORT", str(db.port) if db.port else "5432")
    user = env.get("PGUSER", db.user or "postgres")
    password = env.get("PGPASSWORD", db.password or "")
    database = env.get("PGDATABASE", db.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn
