"""Idempotent, additive schema migrations run after ``create_all``."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

# Columns added after the first release, per table. ``create_all`` never alters
# an existing table so older databases pick these up here.
ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "assets": {
        "status": "VARCHAR(16) DEFAULT 'HOLDING' NOT NULL",
        "department": "VARCHAR(255)",
        "deleted_at": "TIMESTAMP",
    },
    "asset_history": {
        "details": "JSON",
    },
    "settings": {
        "depreciation_settings": "JSON",
    },
    "tenant_configs": {
        "label_format": "VARCHAR(100) DEFAULT '{prefix}-{type}-{number}' NOT NULL",
    },
}

INDEXES: list[tuple[str, str, tuple[str, ...], bool]] = [
    ("assets", "ix_assets_type_state", ("type", "state"), False),
    ("asset_history", "ix_asset_history_asset_timestamp", ("asset_id", "timestamp"), False),
]


def _column_names(engine: Engine, table: str) -> set[str]:
    inspector = inspect(engine)
    if not inspector.has_table(table):
        return set()
    return {column["name"] for column in inspector.get_columns(table)}


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> None:
    """Bring an existing schema up to date with the models."""

    for table, needed in ADDITIVE_COLUMNS.items():
        existing = _column_names(engine, table)
        if not existing:
            # Table absent; create_all builds it fresh.
            continue
        for name, dtype in needed.items():
            if name not in existing:
                _add_column(engine, table, f"{name} {dtype}")

    for table, name, cols, unique in INDEXES:
        if _column_names(engine, table):
            _create_index_if_not_exists(engine, table, name, cols, unique)
