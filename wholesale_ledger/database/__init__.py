# database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..constants import SCHEMA_VERSION
from . import schema as schema_module
from .transactions import immediate_tx
from .versioning import get_current_version, set_current_version


def configure(conn: sqlite3.Connection) -> sqlite3.Connection:
    """Row factory + FK enforcement; shared by file-backed and in-memory connections."""
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures schema, counters and the schema version row are applied idempotently.
    """
    if db_path is None:
        from ..config import DB_PATH
        db_path = DB_PATH
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = configure(sqlite3.connect(db_path))
    conn.execute("PRAGMA journal_mode = WAL;")
    schema_module.apply_schema(conn)

    if get_current_version(conn) is None:
        set_current_version(conn, SCHEMA_VERSION)
    return conn


def memory_connection() -> sqlite3.Connection:
    """In-memory database with the full schema applied (tests, previews)."""
    conn = configure(sqlite3.connect(":memory:"))
    schema_module.apply_schema(conn)
    set_current_version(conn, SCHEMA_VERSION)
    return conn


__all__ = [
    "configure",
    "get_connection",
    "memory_connection",
    "immediate_tx",
]
