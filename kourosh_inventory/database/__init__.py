# database/__init__.py
from __future__ import annotations

from pathlib import Path
import logging
import sqlite3

from .. import config
from . import schema as schema_module
from .transaction import immediate_tx
from .versioning import ensure_version

_log = logging.getLogger(__name__)


def get_connection(
    db_path: str | Path | None = None,
    *,
    timeout: float | None = None,
) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection with:
      - WAL mode (file databases)
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
      - isolation_level=None: transactions are opened explicitly with
        immediate_tx(), never implicitly by the driver
    Ensures the schema is applied and versioned idempotently.

    Build one per thread/request and hand it to the repositories; there is
    no module-level connection.
    """
    path = Path(db_path) if db_path is not None else config.DB_PATH
    in_memory = str(path) == ":memory:"
    if not in_memory:
        path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(
        str(path),
        timeout=timeout if timeout is not None else config.DB_TIMEOUT,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if not in_memory:
        conn.execute("PRAGMA journal_mode = WAL;")

    schema_module.init_schema(conn)
    with immediate_tx(conn):
        version = ensure_version(conn)
    _log.debug("connection ready: %s (schema %s)", path, version)
    return conn


__all__ = [
    "get_connection",
    "immediate_tx",
]
