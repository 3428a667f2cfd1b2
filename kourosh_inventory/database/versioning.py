import sqlite3
from ..constants import TABLE_SCHEMA_VERSION, SCHEMA_VERSION


def _ensure_table(conn: sqlite3.Connection):
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)


def get_current_version(conn: sqlite3.Connection) -> str | None:
    _ensure_table(conn)
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row["version"] if row else None


def set_current_version(conn: sqlite3.Connection, version: str = SCHEMA_VERSION):
    _ensure_table(conn)
    conn.execute(
        f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?) "
        f"ON CONFLICT(id) DO UPDATE SET version=excluded.version;",
        (version,),
    )


def ensure_version(conn: sqlite3.Connection) -> str:
    """Stamp a fresh database with SCHEMA_VERSION; leave existing stamps alone."""
    current = get_current_version(conn)
    if current is None:
        set_current_version(conn, SCHEMA_VERSION)
        return SCHEMA_VERSION
    return current
