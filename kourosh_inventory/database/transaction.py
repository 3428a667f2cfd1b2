from __future__ import annotations

from contextlib import contextmanager
import itertools
import logging
import sqlite3
from typing import Iterator

_log = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


@contextmanager
def immediate_tx(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Start an IMMEDIATE transaction (write lock taken up front, so reads done
    inside see the latest committed state and no other writer can slip in
    before our write), commit on success, rollback on error.

    When the connection is already inside a transaction (an outer
    orchestrator, or a test that opened one), nest through a SAVEPOINT
    instead so the outer owner keeps control of the final commit.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
            conn.execute(f"RELEASE SAVEPOINT {name}")
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        _log.debug("rolling back transaction")
        conn.execute("ROLLBACK")
        raise
