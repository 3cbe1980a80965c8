from __future__ import annotations

import itertools
import sqlite3
from contextlib import contextmanager

_savepoint_ids = itertools.count(1)


@contextmanager
def immediate_tx(conn: sqlite3.Connection):
    """
    Start an IMMEDIATE transaction (write lock taken up front), commit on
    success, rollback on error.

    When the connection is already inside a transaction the block runs under
    a SAVEPOINT instead, so repository writes compose into the caller's
    transaction and only the outermost block commits.
    """
    if conn.in_transaction:
        name = f"sp_{next(_savepoint_ids)}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except Exception:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    cur = conn.cursor()
    try:
        cur.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
