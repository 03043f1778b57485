from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, Union

from .errors import ImportExecutionError

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS class (
        cl_id INTEGER PRIMARY KEY,
        cl_name VARCHAR(128) NOT NULL,
        cl_higher INTEGER REFERENCES class(cl_id),
        cl_level INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS system (
        sy_id INTEGER PRIMARY KEY,
        sy_name VARCHAR(128) NOT NULL,
        sy_higher INTEGER REFERENCES system(sy_id),
        sy_level INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS property (
        pr_id INTEGER PRIMARY KEY,
        pr_name VARCHAR(64) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS property_value (
        pv_id INTEGER PRIMARY KEY,
        pv_name VARCHAR(128) NOT NULL,
        pv_property INTEGER NOT NULL REFERENCES property(pr_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS molecule (
        mo_id INTEGER PRIMARY KEY,
        mo_dci VARCHAR(128) NOT NULL,
        mo_skeletal_formula VARCHAR(64) NOT NULL DEFAULT '',
        mo_ntr INTEGER NOT NULL DEFAULT 0,
        mo_difficulty VARCHAR(8) NOT NULL DEFAULT 'EASY',
        mo_system INTEGER REFERENCES system(sy_id),
        mo_class INTEGER REFERENCES class(cl_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS molecule_property (
        mo_id INTEGER NOT NULL REFERENCES molecule(mo_id),
        pv_id INTEGER NOT NULL REFERENCES property_value(pv_id),
        PRIMARY KEY (mo_id, pv_id)
    )
    """,
)


def connect(db_path: Union[str, Path]) -> sqlite3.Connection:
    """Open the target database in autocommit mode; transactions come from the script itself."""

    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.isolation_level = None
    return conn


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create the six molecule tables when they do not exist yet."""

    cur = conn.cursor()
    for statement in SCHEMA_STATEMENTS:
        cur.execute(statement)
    cur.close()


def execute_statements(conn: sqlite3.Connection, statements: Iterable[str]) -> int:
    """Run an import script statement by statement, rolling back everything on failure.

    Returns the number of statements executed.
    """

    executed = 0
    cur = conn.cursor()
    try:
        for statement in statements:
            cur.execute(statement)
            executed += 1
    except sqlite3.Error as exc:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logging.error(
            f"Import script failed after {executed} statements, changes rolled back",
            extra={"executed": executed, "error": str(exc)},
        )
        raise ImportExecutionError(f"Import script failed at statement {executed + 1}: {exc}") from exc
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        cur.close()

    logging.info("Import script executed", extra={"statements": executed})
    return executed
