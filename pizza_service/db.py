from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Sequence
from urllib.parse import urlparse

from pizza_service.schema import get_table_create_statements


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def dialect_for(dsn: str) -> str:
    """'postgres' for postgres:// or postgresql:// URLs, 'sqlite' for everything else."""
    s = (dsn or "").strip()
    if "://" in s and urlparse(s).scheme.lower() in ("postgres", "postgresql"):
        return "postgres"
    return "sqlite"


def qmark_to_format(sql: str) -> str:
    """Rewrite ? placeholders as %s, leaving quoted literals untouched.

    Doubled quotes ('' or "") toggle the state twice, so they need no special case.
    """
    out: List[str] = []
    quote: str | None = None
    for ch in sql:
        if quote is None:
            if ch in ("'", '"'):
                quote = ch
            elif ch == "?":
                out.append("%s")
                continue
        elif ch == quote:
            quote = None
        out.append(ch)
    return "".join(out)


class SQLiteConnection(sqlite3.Connection):
    dialect = "sqlite"


class PostgresConnection:
    """psycopg2 connection exposing the slice of the sqlite3 API the DAL uses.

    `execute` returns the psycopg2 cursor itself; with RealDictCursor its rows
    are dicts, which is all callers rely on.
    """

    dialect = "postgres"

    def __init__(self, raw: Any):
        self.raw = raw

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        cur = self.raw.cursor()
        cur.execute(qmark_to_format(sql), tuple(params or ()))
        return cur

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    def close(self) -> None:
        self.raw.close()


def _open_postgres(dsn: str) -> PostgresConnection:
    try:
        import psycopg2
        import psycopg2.extras
    except ImportError as e:
        raise RuntimeError("DATABASE_URL points at Postgres; install jwt-pizza-service[postgres]") from e
    return PostgresConnection(psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor))


def _open_sqlite(dsn: str) -> SQLiteConnection:
    path = dsn[len("sqlite:///") :] if dsn.lower().startswith("sqlite:///") else dsn
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=30, check_same_thread=False, factory=SQLiteConnection)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """One connection per unit of work.

    The block's writes are committed when it exits normally and rolled back
    when it raises; the connection is closed either way.
    """
    dsn = (db_dsn or "").strip()
    conn: Any = _open_postgres(dsn) if dialect_for(dsn) == "postgres" else _open_sqlite(dsn)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


_SCHEMA_PROBE = {
    "sqlite": "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'users'",
    "postgres": (
        "SELECT 1 FROM information_schema.tables "
        "WHERE table_schema = current_schema() AND table_name = 'users'"
    ),
}


def schema_exists(conn: Any) -> bool:
    """The schema counts as present once the users table exists."""
    dialect = getattr(conn, "dialect", "sqlite")
    return conn.execute(_SCHEMA_PROBE[dialect]).fetchone() is not None


def init_db(db_dsn: str) -> bool:
    """Create the schema if it is missing.

    Returns True when tables were created, False when the schema already existed.
    Errors propagate; a service without a schema should not start.
    """
    dialect = dialect_for(db_dsn)
    with connect(db_dsn) as conn:
        if schema_exists(conn):
            _debug(f"schema present ({dialect})")
            return False

        _debug(f"creating {dialect} schema at {db_dsn}")
        for stmt in get_table_create_statements(dialect):
            conn.execute(stmt)
    return True
