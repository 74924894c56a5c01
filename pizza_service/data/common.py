from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Sequence

from pizza_service.errors import NoIdFound


# Identifiers get_id may interpolate. Values are always bound as parameters.
_LOOKUP_COLUMNS: Dict[str, FrozenSet[str]] = {
    "users": frozenset({"id", "email"}),
    "menu": frozenset({"id", "title"}),
    "franchise": frozenset({"id", "name"}),
    "store": frozenset({"id", "name"}),
}


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def get_id(conn: Any, column: str, value: Any, table: str) -> int:
    """Resolve the id of the first row in `table` whose `column` equals `value`.

    Raises NoIdFound when nothing matches.
    """
    allowed = _LOOKUP_COLUMNS.get(table)
    if allowed is None or column not in allowed:
        raise ValueError(f"lookup_not_allowed: {table}.{column}")

    row = conn.execute(
        f"SELECT id FROM {table} WHERE {column}=? ORDER BY id LIMIT 1",
        (value,),
    ).fetchone()
    if row is None:
        raise NoIdFound()
    return int(row["id"])


def insert_returning_id(conn: Any, sql: str, params: Sequence[Any]) -> int:
    """Run an INSERT ... RETURNING id statement and return the new id."""
    rows = conn.execute(sql, params).fetchall()
    return int(rows[0]["id"])


def get_offset(current_page: int, list_per_page: int) -> int:
    """Row offset of a 1-based page."""
    page = max(1, int(current_page or 1))
    return (page - 1) * int(list_per_page)
