"""Database schema for the pizza service.

The schema is a fixed, ordered list of CREATE statements. Order matters:
every table is created after the tables its foreign keys point at.

Postgres DDL is derived from the SQLite DDL with a small set of
transformations (types + autoincrement).
"""

from __future__ import annotations

import re
from typing import List


TABLE_CREATE_STATEMENTS_SQLITE: List[str] = [
    # Accounts. Passwords are stored as passlib hashes only.
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS menu (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        image TEXT NOT NULL,
        price REAL NOT NULL,
        description TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS franchise (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        franchise_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        FOREIGN KEY (franchise_id) REFERENCES franchise(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_store_franchise ON store (franchise_id)",
    # object_id is the franchise id for franchisee rows, NULL otherwise.
    """
    CREATE TABLE IF NOT EXISTS user_role (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        role TEXT NOT NULL CHECK (role IN ('diner','franchisee','admin')),
        object_id INTEGER,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_role_user ON user_role (user_id, role)",
    "CREATE INDEX IF NOT EXISTS idx_user_role_object ON user_role (object_id, role)",
    """
    CREATE TABLE IF NOT EXISTS diner_order (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        diner_id INTEGER NOT NULL,
        franchise_id INTEGER NOT NULL,
        store_id INTEGER NOT NULL,
        date TEXT NOT NULL,
        FOREIGN KEY (diner_id) REFERENCES users(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_diner_order_diner ON diner_order (diner_id)",
    # description/price are snapshots taken when the order was placed.
    """
    CREATE TABLE IF NOT EXISTS order_item (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL,
        menu_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        price REAL NOT NULL,
        FOREIGN KEY (order_id) REFERENCES diner_order(id),
        FOREIGN KEY (menu_id) REFERENCES menu(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_order_item_order ON order_item (order_id)",
    # Sessions: keyed by the JWT signature segment.
    """
    CREATE TABLE IF NOT EXISTS auth (
        token TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_auth_user ON auth (user_id)",
]


def _sqlite_to_postgres(ddl: str) -> str:
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", ddl)
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        out,
        flags=re.IGNORECASE,
    )
    return out


TABLE_CREATE_STATEMENTS_POSTGRES: List[str] = [_sqlite_to_postgres(s) for s in TABLE_CREATE_STATEMENTS_SQLITE]


def get_table_create_statements(dialect: str) -> List[str]:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return list(TABLE_CREATE_STATEMENTS_POSTGRES)
    return list(TABLE_CREATE_STATEMENTS_SQLITE)
