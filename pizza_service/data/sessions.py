"""Session rows: one per issued token, keyed by the token's signature segment."""

from __future__ import annotations

from typing import Any

from pizza_service.auth.security import get_token_signature


def login_user(conn: Any, user_id: int, token: str) -> None:
    signature = get_token_signature(token)
    conn.execute(
        """
        INSERT INTO auth (token, user_id) VALUES (?, ?)
        ON CONFLICT(token) DO UPDATE SET user_id=excluded.user_id
        """,
        (signature, int(user_id)),
    )


def is_logged_in(conn: Any, token: str) -> bool:
    signature = get_token_signature(token)
    if not signature:
        return False
    row = conn.execute("SELECT user_id FROM auth WHERE token=?", (signature,)).fetchone()
    return row is not None


def logout_user(conn: Any, token: str) -> None:
    conn.execute("DELETE FROM auth WHERE token=?", (get_token_signature(token),))
