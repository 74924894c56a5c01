from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pizza_service.errors import AlreadyExists, UnableToDelete, UnknownUser
from pizza_service.models import Role, User

from .common import get_id, insert_returning_id


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def get_franchise_admins(conn: Any, franchise_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        """
        SELECT u.id, u.name, u.email
        FROM user_role AS ur
        JOIN users AS u ON u.id = ur.user_id
        WHERE ur.object_id=? AND ur.role=?
        ORDER BY ur.id
        """,
        (int(franchise_id), Role.FRANCHISEE.value),
    ).fetchall()
    return [dict(r) for r in rows]


def get_franchise_stores(conn: Any, franchise_id: int, *, with_revenue: bool) -> List[Dict[str, Any]]:
    if not with_revenue:
        rows = conn.execute(
            "SELECT id, name FROM store WHERE franchise_id=? ORDER BY id",
            (int(franchise_id),),
        ).fetchall()
        return [dict(r) for r in rows]

    rows = conn.execute(
        """
        SELECT s.id, s.name, COALESCE(SUM(oi.price), 0) AS total_revenue
        FROM store AS s
        LEFT JOIN diner_order AS o ON o.store_id = s.id
        LEFT JOIN order_item AS oi ON oi.order_id = o.id
        WHERE s.franchise_id=?
        GROUP BY s.id, s.name
        ORDER BY s.id
        """,
        (int(franchise_id),),
    ).fetchall()
    return [{**dict(r), "total_revenue": float(r["total_revenue"])} for r in rows]


def get_franchise(conn: Any, franchise_id: int) -> Optional[Dict[str, Any]]:
    """Full franchise detail: admins plus stores with their revenue."""
    row = conn.execute("SELECT id, name FROM franchise WHERE id=?", (int(franchise_id),)).fetchone()
    if row is None:
        return None
    franchise = dict(row)
    franchise["admins"] = get_franchise_admins(conn, franchise["id"])
    franchise["stores"] = get_franchise_stores(conn, franchise["id"], with_revenue=True)
    return franchise


def create_franchise(conn: Any, franchise: Dict[str, Any]) -> Dict[str, Any]:
    """Create a franchise and make each listed admin (looked up by email) a franchisee of it.

    Every admin email is resolved before the franchise row is written; an unknown
    email raises UnknownUser and nothing is persisted.
    """
    admins: List[Dict[str, Any]] = []
    for admin in franchise.get("admins") or []:
        email = str(admin.get("email") or "").strip().lower()
        row = conn.execute("SELECT id, name, email FROM users WHERE email=?", (email,)).fetchone()
        if row is None:
            raise UnknownUser(f"unknown user for franchise admin {email} provided")
        admins.append(dict(row))

    name = str(franchise["name"])
    if conn.execute("SELECT 1 FROM franchise WHERE name=?", (name,)).fetchone() is not None:
        raise AlreadyExists("franchise name already exists")

    franchise_id = insert_returning_id(conn, "INSERT INTO franchise (name) VALUES (?) RETURNING id", (name,))
    for admin in admins:
        conn.execute(
            "INSERT INTO user_role (user_id, role, object_id) VALUES (?, ?, ?)",
            (int(admin["id"]), Role.FRANCHISEE.value, franchise_id),
        )

    return {"id": franchise_id, "name": name, "admins": admins, "stores": []}


def delete_franchise(conn: Any, franchise_id: int) -> None:
    """Delete a franchise, its stores and its franchisee role rows in one transaction.

    Orders placed at the franchise's stores are not unlinked or deleted:
    diner order history is immutable (see DESIGN.md, open question decisions).
    """
    fid = int(franchise_id)
    try:
        conn.execute("DELETE FROM user_role WHERE role=? AND object_id=?", (Role.FRANCHISEE.value, fid))
        conn.execute("DELETE FROM store WHERE franchise_id=?", (fid,))
        conn.execute("DELETE FROM franchise WHERE id=?", (fid,))
        conn.commit()
    except Exception as e:
        conn.rollback()
        _debug(f"delete_franchise({fid}) rolled back: {e}")
        raise UnableToDelete("unable to delete franchise") from e


def get_franchises(
    conn: Any,
    user: Optional[User],
    *,
    page: int = 0,
    limit: int = 10,
    name_filter: str = "*",
) -> Tuple[List[Dict[str, Any]], bool]:
    """Page through franchises whose name matches `name_filter` (`*` is a wildcard).

    Fetches one extra row to tell whether another page exists. Admins get full
    detail per franchise; everyone else gets store names only.
    """
    limit = max(1, int(limit))
    offset = max(0, int(page)) * limit
    pattern = (name_filter or "*").replace("*", "%")

    rows = conn.execute(
        "SELECT id, name FROM franchise WHERE name LIKE ? ORDER BY id LIMIT ? OFFSET ?",
        (pattern, limit + 1, offset),
    ).fetchall()
    franchises = [dict(r) for r in rows]
    more = len(franchises) > limit
    if more:
        franchises = franchises[:limit]

    detailed = user is not None and user.is_role(Role.ADMIN)
    for franchise in franchises:
        if detailed:
            franchise["admins"] = get_franchise_admins(conn, franchise["id"])
            franchise["stores"] = get_franchise_stores(conn, franchise["id"], with_revenue=True)
        else:
            franchise["stores"] = get_franchise_stores(conn, franchise["id"], with_revenue=False)

    return franchises, more


def get_user_franchises(conn: Any, user_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT object_id FROM user_role WHERE role=? AND user_id=? ORDER BY object_id",
        (Role.FRANCHISEE.value, int(user_id)),
    ).fetchall()
    franchise_ids = sorted({int(r["object_id"]) for r in rows if r["object_id"] is not None})
    if not franchise_ids:
        return []

    out: List[Dict[str, Any]] = []
    for fid in franchise_ids:
        franchise = get_franchise(conn, fid)
        if franchise is not None:
            out.append(franchise)
    return out


def create_store(conn: Any, franchise_id: int, store: Dict[str, Any]) -> Dict[str, Any]:
    fid = get_id(conn, "id", int(franchise_id), "franchise")
    store_id = insert_returning_id(
        conn,
        "INSERT INTO store (franchise_id, name) VALUES (?, ?) RETURNING id",
        (fid, str(store["name"])),
    )
    return {"id": store_id, "franchise_id": fid, "name": str(store["name"])}


def delete_store(conn: Any, franchise_id: int, store_id: int) -> None:
    conn.execute(
        "DELETE FROM store WHERE franchise_id=? AND id=?",
        (int(franchise_id), int(store_id)),
    )
