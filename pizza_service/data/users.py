from __future__ import annotations

from typing import Any, List, Optional, Sequence

from pizza_service.auth.security import hash_password, verify_password
from pizza_service.errors import AlreadyExists, UnknownUser
from pizza_service.models import Role, RoleAssignment, User

from .common import get_id, insert_returning_id


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_roles(conn: Any, user_id: int) -> List[RoleAssignment]:
    rows = conn.execute(
        "SELECT role, object_id FROM user_role WHERE user_id=? ORDER BY id",
        (int(user_id),),
    ).fetchall()
    return [RoleAssignment.from_row(r) for r in rows]


def _to_user(conn: Any, row: Any) -> User:
    return User(
        id=int(row["id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        roles=get_roles(conn, int(row["id"])),
    )


def _insert_role(conn: Any, user_id: int, assignment: RoleAssignment) -> None:
    object_id = assignment.object_id
    if assignment.role is Role.FRANCHISEE:
        # The franchise has to exist before anyone can administer it.
        object_id = get_id(conn, "id", int(assignment.object_id), "franchise")
    conn.execute(
        "INSERT INTO user_role (user_id, role, object_id) VALUES (?, ?, ?)",
        (int(user_id), assignment.role.value, object_id),
    )


def add_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password: str,
    roles: Optional[Sequence[RoleAssignment]] = None,
) -> User:
    """Create a user and its role rows. Users without roles become diners."""
    e = normalize_email(email)
    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise AlreadyExists("email already registered")

    user_id = insert_returning_id(
        conn,
        "INSERT INTO users (name, email, password) VALUES (?, ?, ?) RETURNING id",
        (name, e, hash_password(password)),
    )
    assignments = list(roles or []) or [RoleAssignment.diner()]
    for assignment in assignments:
        _insert_role(conn, user_id, assignment)

    return User(id=user_id, name=name, email=e, roles=assignments)


def get_user_by_id(conn: Any, user_id: int) -> Optional[User]:
    row = conn.execute(
        "SELECT id, name, email FROM users WHERE id=?",
        (int(user_id),),
    ).fetchone()
    if row is None:
        return None
    return _to_user(conn, row)


def get_user(conn: Any, email: str, password: str) -> User:
    """Authenticate by email and password.

    Unknown email and wrong password both raise UnknownUser.
    """
    row = conn.execute(
        "SELECT id, name, email, password FROM users WHERE email=?",
        (normalize_email(email),),
    ).fetchone()
    if row is None or not verify_password(password, str(row["password"])):
        raise UnknownUser()
    return _to_user(conn, row)


def update_user(
    conn: Any,
    user_id: int,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """Update only the supplied fields, then re-read the user.

    None and blank strings both mean "leave unchanged".
    """
    # Build dynamic SQL so we only touch provided fields.
    fields: list[tuple[str, Any]] = []
    if name and name.strip():
        fields.append(("name", name))
    if email and email.strip():
        e = normalize_email(email)
        taken = conn.execute("SELECT 1 FROM users WHERE email=? AND id<>?", (e, int(user_id))).fetchone()
        if taken is not None:
            raise AlreadyExists("email already registered")
        fields.append(("email", e))
    if password:
        fields.append(("password", hash_password(password)))

    if fields:
        sets = ", ".join([f"{k}=?" for k, _ in fields])
        params = [v for _, v in fields] + [int(user_id)]
        conn.execute(f"UPDATE users SET {sets} WHERE id=?", params)

    user = get_user_by_id(conn, user_id)
    if user is None:
        raise UnknownUser()
    return user


def count_users(conn: Any) -> int:
    row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
    return int(row["n"])
