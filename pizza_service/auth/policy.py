"""Authorization decisions.

Everything here is pure: no I/O, no database access. Route handlers ask for a
`Grant` before calling a data-access operation that mutates or reveals
protected data, and the data-access layer checks that the grant covers the
exact operation (and object) it is about to touch. A call site that forgets to
authorize therefore has no grant to pass, instead of silently succeeding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from pizza_service.errors import Unauthorized
from pizza_service.models import Role, User


# Actions a grant can cover
ADD_MENU_ITEM = "add_menu_item"
CREATE_FRANCHISE = "create_franchise"
DELETE_FRANCHISE = "delete_franchise"
MANAGE_STORES = "manage_stores"
UPDATE_USER = "update_user"
VIEW_USER_FRANCHISES = "view_user_franchises"

_ADMIN_ACTIONS = frozenset({ADD_MENU_ITEM, CREATE_FRANCHISE, DELETE_FRANCHISE})

_GRANT_KEY = object()


@dataclass(frozen=True)
class Grant:
    """Proof that `user_id` was authorized for `action` on `object_id`.

    object_id None means the grant is not tied to a single object.
    """

    action: str
    user_id: int
    object_id: Optional[int] = None
    _key: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._key is not _GRANT_KEY:
            raise TypeError("grants are issued by pizza_service.auth.policy only")

    def check(self, action: str, object_id: Optional[int] = None) -> None:
        if self.action != action:
            raise Unauthorized()
        if self.object_id is not None and (object_id is None or int(object_id) != self.object_id):
            raise Unauthorized()


def _issue(action: str, user: User, object_id: Optional[int] = None) -> Grant:
    return Grant(action, int(user.id), None if object_id is None else int(object_id), _GRANT_KEY)


def _admin_ids(franchise: Dict[str, Any]) -> Iterable[int]:
    for admin in franchise.get("admins") or []:
        if admin.get("id") is not None:
            yield int(admin["id"])


# -----------------------------
# Decisions
# -----------------------------


def can_view_all_franchise_detail(user: Optional[User]) -> bool:
    return user is not None and user.is_role(Role.ADMIN)


def can_manage_franchise(user: Optional[User], franchise: Dict[str, Any]) -> bool:
    """Admins manage every franchise; franchisees only the ones listing them as admin."""
    if user is None:
        return False
    if user.is_role(Role.ADMIN):
        return True
    # Only the target franchise's own admin list counts; a franchisee of
    # another franchise gets nothing here.
    return int(user.id) in set(_admin_ids(franchise))


def can_access_user_franchises(requester: Optional[User], target_user_id: int) -> bool:
    if requester is None:
        return False
    return int(requester.id) == int(target_user_id) or requester.is_role(Role.ADMIN)


def can_update_user(requester: Optional[User], target_user_id: int) -> bool:
    """True when requester is the target or an admin; otherwise raises Unauthorized."""
    if requester is not None and (int(requester.id) == int(target_user_id) or requester.is_role(Role.ADMIN)):
        return True
    raise Unauthorized("unauthorized")


# -----------------------------
# Grants
# -----------------------------


def grant_admin(user: Optional[User], action: str, *, message: str = "unauthorized") -> Grant:
    if action not in _ADMIN_ACTIONS:
        raise ValueError(f"not_an_admin_action: {action}")
    if not can_view_all_franchise_detail(user):
        raise Unauthorized(message)
    assert user is not None
    return _issue(action, user)


def grant_user_update(requester: Optional[User], target_user_id: int) -> Grant:
    can_update_user(requester, target_user_id)
    assert requester is not None
    return _issue(UPDATE_USER, requester, target_user_id)


def grant_user_franchises(requester: Optional[User], target_user_id: int) -> Grant:
    if not can_access_user_franchises(requester, target_user_id):
        raise Unauthorized()
    assert requester is not None
    return _issue(VIEW_USER_FRANCHISES, requester, target_user_id)


def grant_store_management(
    user: Optional[User], franchise: Dict[str, Any], *, message: str = "unauthorized"
) -> Grant:
    if not can_manage_franchise(user, franchise):
        raise Unauthorized(message)
    assert user is not None
    return _issue(MANAGE_STORES, user, int(franchise["id"]))
