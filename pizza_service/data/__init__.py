"""Data access for the pizza service.

The submodules hold plain functions that take an open connection, the same
way SQL helpers are written throughout this package. `DB` wraps them so that
every public operation runs on its own connection: opened on entry, committed
on success, rolled back on failure and always closed.

Operations that need authorization take a `Grant` from
`pizza_service.auth.policy` and verify it covers the exact operation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pizza_service.auth import policy
from pizza_service.auth.policy import Grant
from pizza_service.auth.security import get_token_signature
from pizza_service.db import connect, init_db
from pizza_service.models import RoleAssignment, User

from . import franchises, menu, orders, sessions, users
from .common import get_id


class DB:
    def __init__(self, db_dsn: str, *, list_per_page: int = 10):
        self.db_dsn = db_dsn
        self.list_per_page = int(list_per_page)

    # -----------------------------
    # Schema
    # -----------------------------

    def initialize_database(self) -> bool:
        return init_db(self.db_dsn)

    def bootstrap_admin_if_needed(self, *, name: str, email: str, password: str) -> Optional[User]:
        """Create the default admin when there are no users at all."""
        with connect(self.db_dsn) as conn:
            if users.count_users(conn) > 0:
                return None
            if not email or not password:
                return None
            admin = users.add_user(
                conn,
                name=name or "admin",
                email=email,
                password=password,
                roles=[RoleAssignment.admin()],
            )
        return admin

    # -----------------------------
    # Menu
    # -----------------------------

    def get_menu(self) -> List[Dict[str, Any]]:
        with connect(self.db_dsn) as conn:
            return menu.get_menu(conn)

    def add_menu_item(self, grant: Grant, item: Dict[str, Any]) -> Dict[str, Any]:
        grant.check(policy.ADD_MENU_ITEM)
        with connect(self.db_dsn) as conn:
            return menu.add_menu_item(conn, item)

    # -----------------------------
    # Users
    # -----------------------------

    def add_user(
        self,
        *,
        name: str,
        email: str,
        password: str,
        roles: Optional[List[RoleAssignment]] = None,
    ) -> User:
        with connect(self.db_dsn) as conn:
            return users.add_user(conn, name=name, email=email, password=password, roles=roles)

    def get_user(self, email: str, password: str) -> User:
        with connect(self.db_dsn) as conn:
            return users.get_user(conn, email, password)

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with connect(self.db_dsn) as conn:
            return users.get_user_by_id(conn, user_id)

    def update_user(
        self,
        grant: Grant,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        grant.check(policy.UPDATE_USER, user_id)
        with connect(self.db_dsn) as conn:
            return users.update_user(conn, user_id, name=name, email=email, password=password)

    # -----------------------------
    # Sessions
    # -----------------------------

    def login_user(self, user_id: int, token: str) -> None:
        with connect(self.db_dsn) as conn:
            sessions.login_user(conn, user_id, token)

    def is_logged_in(self, token: str) -> bool:
        with connect(self.db_dsn) as conn:
            return sessions.is_logged_in(conn, token)

    def logout_user(self, token: str) -> None:
        with connect(self.db_dsn) as conn:
            sessions.logout_user(conn, token)

    get_token_signature = staticmethod(get_token_signature)

    # -----------------------------
    # Orders
    # -----------------------------

    def get_orders(self, user: User, page: int = 1) -> Dict[str, Any]:
        with connect(self.db_dsn) as conn:
            return orders.get_orders(conn, user, page, self.list_per_page)

    def add_diner_order(self, user: User, order: Dict[str, Any]) -> Dict[str, Any]:
        with connect(self.db_dsn) as conn:
            return orders.add_diner_order(conn, user, order)

    # -----------------------------
    # Franchises / stores
    # -----------------------------

    def create_franchise(self, grant: Grant, franchise: Dict[str, Any]) -> Dict[str, Any]:
        grant.check(policy.CREATE_FRANCHISE)
        with connect(self.db_dsn) as conn:
            return franchises.create_franchise(conn, franchise)

    def delete_franchise(self, grant: Grant, franchise_id: int) -> None:
        grant.check(policy.DELETE_FRANCHISE)
        with connect(self.db_dsn) as conn:
            franchises.delete_franchise(conn, franchise_id)

    def get_franchises(
        self,
        user: Optional[User],
        page: int = 0,
        limit: int = 10,
        name_filter: str = "*",
    ) -> Tuple[List[Dict[str, Any]], bool]:
        with connect(self.db_dsn) as conn:
            return franchises.get_franchises(conn, user, page=page, limit=limit, name_filter=name_filter)

    def get_franchise(self, franchise_id: int) -> Optional[Dict[str, Any]]:
        with connect(self.db_dsn) as conn:
            return franchises.get_franchise(conn, franchise_id)

    def get_user_franchises(self, grant: Grant, user_id: int) -> List[Dict[str, Any]]:
        grant.check(policy.VIEW_USER_FRANCHISES, user_id)
        with connect(self.db_dsn) as conn:
            return franchises.get_user_franchises(conn, user_id)

    def create_store(self, grant: Grant, franchise_id: int, store: Dict[str, Any]) -> Dict[str, Any]:
        grant.check(policy.MANAGE_STORES, franchise_id)
        with connect(self.db_dsn) as conn:
            return franchises.create_store(conn, franchise_id, store)

    def delete_store(self, grant: Grant, franchise_id: int, store_id: int) -> None:
        grant.check(policy.MANAGE_STORES, franchise_id)
        with connect(self.db_dsn) as conn:
            franchises.delete_store(conn, franchise_id, store_id)

    # -----------------------------
    # Helpers
    # -----------------------------

    def get_id(self, column: str, value: Any, table: str) -> int:
        with connect(self.db_dsn) as conn:
            return get_id(conn, column, value, table)


__all__ = ["DB", "get_id", "get_token_signature"]
