from __future__ import annotations

from typing import Any, Dict, List

from pizza_service.models import User

from .common import get_id, get_offset, insert_returning_id, utcnow_iso


def add_diner_order(conn: Any, user: User, order: Dict[str, Any]) -> Dict[str, Any]:
    """Insert an order and its items.

    Every menu_id is resolved before anything is written, so an unknown menu
    item (NoIdFound) leaves no order row behind. The caller's connection
    commits the order and its items together.
    """
    items = list(order.get("items") or [])
    menu_ids = [get_id(conn, "id", int(item["menu_id"]), "menu") for item in items]

    order_id = insert_returning_id(
        conn,
        "INSERT INTO diner_order (diner_id, franchise_id, store_id, date) VALUES (?, ?, ?, ?) RETURNING id",
        (int(user.id), int(order["franchise_id"]), int(order["store_id"]), utcnow_iso()),
    )
    for item, menu_id in zip(items, menu_ids):
        conn.execute(
            "INSERT INTO order_item (order_id, menu_id, description, price) VALUES (?, ?, ?, ?)",
            (order_id, menu_id, item["description"], float(item["price"])),
        )
    return {**order, "items": items, "id": order_id}


def get_orders(conn: Any, user: User, page: int, list_per_page: int) -> Dict[str, Any]:
    offset = get_offset(page, list_per_page)
    rows = conn.execute(
        """
        SELECT id, franchise_id, store_id, date
        FROM diner_order
        WHERE diner_id=?
        ORDER BY id
        LIMIT ? OFFSET ?
        """,
        (int(user.id), int(list_per_page), offset),
    ).fetchall()

    orders: List[Dict[str, Any]] = []
    for r in rows:
        order = dict(r)
        items = conn.execute(
            "SELECT id, menu_id, description, price FROM order_item WHERE order_id=? ORDER BY id",
            (int(order["id"]),),
        ).fetchall()
        order["items"] = [dict(i) for i in items]
        orders.append(order)

    return {"diner_id": int(user.id), "orders": orders, "page": max(1, int(page or 1))}
