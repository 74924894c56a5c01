from __future__ import annotations

from typing import Any, Dict, List

from .common import insert_returning_id


def get_menu(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT id, title, description, image, price FROM menu ORDER BY id").fetchall()
    return [dict(r) for r in rows]


def add_menu_item(conn: Any, item: Dict[str, Any]) -> Dict[str, Any]:
    menu_id = insert_returning_id(
        conn,
        "INSERT INTO menu (title, description, image, price) VALUES (?, ?, ?, ?) RETURNING id",
        (item["title"], item["description"], item["image"], float(item["price"])),
    )
    return {**item, "id": menu_id}
