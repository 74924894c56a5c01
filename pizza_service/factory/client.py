from __future__ import annotations

from typing import Any, Dict, Tuple

import requests

from pizza_service.models import User


def _debug(msg: str) -> None:
    print(f"[factory] {msg}")


def send_order(
    base_url: str,
    api_key: str | None,
    diner: User,
    order: Dict[str, Any],
    *,
    timeout: float = 30,
) -> Tuple[bool, Dict[str, Any]]:
    """Ask the pizza factory to make an order.

    Returns (ok, body). On success the body carries `jwt` (the signed pizza)
    and `reportUrl`. Transport errors and non-2xx responses return ok=False;
    the body is whatever JSON the factory sent back (possibly empty).
    """
    url = f"{base_url.rstrip('/')}/api/order"
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    payload = {
        "diner": {"id": diner.id, "name": diner.name, "email": diner.email},
        "order": order,
    }

    try:
        r = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        _debug(f"Factory request failed: {url}: {e}")
        return False, {}

    try:
        body = r.json() if r.text else {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    if not r.ok:
        _debug(f"Factory error {r.status_code}: {r.text[:200]}")
        return False, body
    return True, body
