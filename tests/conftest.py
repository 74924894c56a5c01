from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, Tuple

import pytest
from fastapi.testclient import TestClient

from pizza_service.api.server import create_app
from pizza_service.config import Config
from pizza_service.data import DB
from pizza_service.models import RoleAssignment, User


BOOTSTRAP_ADMIN_EMAIL = "a@jwt.com"
BOOTSTRAP_ADMIN_PASSWORD = "admin"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "pizza.sqlite"),
        DB_LIST_PER_PAGE=2,
        AUTH_JWT_SECRET="test-secret",
        AUTH_BOOTSTRAP_ADMIN_NAME="Default Admin",
        AUTH_BOOTSTRAP_ADMIN_EMAIL=BOOTSTRAP_ADMIN_EMAIL,
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=BOOTSTRAP_ADMIN_PASSWORD,
        FACTORY_URL="http://factory.test",
        FACTORY_API_KEY="factory-key",
        ENABLE_METRICS=False,
        METRICS_URL="",
    )


@pytest.fixture
def db(cfg: Config) -> DB:
    d = DB(cfg.DB_DSN, list_per_page=cfg.DB_LIST_PER_PAGE)
    d.initialize_database()
    return d


@pytest.fixture
def admin(db: DB) -> User:
    return db.add_user(
        name="Admin",
        email="admin@test.com",
        password="toomanysecrets",
        roles=[RoleAssignment.admin()],
    )


@pytest.fixture
def diner(db: DB) -> User:
    return db.add_user(name="Pizza Diner", email="diner@test.com", password="a")


@pytest.fixture
def client(cfg: Config) -> Iterator[TestClient]:
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def admin_token(client: TestClient) -> str:
    res = client.put("/api/auth", json={"email": BOOTSTRAP_ADMIN_EMAIL, "password": BOOTSTRAP_ADMIN_PASSWORD})
    assert res.status_code == 200
    return res.json()["token"]


@pytest.fixture
def register(client: TestClient) -> Callable[..., Tuple[Dict[str, Any], str]]:
    """Register a diner through the API; returns (user, token)."""

    def _register(name: str = "pizza diner", email: str = "reg@test.com", password: str = "a"):
        res = client.post("/api/auth", json={"name": name, "email": email, "password": password})
        assert res.status_code == 200, res.text
        body = res.json()
        return body["user"], body["token"]

    return _register
