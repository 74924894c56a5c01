import pytest

from pizza_service.db import connect, init_db, schema_exists
from pizza_service.errors import NoIdFound


def test_login_then_logout(db, diner):
    token = "header.payload.signature"
    assert not db.is_logged_in(token)

    db.login_user(diner.id, token)
    assert db.is_logged_in(token)

    db.logout_user(token)
    assert not db.is_logged_in(token)

    # logging out twice is fine
    db.logout_user(token)


def test_session_is_keyed_by_signature_only(db, diner):
    db.login_user(diner.id, "h1.p1.sig")
    assert db.is_logged_in("other.header.sig")
    assert not db.is_logged_in("h1.p1")


def test_get_id_resolves_or_raises(db, diner):
    assert db.get_id("email", diner.email, "users") == diner.id
    with pytest.raises(NoIdFound) as exc:
        db.get_id("email", "missing@test.com", "users")
    assert exc.value.status_code == 404


def test_get_id_rejects_unlisted_identifiers(db):
    with pytest.raises(ValueError):
        db.get_id("password", "x", "users")
    with pytest.raises(ValueError):
        db.get_id("id", 1, "users; DROP TABLE users")


def test_initialize_database_is_idempotent(tmp_path):
    dsn = str(tmp_path / "nested" / "fresh.sqlite")
    assert init_db(dsn) is True
    assert init_db(dsn) is False

    with connect(dsn) as conn:
        assert schema_exists(conn)
        tables = {
            r["name"]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        }
    assert {"users", "menu", "franchise", "store", "user_role", "diner_order", "order_item", "auth"} <= tables


def test_connect_rolls_back_on_error(db):
    with pytest.raises(RuntimeError):
        with connect(db.db_dsn) as conn:
            conn.execute("INSERT INTO franchise (name) VALUES (?)", ("half-done",))
            raise RuntimeError("boom")

    with connect(db.db_dsn) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM franchise").fetchone()["n"] == 0
