import pytest

from pizza_service.auth import policy
from pizza_service.db import connect
from pizza_service.errors import AlreadyExists, NoIdFound, UnableToDelete, Unauthorized, UnknownUser
from pizza_service.models import Role


@pytest.fixture
def create_grant(admin):
    return policy.grant_admin(admin, policy.CREATE_FRANCHISE)


@pytest.fixture
def pizza_pocket(db, create_grant, diner):
    return db.create_franchise(create_grant, {"name": "pizzaPocket", "admins": [{"email": diner.email}]})


def _store_grant(db, user, franchise_id):
    return policy.grant_store_management(user, db.get_franchise(franchise_id))


def test_create_franchise_makes_admins_franchisees(db, pizza_pocket, diner):
    assert pizza_pocket["name"] == "pizzaPocket"
    assert pizza_pocket["admins"] == [{"id": diner.id, "name": diner.name, "email": diner.email}]

    refreshed = db.get_user_by_id(diner.id)
    assert refreshed.is_role(Role.FRANCHISEE)
    assert refreshed.franchise_ids() == [pizza_pocket["id"]]


def test_create_franchise_with_unknown_admin_persists_nothing(db, create_grant, diner):
    with pytest.raises(UnknownUser):
        db.create_franchise(
            create_grant,
            {"name": "ghostPizza", "admins": [{"email": diner.email}, {"email": "nope@test.com"}]},
        )

    franchises, more = db.get_franchises(None)
    assert franchises == [] and more is False
    assert not db.get_user_by_id(diner.id).is_role(Role.FRANCHISEE)


def test_create_franchise_name_is_unique(db, create_grant, pizza_pocket):
    with pytest.raises(AlreadyExists):
        db.create_franchise(create_grant, {"name": "pizzaPocket", "admins": []})


def test_get_franchises_pages_with_more_flag(db, create_grant):
    for name in ("pizzaA", "pizzaB", "pizzaC"):
        db.create_franchise(create_grant, {"name": name, "admins": []})

    first, more = db.get_franchises(None, page=0, limit=2)
    assert [f["name"] for f in first] == ["pizzaA", "pizzaB"]
    assert more is True

    second, more = db.get_franchises(None, page=1, limit=2)
    assert [f["name"] for f in second] == ["pizzaC"]
    assert more is False

    exact, more = db.get_franchises(None, page=0, limit=3)
    assert len(exact) == 3
    assert more is False


def test_get_franchises_name_filter(db, create_grant):
    for name in ("pizzaA", "pizzaB", "burgerBarn"):
        db.create_franchise(create_grant, {"name": name, "admins": []})

    assert [f["name"] for f in db.get_franchises(None, name_filter="pizza*")[0]] == ["pizzaA", "pizzaB"]
    assert [f["name"] for f in db.get_franchises(None, name_filter="burgerBarn")[0]] == ["burgerBarn"]
    assert db.get_franchises(None, name_filter="pizza")[0] == []


def test_admins_see_franchise_detail(db, admin, diner, pizza_pocket):
    grant = _store_grant(db, admin, pizza_pocket["id"])
    store = db.create_store(grant, pizza_pocket["id"], {"name": "SLC"})
    db.add_diner_order(
        diner,
        {"franchise_id": pizza_pocket["id"], "store_id": store["id"], "items": []},
    )

    detailed, _ = db.get_franchises(admin)
    assert detailed[0]["admins"][0]["id"] == diner.id
    assert detailed[0]["stores"] == [{"id": store["id"], "name": "SLC", "total_revenue": 0.0}]

    plain, _ = db.get_franchises(diner)
    assert "admins" not in plain[0]
    assert plain[0]["stores"] == [{"id": store["id"], "name": "SLC"}]


def test_store_revenue_sums_order_items(db, admin, diner, pizza_pocket):
    grant_menu = policy.grant_admin(admin, policy.ADD_MENU_ITEM)
    item = db.add_menu_item(grant_menu, {"title": "Veggie", "description": "d", "image": "i", "price": 0.05})
    store = db.create_store(_store_grant(db, admin, pizza_pocket["id"]), pizza_pocket["id"], {"name": "SLC"})

    for _ in range(2):
        db.add_diner_order(
            diner,
            {
                "franchise_id": pizza_pocket["id"],
                "store_id": store["id"],
                "items": [{"menu_id": item["id"], "description": "Veggie", "price": 0.05}],
            },
        )

    franchise = db.get_franchise(pizza_pocket["id"])
    assert franchise["stores"][0]["total_revenue"] == pytest.approx(0.1)


def test_get_user_franchises(db, admin, diner, pizza_pocket):
    assert db.get_user_franchises(policy.grant_user_franchises(admin, admin.id), admin.id) == []

    mine = db.get_user_franchises(policy.grant_user_franchises(diner, diner.id), diner.id)
    assert [f["id"] for f in mine] == [pizza_pocket["id"]]
    assert mine[0]["admins"][0]["email"] == diner.email

    with pytest.raises(Unauthorized):
        policy.grant_user_franchises(diner, admin.id)


def test_create_and_delete_store(db, diner, pizza_pocket):
    grant = _store_grant(db, diner, pizza_pocket["id"])

    store = db.create_store(grant, pizza_pocket["id"], {"name": "NYC"})
    assert store == {"id": store["id"], "franchise_id": pizza_pocket["id"], "name": "NYC"}

    db.delete_store(grant, pizza_pocket["id"], store["id"])
    assert db.get_franchise(pizza_pocket["id"])["stores"] == []

    # deleting again is a no-op
    db.delete_store(grant, pizza_pocket["id"], store["id"])


def test_store_grant_does_not_cross_franchises(db, create_grant, diner, pizza_pocket):
    other = db.create_franchise(create_grant, {"name": "otherPizza", "admins": []})
    grant = _store_grant(db, diner, pizza_pocket["id"])

    with pytest.raises(Unauthorized):
        db.create_store(grant, other["id"], {"name": "sneaky"})
    with pytest.raises(Unauthorized):
        _store_grant(db, diner, other["id"])


def test_create_store_for_missing_franchise(db, admin):
    grant = policy.grant_store_management(admin, {"id": 404, "admins": []})
    with pytest.raises(NoIdFound):
        db.create_store(grant, 404, {"name": "nowhere"})


def test_delete_franchise_cascades(db, admin, diner, pizza_pocket):
    store = db.create_store(_store_grant(db, admin, pizza_pocket["id"]), pizza_pocket["id"], {"name": "SLC"})
    order = db.add_diner_order(diner, {"franchise_id": pizza_pocket["id"], "store_id": store["id"], "items": []})

    db.delete_franchise(policy.grant_admin(admin, policy.DELETE_FRANCHISE), pizza_pocket["id"])

    assert db.get_franchise(pizza_pocket["id"]) is None
    assert not db.get_user_by_id(diner.id).is_role(Role.FRANCHISEE)
    with connect(db.db_dsn) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM store").fetchone()["n"] == 0
    # order history outlives the franchise
    assert [o["id"] for o in db.get_orders(diner)["orders"]] == [order["id"]]


def test_delete_franchise_rolls_back_on_failure(db, admin, diner, pizza_pocket):
    store = db.create_store(_store_grant(db, admin, pizza_pocket["id"]), pizza_pocket["id"], {"name": "SLC"})
    # A row referencing the store makes the store delete fail after the role rows are gone.
    with connect(db.db_dsn) as conn:
        conn.execute("CREATE TABLE store_audit (store_id INTEGER NOT NULL REFERENCES store(id))")
        conn.execute("INSERT INTO store_audit (store_id) VALUES (?)", (store["id"],))

    with pytest.raises(UnableToDelete) as exc:
        db.delete_franchise(policy.grant_admin(admin, policy.DELETE_FRANCHISE), pizza_pocket["id"])

    assert exc.value.message == "unable to delete franchise"
    assert exc.value.__cause__ is not None
    franchise = db.get_franchise(pizza_pocket["id"])
    assert [a["id"] for a in franchise["admins"]] == [diner.id]
    assert [s["id"] for s in franchise["stores"]] == [store["id"]]


def test_delete_franchise_requires_delete_grant(db, create_grant, pizza_pocket):
    with pytest.raises(Unauthorized):
        db.delete_franchise(create_grant, pizza_pocket["id"])
    assert db.get_franchise(pizza_pocket["id"]) is not None
