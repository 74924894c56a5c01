import pytest

from pizza_service.auth import policy
from pizza_service.errors import Unauthorized
from pizza_service.models import Role, RoleAssignment, User


DINER = User(id=42, name="Pizza Diner", email="diner@test.com", roles=[RoleAssignment.diner()])
ADMIN = User(id=1, name="Admin", email="admin@test.com", roles=[RoleAssignment.admin()])
OWNER = User(
    id=7,
    name="Owner",
    email="owner@test.com",
    roles=[RoleAssignment.diner(), RoleAssignment.franchisee(1)],
)


def test_role_assignment_scoping():
    assert RoleAssignment.franchisee(3).object_id == 3
    with pytest.raises(ValueError):
        RoleAssignment(Role.FRANCHISEE)
    with pytest.raises(ValueError):
        RoleAssignment(Role.ADMIN, 3)


def test_only_admins_see_all_franchise_detail():
    assert policy.can_view_all_franchise_detail(ADMIN)
    assert not policy.can_view_all_franchise_detail(DINER)
    assert not policy.can_view_all_franchise_detail(None)


def test_manage_franchise_by_membership():
    franchise = {"id": 1, "admins": [{"id": OWNER.id}]}
    other = {"id": 2, "admins": []}

    assert policy.can_manage_franchise(ADMIN, other)
    assert policy.can_manage_franchise(OWNER, franchise)
    assert not policy.can_manage_franchise(OWNER, other)
    assert not policy.can_manage_franchise(DINER, franchise)


def test_user_franchises_self_or_admin():
    assert policy.can_access_user_franchises(DINER, 42)
    assert policy.can_access_user_franchises(ADMIN, 42)
    assert not policy.can_access_user_franchises(DINER, 999)


def test_update_user_self_or_admin_otherwise_unauthorized():
    assert policy.can_update_user(DINER, 42) is True
    assert policy.can_update_user(ADMIN, 999) is True
    with pytest.raises(Unauthorized) as exc:
        policy.can_update_user(DINER, 99)
    assert exc.value.status_code == 403


def test_admin_grants():
    grant = policy.grant_admin(ADMIN, policy.CREATE_FRANCHISE)
    assert grant.user_id == ADMIN.id
    grant.check(policy.CREATE_FRANCHISE)
    with pytest.raises(Unauthorized):
        grant.check(policy.DELETE_FRANCHISE)

    with pytest.raises(Unauthorized) as exc:
        policy.grant_admin(DINER, policy.CREATE_FRANCHISE, message="unable to create a franchise")
    assert exc.value.message == "unable to create a franchise"


def test_scoped_grant_checks_object():
    grant = policy.grant_store_management(OWNER, {"id": 1, "admins": [{"id": OWNER.id}]})
    grant.check(policy.MANAGE_STORES, 1)
    with pytest.raises(Unauthorized):
        grant.check(policy.MANAGE_STORES, 2)


def test_grants_cannot_be_forged():
    with pytest.raises(TypeError):
        policy.Grant(policy.CREATE_FRANCHISE, DINER.id)
