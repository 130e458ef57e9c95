import pytest

from hotel_api.services.establishment_context import EstablishmentServiceContext


@pytest.mark.parametrize("role", ["root", "super_admin", "admin"])
def test_global_roles_see_everything(role):
    ctx = EstablishmentServiceContext("u1", role, None)
    assert ctx.can_access_all()
    assert ctx.validate_access({"establishment_id": 7}, "employee")
    assert ctx.validate_access({"establishment_id": None}, "employee")
    assert ctx.apply_filter({"status": "active"}) == {"status": "active"}


@pytest.mark.parametrize("role", ["manager", "staff", "accountant"])
def test_scoped_roles_only_match_their_establishment(role):
    ctx = EstablishmentServiceContext("u1", role, 3)
    assert not ctx.can_access_all()
    assert ctx.validate_access({"establishment_id": 3}, "employee")
    assert ctx.validate_access({"establishment_id": "3"}, "employee")
    assert not ctx.validate_access({"establishment_id": 4}, "employee")


def test_resource_without_establishment_is_denied_for_scoped_caller():
    ctx = EstablishmentServiceContext("u1", "manager", 3)
    assert ctx.validate_access({}, "leave") is False
    assert ctx.validate_access(None, "leave") is False


def test_unscoped_non_global_caller_sees_nothing():
    ctx = EstablishmentServiceContext("u1", "staff", None)
    assert ctx.apply_filter({}) == {"establishment_id": None}
    assert not ctx.validate_access({"establishment_id": 1}, "employee")
    # no establishment on either side is still a denial
    assert not ctx.validate_access({"establishment_id": None}, "employee")


def test_apply_filter_overrides_and_copies():
    ctx = EstablishmentServiceContext("u1", "manager", 3)
    base = {"establishment_id": 9, "status": "active"}
    out = ctx.apply_filter(base)
    assert out == {"establishment_id": 3, "status": "active"}
    assert base["establishment_id"] == 9


def test_validate_access_accepts_objects():
    class Res:
        establishment_id = 5

    assert EstablishmentServiceContext("u1", "manager", 5).validate_access(Res(), "booking")
    assert not EstablishmentServiceContext("u1", "manager", 6).validate_access(Res(), "booking")


def test_validate_relationship():
    ctx = EstablishmentServiceContext("u1", "admin", None)
    ok, err = ctx.validate_relationship({"establishment_id": 1}, {"establishment_id": 1}, "employee-leave")
    assert ok and err is None

    ok, err = ctx.validate_relationship({"establishment_id": 1}, {"establishment_id": 2}, "employee-leave")
    assert not ok
    assert "Cross-establishment" in err

    ok, err = ctx.validate_relationship({}, {"establishment_id": 2})
    assert not ok
    assert "Parent" in err


def test_from_user_mapping_and_row(session):
    from conftest import make_establishment, make_user

    ctx = EstablishmentServiceContext.from_user({"user_id": 4, "role": "staff", "establishment_id": 2})
    assert (ctx.get_user_id(), ctx.get_role(), ctx.get_establishment_id()) == (4, "staff", 2)

    est = make_establishment(session)
    u = make_user(session, role="manager", establishment=est)
    ctx = EstablishmentServiceContext.from_user(u)
    assert ctx.get_user_id() == u.id
    assert ctx.get_establishment_id() == est.id
