import pytest

from conftest import ctx_for, make_establishment, make_user, make_employee
from hotel_api.extensions import cache
from hotel_api.common.errors import (
    ValidationError,
    EstablishmentAccessDeniedError,
    EstablishmentNotFoundError,
)
from hotel_api.models.user import User
from hotel_api.services.employee_service import EmployeeService, generate_employee_number
from hotel_api.services.establishment_service import EstablishmentService


def test_create_assigns_manager_and_staff(session):
    mgr = make_user(session, role="manager")
    clerk = make_user(session, role="staff")
    est = EstablishmentService.create({
        "name": "Hotel Lumiere",
        "location": {"city": "Paris", "country": "FR"},
        "pricing_mode": "nightly",
        "manager_id": mgr.id,
        "staff_ids": [clerk.id],
    })
    d = est.to_dict()
    assert d["location"]["city"] == "Paris"
    assert d["manager_id"] == mgr.id
    assert d["staff_ids"] == [clerk.id]
    assert session.get(User, clerk.id).establishment_id == est.id


def test_create_rejects_non_manager(session):
    clerk = make_user(session, role="staff")
    with pytest.raises(ValidationError):
        EstablishmentService.create({"name": "X", "city": "Paris", "manager_id": clerk.id})


def test_create_rejects_unknown_pricing_mode(session):
    with pytest.raises(ValidationError):
        EstablishmentService.create({"name": "X", "city": "Paris", "pricing_mode": "hourly"})


def test_get_all_is_scoped(two_hotels):
    everything = EstablishmentService.get_all({}, context=ctx_for("super_admin"))
    assert everything["pagination"]["total"] == 2

    mine = EstablishmentService.get_all({}, context=ctx_for("manager", two_hotels["b"]))
    assert [e.id for e in mine["data"]] == [two_hotels["b"].id]

    nothing = EstablishmentService.get_all({}, context=ctx_for("staff"))
    assert nothing["data"] == []


def test_get_by_id_denied_across_establishments(two_hotels):
    with pytest.raises(EstablishmentAccessDeniedError):
        EstablishmentService.get_by_id(two_hotels["a"].id, ctx_for("manager", two_hotels["b"]))


def test_active_listing_is_served_from_cache(two_hotels):
    first = EstablishmentService.get_active()
    assert {e["name"] for e in first} == {"Hotel A", "Hotel B"}

    EstablishmentService.toggle_active(two_hotels["a"].id)
    # stale until the entry expires
    assert {e["name"] for e in EstablishmentService.get_active()} == {"Hotel A", "Hotel B"}

    cache.clear()
    assert {e["name"] for e in EstablishmentService.get_active()} == {"Hotel B"}


def test_selector_is_cached_per_scope(two_hotels):
    assert len(EstablishmentService.list_for_selector(ctx_for("admin"))) == 2
    opts = EstablishmentService.list_for_selector(ctx_for("staff", two_hotels["a"]))
    assert opts == [{"id": two_hotels["a"].id, "name": "Hotel A", "city": "Lyon"}]


def test_staff_membership(two_hotels, session):
    clerk = make_user(session, role="staff")
    est = EstablishmentService.add_staff(two_hotels["a"].id, clerk.id)
    assert clerk.id in est.to_dict()["staff_ids"]
    assert session.get(User, clerk.id).establishment_id == two_hotels["a"].id

    est = EstablishmentService.remove_staff(two_hotels["a"].id, clerk.id)
    assert clerk.id not in est.to_dict()["staff_ids"]
    assert session.get(User, clerk.id).establishment_id is None

    boss = make_user(session, role="manager")
    with pytest.raises(ValidationError):
        EstablishmentService.add_staff(two_hotels["a"].id, boss.id)


def test_employee_numbers_follow_sequence(session):
    est = make_establishment(session)
    assert generate_employee_number(2031) == "EMP-2031-0001"
    EmployeeService.create({"establishment_id": est.id, "first_name": "Ana", "employee_number": "EMP-2031-0007"})
    assert generate_employee_number(2031) == "EMP-2031-0008"


def test_scoped_employee_create_goes_to_own_establishment(two_hotels):
    emp = EmployeeService.create(
        {"establishment_id": two_hotels["a"].id, "first_name": "Zoe", "hire_date": "2025-02-01"},
        ctx_for("manager", two_hotels["b"]),
    )
    assert emp.establishment_id == two_hotels["b"].id
    assert emp.employee_number.startswith("EMP-")


def test_employee_create_requires_existing_establishment(session):
    with pytest.raises(EstablishmentNotFoundError):
        EmployeeService.create({"establishment_id": 404, "first_name": "Ghost"})


def test_employee_listing_is_scoped(two_hotels, session):
    make_employee(session, two_hotels["a"], first_name="Ines")
    page = EmployeeService.get_all({}, context=ctx_for("manager", two_hotels["a"]))
    assert page["pagination"]["total"] == 2
    assert all(e.establishment_id == two_hotels["a"].id for e in page["data"])
