from datetime import date

import pytest

from conftest import ctx_for, make_user
from hotel_api.common.errors import (
    ValidationError,
    InsufficientBalanceError,
    LeaveOverlapError,
    InvalidStatusTransitionError,
    EstablishmentAccessDeniedError,
    CrossEstablishmentRelationshipError,
)
from hotel_api.models.leave import Leave
from hotel_api.services.leave_service import LeaveService


def _leave(emp, start, end, type_="annual", **extra):
    data = {"employee_id": emp.id, "type": type_, "start_date": start, "end_date": end}
    data.update(extra)
    return data


def test_days_are_inclusive():
    assert Leave.calculate_days(date(2025, 3, 10), date(2025, 3, 14)) == 5
    assert Leave.calculate_days(date(2025, 3, 10), date(2025, 3, 10)) == 1


def test_create_is_pending_with_day_count(two_hotels):
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-03-10", "2025-03-14"))
    assert leave.status == "pending"
    assert leave.days == 5


@pytest.mark.parametrize("data", [
    {"type": "holiday", "start_date": "2025-03-10", "end_date": "2025-03-11"},
    {"type": "annual", "start_date": "2025-03-10"},
    {"type": "annual", "start_date": "2025-03-12", "end_date": "2025-03-10"},
])
def test_create_rejects_bad_input(two_hotels, data):
    data["employee_id"] = two_hotels["emp_a"].id
    with pytest.raises(ValidationError):
        LeaveService.create(data)


def test_overlap_is_refused(two_hotels):
    emp = two_hotels["emp_a"]
    first = LeaveService.create(_leave(emp, "2025-03-10", "2025-03-14"))
    with pytest.raises(LeaveOverlapError) as ei:
        LeaveService.create(_leave(emp, "2025-03-14", "2025-03-16", type_="sick"))
    assert ei.value.status_code == 409
    assert ei.value.payload == {"existing_leave_id": first.id}


def test_cancelled_leave_does_not_block(two_hotels):
    emp = two_hotels["emp_a"]
    first = LeaveService.create(_leave(emp, "2025-03-10", "2025-03-14"))
    LeaveService.cancel(first.id)
    again = LeaveService.create(_leave(emp, "2025-03-10", "2025-03-14"))
    assert again.id != first.id


def test_balance_counts_approved_days(two_hotels, session):
    approver = make_user(session, role="manager", establishment=two_hotels["a"])
    emp = two_hotels["emp_a"]
    leave = LeaveService.create(_leave(emp, "2025-06-02", "2025-06-06"))
    LeaveService.create(_leave(emp, "2025-07-01", "2025-07-02", type_="sick"))
    LeaveService.approve(leave.id, approver.id)

    bal = LeaveService.get_balance(emp.id, 2025)
    assert bal["annual"] == {"total": 22, "used": 5, "remaining": 17}
    assert bal["sick"]["used"] == 0  # still pending


def test_insufficient_annual_balance(two_hotels, session):
    emp = two_hotels["emp_a"]
    year = date.today().year
    session.add(Leave(employee_id=emp.id, type="annual", start_date=date(year, 1, 1),
                      end_date=date(year, 1, 20), days=20, status="approved"))
    session.commit()

    with pytest.raises(InsufficientBalanceError):
        LeaveService.create(_leave(emp, f"{year}-12-01", f"{year}-12-05"))

    # sick leave has no allowance
    sick = LeaveService.create(_leave(emp, f"{year}-12-01", f"{year}-12-05", type_="sick"))
    assert sick.days == 5


def test_transitions(two_hotels, session):
    approver = make_user(session, role="manager", establishment=two_hotels["a"])
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-03-10", "2025-03-11"))

    with pytest.raises(ValidationError):
        LeaveService.reject(leave.id, approver.id, "  ")

    rejected = LeaveService.reject(leave.id, approver.id, "short staffed")
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "short staffed"

    with pytest.raises(InvalidStatusTransitionError):
        LeaveService.approve(leave.id, approver.id)
    with pytest.raises(InvalidStatusTransitionError):
        LeaveService.cancel(leave.id)


def test_status_is_not_editable_through_update(two_hotels):
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-03-10", "2025-03-11"))
    updated = LeaveService.update(leave.id, {"status": "approved", "end_date": "2025-03-12"})
    assert updated.status == "pending"
    assert updated.days == 3


def test_summary_and_pending_are_scoped(two_hotels, session):
    approver = make_user(session, role="manager", establishment=two_hotels["a"])
    a1 = LeaveService.create(_leave(two_hotels["emp_a"], "2025-03-10", "2025-03-12"))
    LeaveService.create(_leave(two_hotels["emp_a"], "2025-04-10", "2025-04-10", type_="sick"))
    LeaveService.create(_leave(two_hotels["emp_b"], "2025-03-10", "2025-03-12"))
    LeaveService.approve(a1.id, approver.id)

    summary = LeaveService.get_summary({}, ctx_for("manager", two_hotels["a"]))
    assert summary == {
        "total_requests": 2,
        "pending": 1,
        "approved": 1,
        "rejected": 0,
        "cancelled": 0,
        "total_days": 3,
    }
    assert LeaveService.get_summary({})["total_requests"] == 3

    pending_b = LeaveService.get_pending(ctx_for("staff", two_hotels["b"]))
    assert [lv.employee_id for lv in pending_b] == [two_hotels["emp_b"].id]


def test_cross_establishment_create(two_hotels):
    emp_a = two_hotels["emp_a"]
    with pytest.raises(CrossEstablishmentRelationshipError):
        LeaveService.create(_leave(emp_a, "2025-05-01", "2025-05-02"), ctx_for("manager", two_hotels["b"]))
    assert Leave.query.count() == 0

    ok_a = LeaveService.create(_leave(emp_a, "2025-05-01", "2025-05-02"), ctx_for("manager", two_hotels["a"]))
    ok_global = LeaveService.create(_leave(emp_a, "2025-06-01", "2025-06-02"), ctx_for("super_admin"))
    assert {ok_a.employee_id, ok_global.employee_id} == {emp_a.id}


def test_get_by_id_denied_for_other_establishment(two_hotels):
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-05-01", "2025-05-02"))
    with pytest.raises(EstablishmentAccessDeniedError):
        LeaveService.get_by_id(leave.id, ctx_for("staff", two_hotels["b"]))
    assert LeaveService.get_by_id(leave.id, ctx_for("staff", two_hotels["a"])).id == leave.id


def test_update_to_annual_rechecks_balance(two_hotels, session):
    approver = make_user(session, role="manager", establishment=two_hotels["a"])
    emp = two_hotels["emp_a"]
    year = date.today().year
    sick = LeaveService.create(_leave(emp, f"{year}-01-05", f"{year}-02-11", type_="sick"))
    assert sick.days == 38

    with pytest.raises(InsufficientBalanceError) as ei:
        LeaveService.update(sick.id, {"type": "annual"})
    assert ei.value.payload == {"available": 22, "requested": 38}

    LeaveService.approve(sick.id, approver.id)
    assert session.get(Leave, sick.id).type == "sick"
    assert LeaveService.get_balance(emp.id, year)["annual"]["remaining"] == 22


def test_extending_approved_annual_counts_its_own_days_once(two_hotels, session):
    approver = make_user(session, role="manager", establishment=two_hotels["a"])
    emp = two_hotels["emp_a"]
    year = date.today().year
    leave = LeaveService.create(_leave(emp, f"{year}-03-02", f"{year}-03-11"))
    LeaveService.approve(leave.id, approver.id)

    # 10 held + 12 free = 22: the longest the leave may become
    grown = LeaveService.update(leave.id, {"end_date": f"{year}-03-23"})
    assert grown.days == 22
    with pytest.raises(InsufficientBalanceError):
        LeaveService.update(leave.id, {"end_date": f"{year}-03-24"})
    assert LeaveService.get_balance(emp.id, year)["annual"]["remaining"] == 0


def test_update_cannot_repoint_to_other_establishments_employee(two_hotels):
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-05-01", "2025-05-02", type_="sick"))
    with pytest.raises(CrossEstablishmentRelationshipError):
        LeaveService.update(leave.id, {"employee_id": two_hotels["emp_b"].id}, ctx_for("manager", two_hotels["a"]))
    assert LeaveService.get_by_id(leave.id).employee_id == two_hotels["emp_a"].id


@pytest.mark.parametrize("call", [
    lambda lid, ctx: LeaveService.approve(lid, 1, ctx),
    lambda lid, ctx: LeaveService.reject(lid, 1, "no", ctx),
    lambda lid, ctx: LeaveService.cancel(lid, ctx),
    lambda lid, ctx: LeaveService.delete(lid, ctx),
    lambda lid, ctx: LeaveService.update(lid, {"reason": "x"}, ctx),
])
def test_mutations_from_other_establishment_are_denied(two_hotels, call):
    leave = LeaveService.create(_leave(two_hotels["emp_a"], "2025-05-01", "2025-05-02", type_="sick"))
    with pytest.raises(EstablishmentAccessDeniedError):
        call(leave.id, ctx_for("manager", two_hotels["b"]))
    assert LeaveService.get_by_id(leave.id).status == "pending"
