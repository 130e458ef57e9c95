from datetime import datetime, timedelta

import pytest

from conftest import ctx_for
from hotel_api.common.errors import (
    NotFoundError,
    EstablishmentAccessDeniedError,
    CrossEstablishmentRelationshipError,
    is_establishment_error,
)
from hotel_api.models.access_log import EstablishmentAccessLog
from hotel_api.services.access_log import EstablishmentAccessLogger
from hotel_api.services.scoping import ensure_access, validate_employee_relationship


def test_relationship_same_establishment_returns_employee(two_hotels):
    emp = validate_employee_relationship(two_hotels["emp_a"].id, ctx_for("manager", two_hotels["a"]), "leave")
    assert emp.id == two_hotels["emp_a"].id


def test_relationship_global_context_passes(two_hotels):
    emp = validate_employee_relationship(two_hotels["emp_b"].id, ctx_for("super_admin"), "payroll")
    assert emp.id == two_hotels["emp_b"].id


def test_relationship_cross_establishment_raises(two_hotels):
    with pytest.raises(CrossEstablishmentRelationshipError) as ei:
        validate_employee_relationship(two_hotels["emp_a"].id, ctx_for("manager", two_hotels["b"]), "leave")
    err = ei.value
    assert is_establishment_error(err)
    assert err.status_code == 400
    assert err.details["parent_resource"]["type"] == "employee"
    assert err.details["child_resource"] == {"type": "leave", "id": "new", "establishment_id": two_hotels["b"].id}
    assert err.details["establishments"] == {"parent": two_hotels["a"].id, "child": two_hotels["b"].id}


def test_relationship_unknown_employee(session):
    with pytest.raises(NotFoundError):
        validate_employee_relationship(999, None, "leave")


def test_ensure_access_denial_is_audited(two_hotels):
    ctx = ctx_for("manager", two_hotels["b"], user_id=42)
    with pytest.raises(EstablishmentAccessDeniedError) as ei:
        ensure_access(ctx, two_hotels["a"].id, "employee", two_hotels["emp_a"].id, action="update")
    assert ei.value.status_code == 403
    assert ei.value.details["resource_establishment_id"] == two_hotels["a"].id

    row = EstablishmentAccessLog.query.one()
    assert row.allowed is False
    assert row.user_id == "42"
    assert row.action == "update"
    assert row.resource_type == "employee"


def test_ensure_access_without_context_is_noop(two_hotels):
    ensure_access(None, two_hotels["a"].id, "employee", 1)
    assert EstablishmentAccessLog.query.count() == 0


def test_audit_can_be_disabled(app, two_hotels):
    app.config["ACCESS_AUDIT_ENABLED"] = False
    with pytest.raises(EstablishmentAccessDeniedError):
        ensure_access(ctx_for("staff", two_hotels["b"]), two_hotels["a"].id, "leave", 1)
    assert EstablishmentAccessLog.query.count() == 0


def test_access_logger_queries(two_hotels):
    since = datetime.utcnow() - timedelta(minutes=1)
    ctx_b = ctx_for("manager", two_hotels["b"], user_id=7)
    for rid in (1, 2):
        with pytest.raises(EstablishmentAccessDeniedError):
            ensure_access(ctx_b, two_hotels["a"].id, "payroll", rid)
    EstablishmentAccessLogger.log(
        context=ctx_b, action="read", resource_type="employee", resource_id=3,
        resource_establishment_id=two_hotels["b"].id, allowed=True,
    )

    assert len(EstablishmentAccessLogger.get_violations(since)) == 2
    assert len(EstablishmentAccessLogger.get_user_history(7)) == 3

    stats = EstablishmentAccessLogger.get_stats(since)
    assert stats["allowed"] == 1
    assert stats["denied"] == 2
    assert stats["total"] == 3
    assert stats["denied_by_resource_type"] == {"payroll": 2}


def test_allowed_checks_are_not_recorded_by_default(two_hotels):
    ensure_access(ctx_for("manager", two_hotels["a"]), two_hotels["a"].id, "employee", 1)
    assert EstablishmentAccessLog.query.count() == 0


def test_allowed_checks_recorded_when_enabled(app, two_hotels):
    app.config["ACCESS_AUDIT_LOG_ALLOWED"] = True
    since = datetime.utcnow() - timedelta(minutes=1)
    ensure_access(ctx_for("manager", two_hotels["a"], user_id=5), two_hotels["a"].id, "employee", 9, action="update")
    with pytest.raises(EstablishmentAccessDeniedError):
        ensure_access(ctx_for("manager", two_hotels["b"], user_id=6), two_hotels["a"].id, "employee", 9)

    row = EstablishmentAccessLog.query.filter_by(allowed=True).one()
    assert (row.user_id, row.action, row.resource_id) == ("5", "update", "9")
    stats = EstablishmentAccessLogger.get_stats(since)
    assert (stats["allowed"], stats["denied"], stats["total"]) == (1, 1, 2)
