"""
Turns EstablishmentServiceContext answers into raised errors.

`ensure_access` guards reads/writes of an existing record;
`validate_employee_relationship` guards linking a new or re-pointed child
record (leave, payroll) to an employee.
"""
from __future__ import annotations

import logging

from flask import current_app

from hotel_api.extensions import db
from hotel_api.common.errors import (
    NotFoundError,
    EstablishmentAccessDeniedError,
    CrossEstablishmentRelationshipError,
)
from hotel_api.models.employee import Employee
from hotel_api.services.access_log import EstablishmentAccessLogger

log = logging.getLogger(__name__)


def ensure_access(context, establishment_id, resource_type: str, resource_id, action: str = "read") -> None:
    """No-op without a context (internal/system calls)."""
    if context is None:
        return
    if context.validate_access({"establishment_id": establishment_id}, resource_type):
        if current_app.config.get("ACCESS_AUDIT_LOG_ALLOWED"):
            EstablishmentAccessLogger.log(
                context=context,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                resource_establishment_id=establishment_id,
                allowed=True,
            )
        return

    log.warning(
        "establishment access denied user=%s role=%s resource=%s:%s user_est=%s resource_est=%s",
        context.get_user_id(), context.get_role(), resource_type, resource_id,
        context.get_establishment_id(), establishment_id,
    )
    EstablishmentAccessLogger.log(
        context=context,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_establishment_id=establishment_id,
        allowed=False,
        reason="establishment mismatch",
    )
    raise EstablishmentAccessDeniedError(
        user_id=context.get_user_id(),
        resource_type=resource_type,
        resource_id=str(resource_id),
        user_establishment_id=context.get_establishment_id(),
        resource_establishment_id=establishment_id,
    )


def get_employee_or_404(employee_id, *, lock: bool = False, message: str = "Employee not found") -> Employee:
    if employee_id is None:
        raise NotFoundError(message)
    if lock:
        emp = db.session.query(Employee).filter(Employee.id == employee_id).with_for_update().first()
    else:
        emp = db.session.get(Employee, employee_id)
    if not emp:
        raise NotFoundError(message, {"employee_id": employee_id})
    return emp


def validate_employee_relationship(employee_id, context, child_type: str, child_id="new",
                                   *, lock: bool = False, message: str = "Employee not found") -> Employee:
    """
    1. resolve the employee (404 if absent)
    2. scoped callers may only link to employees of their own establishment
    Returns the employee so callers need not load it again.
    """
    emp = get_employee_or_404(employee_id, lock=lock, message=message)

    if context is not None and not context.can_access_all():
        user_est = context.get_establishment_id()
        if str(emp.establishment_id) != str(user_est):
            log.warning(
                "cross-establishment link refused: %s %s -> employee %s (est %s), caller est %s",
                child_type, child_id, emp.id, emp.establishment_id, user_est,
            )
            raise CrossEstablishmentRelationshipError(
                parent_resource={"type": "employee", "id": str(emp.id), "establishment_id": emp.establishment_id},
                child_resource={"type": child_type, "id": str(child_id), "establishment_id": user_est},
            )
    return emp


def scoped_establishment_id(context, explicit=None):
    """
    The establishment a listing should be restricted to: the caller's own when
    scoped, otherwise the explicit filter (may be None = all).
    """
    if context is not None and not context.can_access_all():
        return context.apply_filter({})["establishment_id"]
    return explicit
