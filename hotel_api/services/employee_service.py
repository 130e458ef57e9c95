from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import or_

from hotel_api.extensions import db
from hotel_api.common.errors import NotFoundError, ValidationError, EstablishmentNotFoundError
from hotel_api.common.http import parse_date
from hotel_api.common.paging import paginate
from hotel_api.models.employee import Employee
from hotel_api.models.establishment import Establishment
from hotel_api.services.scoping import ensure_access, scoped_establishment_id

log = logging.getLogger(__name__)

CONTRACT_TYPES = ("permanent", "temporary", "contract")
EMPLOYEE_STATUSES = ("active", "inactive", "terminated")

_FIELDS = ("first_name", "last_name", "email", "phone", "position", "department",
           "contract_type", "status", "health_insurance", "retirement_plan", "user_id")


def generate_employee_number(year: int | None = None) -> str:
    """EMP-YYYY-NNNN, numbered per calendar year."""
    year = year or date.today().year
    prefix = f"EMP-{year}-"
    last = (
        db.session.query(Employee.employee_number)
        .filter(Employee.employee_number.like(f"{prefix}%"))
        .order_by(Employee.employee_number.desc())
        .first()
    )
    seq = 1
    if last:
        try:
            seq = int(last[0].rsplit("-", 1)[1]) + 1
        except (IndexError, ValueError):
            seq = Employee.query.filter(Employee.employee_number.like(f"{prefix}%")).count() + 1
    return f"{prefix}{seq:04d}"


def _apply(emp: Employee, data: dict):
    for k in _FIELDS:
        if k in data:
            setattr(emp, k, data[k])
    if "salary" in data:
        try:
            emp.salary = Decimal(str(data["salary"] or 0))
        except ArithmeticError:
            raise ValidationError("salary must be numeric")
        if emp.salary < 0:
            raise ValidationError("salary cannot be negative")
    if "hire_date" in data:
        emp.hire_date = parse_date(data["hire_date"])
    if emp.contract_type not in CONTRACT_TYPES:
        raise ValidationError(f"contract_type must be one of {', '.join(CONTRACT_TYPES)}")
    if emp.status not in EMPLOYEE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(EMPLOYEE_STATUSES)}")


def _get_or_404(employee_id) -> Employee:
    emp = db.session.get(Employee, employee_id)
    if not emp:
        raise NotFoundError("Employee not found", {"employee_id": employee_id})
    return emp


class EmployeeService:

    @staticmethod
    def create(data: dict, context=None) -> Employee:
        # scoped callers always hire into their own establishment
        if context is not None and not context.can_access_all():
            est_id = context.get_establishment_id()
        else:
            est_id = data.get("establishment_id")
        if est_id is None or db.session.get(Establishment, est_id) is None:
            raise EstablishmentNotFoundError(est_id)
        if not (data.get("first_name") or "").strip():
            raise ValidationError("first_name is required")

        emp = Employee(
            establishment_id=est_id,
            employee_number=data.get("employee_number") or generate_employee_number(),
            contract_type="permanent",
            status="active",
            position="",
            salary=Decimal("0"),
        )
        _apply(emp, data)
        db.session.add(emp)
        db.session.commit()
        log.info("employee %s (%s) created in establishment %s", emp.id, emp.employee_number, est_id)
        return emp

    @staticmethod
    def get_by_id(employee_id, context=None) -> Employee:
        emp = _get_or_404(employee_id)
        ensure_access(context, emp.establishment_id, "employee", emp.id)
        return emp

    @staticmethod
    def get_all(filters: dict | None = None, page: int = 1, limit: int = 10, context=None) -> dict:
        filters = filters or {}
        q = Employee.query
        est_id = scoped_establishment_id(context, filters.get("establishment_id"))
        if (context is not None and not context.can_access_all()) or est_id is not None:
            q = q.filter(Employee.establishment_id == est_id)
        if filters.get("status"):
            q = q.filter(Employee.status == filters["status"])
        if filters.get("department"):
            q = q.filter(Employee.department == filters["department"])
        if filters.get("position"):
            q = q.filter(Employee.position.ilike(f"%{filters['position']}%"))
        if filters.get("q"):
            like = f"%{filters['q']}%"
            q = q.filter(or_(
                Employee.first_name.ilike(like),
                Employee.last_name.ilike(like),
                Employee.email.ilike(like),
                Employee.employee_number.ilike(like),
            ))
        return paginate(q.order_by(Employee.id.desc()), page, limit)

    @staticmethod
    def update(employee_id, data: dict, context=None) -> Employee:
        emp = _get_or_404(employee_id)
        ensure_access(context, emp.establishment_id, "employee", emp.id, action="update")

        new_est = data.get("establishment_id")
        if new_est is not None and str(new_est) != str(emp.establishment_id):
            if db.session.get(Establishment, new_est) is None:
                raise EstablishmentNotFoundError(new_est)
            # moving an employee requires access to the destination as well
            ensure_access(context, new_est, "employee", emp.id, action="update")
            emp.establishment_id = new_est

        _apply(emp, data)
        db.session.commit()
        return emp

    @staticmethod
    def delete(employee_id, context=None) -> bool:
        emp = db.session.get(Employee, employee_id)
        if not emp:
            return False
        ensure_access(context, emp.establishment_id, "employee", emp.id, action="delete")
        db.session.delete(emp)
        db.session.commit()
        return True

    @staticmethod
    def get_by_establishment(establishment_id, context=None) -> list[Employee]:
        ensure_access(context, establishment_id, "establishment", establishment_id)
        return (
            Employee.query
            .filter(Employee.establishment_id == establishment_id)
            .order_by(Employee.last_name, Employee.first_name)
            .all()
        )

    @staticmethod
    def get_by_employee_number(employee_number: str, context=None) -> Employee | None:
        emp = Employee.query.filter_by(employee_number=employee_number).first()
        if emp is None:
            return None
        ensure_access(context, emp.establishment_id, "employee", emp.id)
        return emp
