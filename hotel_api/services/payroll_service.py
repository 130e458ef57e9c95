from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.exc import IntegrityError

from hotel_api.extensions import db
from hotel_api.common.errors import (
    NotFoundError,
    ValidationError,
    DuplicatePayrollPeriodError,
    InvalidStatusTransitionError,
)
from hotel_api.common.paging import paginate
from hotel_api.models.employee import Employee
from hotel_api.models.payroll import Payroll
from hotel_api.services import payroll_policy
from hotel_api.services.scoping import (
    ensure_access,
    get_employee_or_404,
    scoped_establishment_id,
    validate_employee_relationship,
)

log = logging.getLogger(__name__)

CENT = Decimal("0.01")

# target status -> statuses it may be reached from
_FROM = {
    "approved": ("draft", "pending"),
    "paid": ("approved",),
}

_UPDATABLE = (
    "base_salary", "allowances", "deductions", "bonuses",
    "overtime_hours", "overtime_rate", "notes",
)


def _round2(x) -> float:
    return float(Decimal(str(x or 0)).quantize(CENT, rounding=ROUND_HALF_UP))


def _period(data: dict):
    """Accepts {"period": {"year", "month"}} or flat period_year/period_month."""
    p = data.get("period") or {}
    year = p.get("year", data.get("period_year", data.get("year")))
    month = p.get("month", data.get("period_month", data.get("month")))
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("period year and month are required")
    if not 1 <= month <= 12:
        raise ValidationError("period month must be between 1 and 12")
    return year, month


def _lines(v, field: str) -> list:
    if v is None:
        return []
    if not isinstance(v, list):
        raise ValidationError(f"{field} must be a list of {{type, amount}}")
    out = []
    for item in v:
        if not isinstance(item, dict) or "amount" not in item:
            raise ValidationError(f"{field} items need type and amount")
        try:
            amount = float(item["amount"])
        except (TypeError, ValueError):
            raise ValidationError(f"{field} amount must be numeric")
        line = {"type": str(item.get("type") or ""), "amount": amount}
        if item.get("auto"):
            line["auto"] = True
        out.append(line)
    return out


def _totals(p: Payroll, emp: Employee, *, with_position_allowance: bool = False) -> None:
    if payroll_policy.enabled():
        payroll_policy.apply(p, emp, with_position_allowance=with_position_allowance)
    else:
        p.recompute_totals()


def _scoped_query(context, establishment_id=None):
    q = Payroll.query.join(Employee, Payroll.employee_id == Employee.id)
    est_id = scoped_establishment_id(context, establishment_id)
    if (context is not None and not context.can_access_all()) or est_id is not None:
        q = q.filter(Employee.establishment_id == est_id)
    return q


def _load(payroll_id, context, action="read") -> Payroll:
    p = db.session.get(Payroll, payroll_id)
    if not p:
        raise NotFoundError("Payroll not found", {"payroll_id": payroll_id})
    ensure_access(context, p.employee.establishment_id, "payroll", p.id, action=action)
    return p


class PayrollService:
    """Monthly payroll records, one per employee per (year, month)."""

    @staticmethod
    def create(data: dict, context=None) -> Payroll:
        emp = validate_employee_relationship(data.get("employee_id"), context, "payroll")
        year, month = _period(data)

        if Payroll.query.filter_by(employee_id=emp.id, period_year=year, period_month=month).first():
            raise DuplicatePayrollPeriodError(emp.id, year, month)

        base = data.get("base_salary")
        if base is None:
            base = emp.salary
        p = Payroll(
            employee_id=emp.id,
            period_year=year,
            period_month=month,
            base_salary=Decimal(str(base or 0)),
            allowances=_lines(data.get("allowances"), "allowances"),
            deductions=_lines(data.get("deductions"), "deductions"),
            bonuses=_lines(data.get("bonuses"), "bonuses"),
            overtime_hours=Decimal(str(data.get("overtime_hours") or 0)),
            overtime_rate=Decimal(str(data.get("overtime_rate") or 0)),
            status="pending" if data.get("status") == "pending" else "draft",
            notes=data.get("notes"),
        )
        _totals(p, emp)
        db.session.add(p)
        try:
            db.session.commit()
        except IntegrityError:
            # lost the race against a concurrent create for the same period
            db.session.rollback()
            raise DuplicatePayrollPeriodError(emp.id, year, month)
        log.info("payroll %s created for employee %s (%04d-%02d)", p.id, emp.id, year, month)
        return p

    @staticmethod
    def get_by_id(payroll_id, context=None) -> Payroll:
        return _load(payroll_id, context)

    @staticmethod
    def get_all(filters: dict | None = None, page: int = 1, limit: int = 10, context=None) -> dict:
        filters = filters or {}
        q = _scoped_query(context, filters.get("establishment_id"))
        if filters.get("employee_id"):
            emp = db.session.get(Employee, filters["employee_id"])
            if emp:
                ensure_access(context, emp.establishment_id, "payroll", "list")
            q = q.filter(Payroll.employee_id == filters["employee_id"])
        if filters.get("year"):
            q = q.filter(Payroll.period_year == int(filters["year"]))
        if filters.get("month"):
            q = q.filter(Payroll.period_month == int(filters["month"]))
        if filters.get("status"):
            q = q.filter(Payroll.status == filters["status"])
        q = q.order_by(Payroll.period_year.desc(), Payroll.period_month.desc(), Payroll.id.desc())
        return paginate(q, page, limit)

    @staticmethod
    def update(payroll_id, data: dict, context=None) -> Payroll:
        p = _load(payroll_id, context, action="update")
        emp = p.employee

        if "employee_id" in data and str(data["employee_id"]) != str(p.employee_id):
            emp = validate_employee_relationship(
                data["employee_id"], context, "payroll", p.id, message="New employee not found"
            )
            p.employee_id = emp.id

        if any(k in data for k in ("period", "period_year", "period_month")):
            p.period_year, p.period_month = _period(data)

        for k in _UPDATABLE:
            if k not in data:
                continue
            v = data[k]
            if k in ("allowances", "deductions", "bonuses"):
                v = _lines(v, k)
            elif k in ("base_salary", "overtime_hours", "overtime_rate"):
                v = Decimal(str(v or 0))
            setattr(p, k, v)

        _totals(p, emp)
        key = (p.employee_id, p.period_year, p.period_month)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicatePayrollPeriodError(*key)
        return p

    @staticmethod
    def delete(payroll_id, context=None) -> bool:
        p = db.session.get(Payroll, payroll_id)
        if not p:
            return False
        ensure_access(context, p.employee.establishment_id, "payroll", p.id, action="delete")
        db.session.delete(p)
        db.session.commit()
        return True

    # ---------- queries ----------

    @staticmethod
    def get_by_employee(employee_id, year: int | None = None, month: int | None = None, context=None) -> list[Payroll]:
        emp = get_employee_or_404(employee_id)
        ensure_access(context, emp.establishment_id, "payroll", "list")
        q = Payroll.query.filter(Payroll.employee_id == emp.id)
        if year:
            q = q.filter(Payroll.period_year == int(year))
        if month:
            q = q.filter(Payroll.period_month == int(month))
        return q.order_by(Payroll.period_year.desc(), Payroll.period_month.desc()).all()

    @staticmethod
    def get_by_period(year: int, month: int, context=None, establishment_id=None) -> list[Payroll]:
        return (
            _scoped_query(context, establishment_id)
            .filter(Payroll.period_year == int(year), Payroll.period_month == int(month))
            .order_by(Employee.last_name, Employee.first_name)
            .all()
        )

    @staticmethod
    def get_summary(year: int, month: int, context=None, establishment_id=None) -> dict:
        rows = PayrollService.get_by_period(year, month, context, establishment_id)
        n = len(rows)
        gross = sum((Decimal(str(p.total_gross or 0)) for p in rows), Decimal("0"))
        deductions = sum((Decimal(str(p.total_deductions or 0)) for p in rows), Decimal("0"))
        net = sum((Decimal(str(p.net_salary or 0)) for p in rows), Decimal("0"))
        return {
            "year": int(year),
            "month": int(month),
            "total_employees": n,
            "total_gross": _round2(gross),
            "total_deductions": _round2(deductions),
            "total_net": _round2(net),
            "average_salary": _round2(net / n) if n else 0.0,
        }

    # ---------- status workflow ----------

    @staticmethod
    def _move(payroll_id, target: str, context) -> Payroll:
        p = _load(payroll_id, context, action="update")
        if p.status not in _FROM[target]:
            raise InvalidStatusTransitionError("payroll", p.status, target)
        p.status = target
        if target == "paid":
            p.paid_at = datetime.utcnow()
        db.session.commit()
        log.info("payroll %s -> %s", p.id, target)
        return p

    @staticmethod
    def approve(payroll_id, context=None) -> Payroll:
        return PayrollService._move(payroll_id, "approved", context)

    @staticmethod
    def mark_as_paid(payroll_id, context=None) -> Payroll:
        return PayrollService._move(payroll_id, "paid", context)

    @staticmethod
    def _move_period(year: int, month: int, target: str, context) -> list[Payroll]:
        rows = (
            _scoped_query(context)
            .filter(
                Payroll.period_year == int(year),
                Payroll.period_month == int(month),
                Payroll.status.in_(_FROM[target]),
            )
            .all()
        )
        now = datetime.utcnow()
        for p in rows:
            p.status = target
            if target == "paid":
                p.paid_at = now
        if rows:
            db.session.commit()
            log.info("payroll period %04d-%02d: %d record(s) -> %s", int(year), int(month), len(rows), target)
        return rows

    @staticmethod
    def approve_period(year: int, month: int, context=None) -> list[Payroll]:
        return PayrollService._move_period(year, month, "approved", context)

    @staticmethod
    def mark_period_as_paid(year: int, month: int, context=None) -> list[Payroll]:
        return PayrollService._move_period(year, month, "paid", context)

    # ---------- batch ----------

    @staticmethod
    def generate_for_all_employees(year: int, month: int, establishment_id=None, context=None) -> list[Payroll]:
        """
        Draft a payroll for every active employee in scope that has none for
        the period yet. Scoped callers always generate for their own
        establishment, whatever establishment_id they pass.
        """
        year, month = _period({"year": year, "month": month})

        target = establishment_id
        if context is not None and not context.can_access_all():
            target = context.get_establishment_id()

        q = Employee.query.filter(Employee.status == "active")
        if target is not None or (context is not None and not context.can_access_all()):
            q = q.filter(Employee.establishment_id == target)
        employees = q.order_by(Employee.id).all()
        if not employees:
            return []

        already = {
            eid for (eid,) in db.session.query(Payroll.employee_id).filter(
                Payroll.period_year == year,
                Payroll.period_month == month,
                Payroll.employee_id.in_([e.id for e in employees]),
            )
        }

        created = []
        for emp in employees:
            if emp.id in already:
                continue
            p = Payroll(
                employee_id=emp.id,
                period_year=year,
                period_month=month,
                base_salary=Decimal(str(emp.salary or 0)),
                allowances=[],
                deductions=[],
                bonuses=[],
                overtime_hours=Decimal("0"),
                overtime_rate=Decimal("0"),
                status="draft",
            )
            _totals(p, emp, with_position_allowance=True)
            db.session.add(p)
            created.append(p)

        if not created:
            return []
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            log.warning("payroll generation for %04d-%02d collided with a concurrent run", year, month)
            raise DuplicatePayrollPeriodError(None, year, month)

        log.info("generated %d payroll(s) for %04d-%02d (establishment=%s)", len(created), year, month, target)
        return created
