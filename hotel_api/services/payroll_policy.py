"""
Automatic payroll lines.

Benefit and social security deductions are taken from base salary, income tax
from gross. Every line added here carries "auto": True so a recalculation can
drop and rebuild them without touching lines entered by hand.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

CENT = Decimal("0.01")

HEALTH_INSURANCE_RATE = Decimal("0.05")
RETIREMENT_PLAN_RATE = Decimal("0.10")
SOCIAL_SECURITY_RATE = Decimal("0.08")

# (lower bound, rate): each rate applies to the slice of gross between its bound and the next
INCOME_TAX_SLABS = (
    (Decimal("1000"), Decimal("0.10")),
    (Decimal("2000"), Decimal("0.15")),
    (Decimal("5000"), Decimal("0.25")),
)

# first match wins, against the lower-cased position
POSITION_ALLOWANCES = (
    (("manager", "directeur", "director"), "responsibility_allowance", Decimal("0.15")),
    (("chef", "supervisor"), "supervision_allowance", Decimal("0.10")),
    (("technicien", "technician", "specialist"), "technical_allowance", Decimal("0.05")),
)


def _pct(amount, rate: Decimal) -> Decimal:
    return (Decimal(str(amount or 0)) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def _auto(type_: str, amount: Decimal) -> dict:
    return {"type": type_, "amount": float(amount), "auto": True}


def _manual(lines) -> list:
    return [line for line in (lines or []) if not line.get("auto")]


def enabled() -> bool:
    return bool(current_app.config.get("PAYROLL_STATUTORY_DEDUCTIONS", True))


def position_allowance(position, base) -> list[dict]:
    pos = (position or "").lower()
    for keywords, kind, rate in POSITION_ALLOWANCES:
        if any(k in pos for k in keywords):
            return [_auto(kind, _pct(base, rate))]
    return []


def benefit_deductions(employee, base) -> list[dict]:
    out = []
    if employee.health_insurance:
        out.append(_auto("health_insurance", _pct(base, HEALTH_INSURANCE_RATE)))
    if employee.retirement_plan:
        out.append(_auto("retirement_plan", _pct(base, RETIREMENT_PLAN_RATE)))
    out.append(_auto("social_security", _pct(base, SOCIAL_SECURITY_RATE)))
    return out


def income_tax(gross) -> Decimal:
    gross = Decimal(str(gross or 0))
    tax = Decimal("0")
    uppers = [lo for lo, _ in INCOME_TAX_SLABS[1:]] + [None]
    for (lo, rate), hi in zip(INCOME_TAX_SLABS, uppers):
        if gross <= lo:
            break
        top = gross if hi is None else min(gross, hi)
        tax += (top - lo) * rate
    return tax.quantize(CENT, rounding=ROUND_HALF_UP)


def apply(payroll, employee, *, with_position_allowance: bool = False):
    """
    Rebuild the automatic lines on payroll and recompute its totals.
    A position allowance is added when asked for, and refreshed when the
    payroll already carries one.
    """
    base = payroll.base_salary
    current = payroll.allowances or []
    allowances = _manual(current)
    if with_position_allowance or len(allowances) != len(current):
        allowances += position_allowance(employee.position, base)

    # assign fresh lists; JSON columns do not track in-place mutation
    payroll.allowances = allowances
    payroll.deductions = _manual(payroll.deductions) + benefit_deductions(employee, base)
    payroll.recompute_totals()

    tax = income_tax(payroll.total_gross)
    if tax > 0:
        payroll.deductions = payroll.deductions + [_auto("income_tax", tax)]
        payroll.recompute_totals()
    return payroll
