from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from hotel_api.extensions import db

PAYROLL_STATUSES = ("draft", "pending", "approved", "paid")

CENT = Decimal("0.01")

def _money(x) -> Decimal:
    return Decimal(str(x or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


class Payroll(db.Model):
    __tablename__ = "payrolls"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    period_year = db.Column(db.Integer, nullable=False)
    period_month = db.Column(db.Integer, nullable=False)

    base_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    # lists of {"type": str, "amount": number}
    allowances = db.Column(db.JSON, nullable=False, default=list)
    deductions = db.Column(db.JSON, nullable=False, default=list)
    bonuses = db.Column(db.JSON, nullable=False, default=list)
    overtime_hours = db.Column(db.Numeric(8, 2), nullable=False, default=0)
    overtime_rate = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    total_gross = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default="draft", index=True)  # draft|pending|approved|paid
    paid_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        # one payroll per employee per period, enforced by the database
        db.UniqueConstraint("employee_id", "period_year", "period_month", name="uq_payroll_employee_period"),
        db.Index("ix_payroll_period_status", "period_year", "period_month", "status"),
        db.CheckConstraint("period_month BETWEEN 1 AND 12", name="ck_payroll_period_month"),
    )

    employee = db.relationship("Employee", backref=db.backref("payrolls", lazy="dynamic", cascade="save-update, merge, delete"))

    def recompute_totals(self):
        """gross = base + allowances + bonuses + overtime; net never drops below zero."""
        gross = _money(self.base_salary)
        for line in (self.allowances or []):
            gross += _money(line.get("amount"))
        for line in (self.bonuses or []):
            gross += _money(line.get("amount"))
        gross += _money(Decimal(str(self.overtime_hours or 0)) * Decimal(str(self.overtime_rate or 0)))

        deductions = sum((_money(line.get("amount")) for line in (self.deductions or [])), Decimal("0.00"))

        self.total_gross = _money(gross)
        self.total_deductions = _money(deductions)
        self.net_salary = max(Decimal("0.00"), _money(gross - deductions))
        return self
