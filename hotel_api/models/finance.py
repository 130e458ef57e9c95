from datetime import datetime
from hotel_api.extensions import db

# invoices counted as revenue (the collected part: total - balance)
REVENUE_INVOICE_STATUSES = ("paid", "partial")
EXPENSE_CATEGORIES = (
    "utilities", "maintenance", "supplies", "salaries",
    "marketing", "taxes", "insurance", "other",
)

class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(db.Integer, db.ForeignKey("establishments.id", ondelete="RESTRICT"), nullable=False)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    invoice_number = db.Column(db.String(40), unique=True, nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)   # amount still owed
    status = db.Column(db.String(20), nullable=False, default="unpaid")  # unpaid|partial|paid
    issued_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_invoice_establishment_issued", "establishment_id", "issued_at"),
    )


class Expense(db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(db.Integer, db.ForeignKey("establishments.id", ondelete="RESTRICT"), nullable=False)
    category = db.Column(db.String(30), nullable=False, index=True)    # see EXPENSE_CATEGORIES
    description = db.Column(db.Text, nullable=False, default="")
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")  # pending|approved|rejected
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_expense_establishment_category", "establishment_id", "category"),
    )
