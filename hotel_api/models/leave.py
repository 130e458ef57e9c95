from datetime import datetime, date
from hotel_api.extensions import db

LEAVE_TYPES = ("annual", "sick", "maternity", "paternity", "unpaid", "other")
LEAVE_STATUSES = ("pending", "approved", "rejected", "cancelled")
# statuses that block another leave over the same dates
ACTIVE_LEAVE_STATUSES = ("pending", "approved")

class Leave(db.Model):
    __tablename__ = "leaves"
    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, index=True)        # see LEAVE_TYPES
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    days = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)  # pending|approved|rejected|cancelled

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_leave_employee_dates", "employee_id", "start_date", "end_date"),
        db.CheckConstraint("end_date >= start_date", name="ck_leave_date_range"),
    )

    employee = db.relationship("Employee", backref=db.backref("leaves", lazy="dynamic", cascade="save-update, merge, delete"))
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])

    @staticmethod
    def calculate_days(start_date: date, end_date: date) -> int:
        """Inclusive calendar day count; a same-day leave is one day."""
        return abs((end_date - start_date).days) + 1
