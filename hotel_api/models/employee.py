from datetime import datetime
from hotel_api.extensions import db

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    # every employee belongs to exactly one establishment; all access checks pivot on it
    establishment_id = db.Column(db.Integer, db.ForeignKey("establishments.id", ondelete="RESTRICT"), nullable=False)
    user_id          = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    employee_number = db.Column(db.String(32), unique=True, nullable=False)   # EMP-YYYY-NNNN
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)
    email      = db.Column(db.String(255), nullable=True)
    phone      = db.Column(db.String(30), nullable=True)

    position   = db.Column(db.String(120), nullable=False, default="")
    department = db.Column(db.String(120), nullable=True)
    hire_date  = db.Column(db.Date, nullable=True)
    contract_type = db.Column(db.String(20), default="permanent", nullable=False)  # permanent/temporary/contract
    salary     = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    status     = db.Column(db.String(16), default="active", nullable=False)       # active/inactive/terminated

    health_insurance = db.Column(db.Boolean, default=False, nullable=False)
    retirement_plan  = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_emp_establishment_id", "establishment_id"),
        db.Index("ix_emp_establishment_status", "establishment_id", "status"),
    )

    establishment = db.relationship("Establishment", lazy="joined")
    user          = db.relationship("User", foreign_keys=[user_id])

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name or ''}".strip()
