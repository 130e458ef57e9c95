from datetime import datetime
from hotel_api.extensions import db
from werkzeug.security import generate_password_hash, check_password_hash

ROLES = ("root", "super_admin", "admin", "manager", "staff", "accountant", "receptionist")

class User(db.Model):
    __tablename__ = "users"

    id           = db.Column(db.Integer, primary_key=True)
    email        = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash= db.Column(db.String(255), nullable=False)
    full_name    = db.Column(db.String(255), nullable=False)
    role         = db.Column(db.String(20), nullable=False, default="staff")  # see ROLES
    # scoped roles (manager/staff) are pinned to one establishment
    establishment_id = db.Column(db.Integer, db.ForeignKey("establishments.id", ondelete="SET NULL"), nullable=True, index=True)
    status       = db.Column(db.String(20), default="active")
    created_at   = db.Column(db.DateTime, default=datetime.utcnow)

    establishment = db.relationship("Establishment", foreign_keys=[establishment_id])

    # --- helpers ---
    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    @property
    def employee_id(self):
        """First Employee.id linked via Employee.user_id == self.id, or None."""
        from hotel_api.models.employee import Employee  # late import to avoid circulars
        emp = Employee.query.filter_by(user_id=self.id).first()
        return emp.id if emp else None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
