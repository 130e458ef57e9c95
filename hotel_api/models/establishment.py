from datetime import datetime

from hotel_api.extensions import db


establishment_staff = db.Table(
    "establishment_staff",
    db.Column("establishment_id", db.Integer, db.ForeignKey("establishments.id", ondelete="CASCADE"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Establishment(db.Model):
    """
    A hotel property; the tenant unit every employee, accommodation and
    booking belongs to.
    """

    __tablename__ = "establishments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # location
    city = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    country = db.Column(db.String(120), nullable=True)

    # contacts
    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)

    pricing_mode = db.Column(db.String(20), nullable=False, default="nightly")  # nightly|monthly
    services = db.Column(db.JSON, nullable=False, default=list)

    manager_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_establishment_manager"),
        nullable=True,
        index=True,
    )

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_establishment_city", "city"),
        db.Index("ix_establishment_pricing_mode", "pricing_mode"),
    )

    manager = db.relationship("User", foreign_keys=[manager_id])
    staff = db.relationship("User", secondary=establishment_staff, lazy="selectin")

    @property
    def staff_ids(self):
        return [u.id for u in self.staff]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": {"city": self.city, "address": self.address, "country": self.country},
            "contacts": {"phone": self.phone, "email": self.email, "website": self.website},
            "pricing_mode": self.pricing_mode,
            "services": list(self.services or []),
            "manager_id": self.manager_id,
            "manager_name": self.manager.full_name if self.manager else None,
            "staff_ids": self.staff_ids,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Accommodation(db.Model):
    __tablename__ = "accommodations"

    id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(
        db.Integer,
        db.ForeignKey("establishments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="standard_room")  # standard_room|suite|house|apartment
    pricing_mode = db.Column(db.String(20), nullable=False, default="nightly")  # nightly|monthly|hourly
    base_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    capacity = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(20), nullable=False, default="available")  # available|occupied|maintenance|reserved
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("establishment_id", "name", name="uq_accommodation_establishment_name"),
    )

    establishment = db.relationship(
        "Establishment", backref=db.backref("accommodations", lazy="dynamic")
    )
