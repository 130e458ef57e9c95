from datetime import datetime
from hotel_api.extensions import db

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
# bookings that consume accommodation-nights
OCCUPYING_STATUSES = ("confirmed", "completed")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)
    establishment_id = db.Column(db.Integer, db.ForeignKey("establishments.id", ondelete="RESTRICT"), nullable=False)
    accommodation_id = db.Column(db.Integer, db.ForeignKey("accommodations.id", ondelete="RESTRICT"), nullable=False, index=True)
    booking_code = db.Column(db.String(32), unique=True, nullable=False)
    client_name = db.Column(db.String(255), nullable=True)

    check_in = db.Column(db.Date, nullable=False)
    check_out = db.Column(db.Date, nullable=False)   # exclusive: the guest leaves that morning
    guests = db.Column(db.Integer, nullable=False, default=1)
    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default="pending")           # see BOOKING_STATUSES
    payment_status = db.Column(db.String(20), nullable=False, default="unpaid")    # unpaid|partial|paid

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_booking_establishment_status_checkin", "establishment_id", "status", "check_in"),
    )

    accommodation = db.relationship("Accommodation", lazy="joined")
