from datetime import datetime
from hotel_api.extensions import db

ACCESS_ACTIONS = ("read", "create", "update", "delete")

class EstablishmentAccessLog(db.Model):
    """One row per establishment-scoped access attempt, allowed or denied."""
    __tablename__ = "establishment_access_logs"

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    user_role = db.Column(db.String(20), nullable=True)
    user_establishment_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(20), nullable=False)          # see ACCESS_ACTIONS
    resource_type = db.Column(db.String(40), nullable=False)
    resource_id = db.Column(db.String(64), nullable=False)
    resource_establishment_id = db.Column(db.Integer, nullable=True, index=True)
    allowed = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(255))
