from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from flask import current_app, has_request_context, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from hotel_api.extensions import db
from hotel_api.models.access_log import EstablishmentAccessLog

log = logging.getLogger(__name__)


def _enabled() -> bool:
    return bool(current_app.config.get("ACCESS_AUDIT_ENABLED", True))


class EstablishmentAccessLogger:
    """
    Audit trail for establishment-scoped access checks. Denials are always
    recorded; allowed checks only when ACCESS_AUDIT_LOG_ALLOWED is set.
    Writes are best effort: a failed insert is logged and rolled back, the
    access decision itself is never changed by it.
    """

    @staticmethod
    def log(*, context, action: str, resource_type: str, resource_id, resource_establishment_id,
            allowed: bool, reason: str | None = None) -> Optional[EstablishmentAccessLog]:
        if not _enabled():
            return None

        entry = EstablishmentAccessLog(
            timestamp=datetime.utcnow(),
            user_id=str(context.get_user_id()) if context is not None else None,
            user_role=context.get_role() if context is not None else None,
            user_establishment_id=context.get_establishment_id() if context is not None else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            resource_establishment_id=resource_establishment_id,
            allowed=allowed,
            reason=reason,
        )
        if has_request_context():
            entry.ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
            entry.user_agent = (request.user_agent.string or "")[:255]

        try:
            db.session.add(entry)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("Failed to write establishment access log")
            return None
        return entry

    @staticmethod
    def get_violations(since: datetime, limit: int = 100) -> List[EstablishmentAccessLog]:
        return (
            EstablishmentAccessLog.query
            .filter(EstablishmentAccessLog.allowed.is_(False), EstablishmentAccessLog.timestamp >= since)
            .order_by(EstablishmentAccessLog.timestamp.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_user_history(user_id, limit: int = 100) -> List[EstablishmentAccessLog]:
        return (
            EstablishmentAccessLog.query
            .filter(EstablishmentAccessLog.user_id == str(user_id))
            .order_by(EstablishmentAccessLog.timestamp.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_stats(since: datetime) -> dict:
        rows = (
            db.session.query(EstablishmentAccessLog.allowed, func.count(EstablishmentAccessLog.id))
            .filter(EstablishmentAccessLog.timestamp >= since)
            .group_by(EstablishmentAccessLog.allowed)
            .all()
        )
        counts = {bool(allowed): n for allowed, n in rows}
        by_type = (
            db.session.query(EstablishmentAccessLog.resource_type, func.count(EstablishmentAccessLog.id))
            .filter(EstablishmentAccessLog.timestamp >= since, EstablishmentAccessLog.allowed.is_(False))
            .group_by(EstablishmentAccessLog.resource_type)
            .all()
        )
        return {
            "since": since.isoformat(),
            "allowed": counts.get(True, 0),
            "denied": counts.get(False, 0),
            "total": counts.get(True, 0) + counts.get(False, 0),
            "denied_by_resource_type": {t: n for t, n in by_type},
        }
