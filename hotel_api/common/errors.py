# hotel_api/common/errors.py
from __future__ import annotations

from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from hotel_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        err = {"message": self.message, "code": self.code}
        if self.payload:
            err["detail"] = self.payload
        return {"success": False, "error": err}


class NotFoundError(APIError):
    def __init__(self, message="Not found", payload=None):
        super().__init__("NOT_FOUND", message, 404, payload)


class ValidationError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION_ERROR", message, 422, payload)


# ---------- establishment scoping ----------

class EstablishmentError(APIError):
    """Base for errors raised by establishment-scoped access control."""
    status = 400
    error_code = "ESTABLISHMENT_ERROR"

    def __init__(self, message, details=None):
        super().__init__(self.error_code, message, self.status, details)

    @property
    def details(self):
        return self.payload


class EstablishmentAccessDeniedError(EstablishmentError):
    status = 403
    error_code = "ESTABLISHMENT_ACCESS_DENIED"

    def __init__(self, *, user_id=None, resource_type, resource_id,
                 user_establishment_id=None, resource_establishment_id=None):
        super().__init__(
            "Access denied: Resource belongs to a different establishment",
            {
                "user_id": user_id,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "user_establishment_id": user_establishment_id,
                "resource_establishment_id": resource_establishment_id,
            },
        )


class EstablishmentNotFoundError(EstablishmentError):
    status = 404
    error_code = "ESTABLISHMENT_NOT_FOUND"

    def __init__(self, establishment_id):
        super().__init__("Establishment not found", {"establishment_id": establishment_id})


class CrossEstablishmentRelationshipError(EstablishmentError):
    status = 400
    error_code = "CROSS_ESTABLISHMENT_RELATIONSHIP"

    def __init__(self, *, parent_resource: dict, child_resource: dict):
        super().__init__(
            "Cannot create relationship between resources from different establishments",
            {
                "parent_resource": parent_resource,
                "child_resource": child_resource,
                "establishments": {
                    "parent": parent_resource.get("establishment_id"),
                    "child": child_resource.get("establishment_id"),
                },
            },
        )


class MissingEstablishmentContextError(EstablishmentError):
    status = 500
    error_code = "MISSING_ESTABLISHMENT_CONTEXT"

    def __init__(self, *, operation, user_id=None):
        super().__init__(
            "Internal error: Establishment context required but not provided",
            {"user_id": user_id, "operation": operation},
        )


def is_establishment_error(exc) -> bool:
    return isinstance(exc, EstablishmentError)


# ---------- domain rules ----------

class InsufficientBalanceError(APIError):
    def __init__(self, available, requested):
        super().__init__(
            "INSUFFICIENT_BALANCE",
            "Insufficient annual leave balance",
            422,
            {"available": available, "requested": requested},
        )


class LeaveOverlapError(APIError):
    def __init__(self, existing_id):
        super().__init__(
            "LEAVE_OVERLAP",
            "Leave request overlaps with existing leave",
            409,
            {"existing_leave_id": existing_id},
        )


class DuplicatePayrollPeriodError(APIError):
    def __init__(self, employee_id, year, month):
        super().__init__(
            "PAYROLL_PERIOD_EXISTS",
            "Payroll record already exists for this period",
            409,
            {"employee_id": employee_id, "year": year, "month": month},
        )


class InvalidStatusTransitionError(APIError):
    def __init__(self, resource_type, current, target):
        super().__init__(
            "INVALID_STATUS_TRANSITION",
            f"Cannot move {resource_type} from '{current}' to '{target}'",
            409,
            {"resource_type": resource_type, "from": current, "to": target},
        )


# ---------- handlers ----------

@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)

@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))

@bp_errors.app_errorhandler(Exception)
def _unhandled(e: Exception):
    current_app.logger.exception(e)
    return fail(message="Internal Server Error", status=500)
