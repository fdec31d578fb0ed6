# payroll_api/common/errors.py
from flask import Blueprint, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from payroll_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    """Missing or invalid input (required fields, non-positive amounts, bad dates)."""
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION_ERROR", message, 422, payload)


class NotFoundError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("NOT_FOUND", message, 404, payload)


class InsufficientBalanceError(APIError):
    def __init__(self, available, requested):
        super().__init__(
            "INSUFFICIENT_BALANCE",
            f"Insufficient leave balance. Available: {available} days, Requested: {requested} days",
            422,
            {"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class InvalidStateError(APIError):
    """Transition attempted on a record that is no longer in the required state."""
    def __init__(self, message, payload=None):
        super().__init__("INVALID_STATE", message, 409, payload)


class ForbiddenError(APIError):
    def __init__(self, message="Access denied.", payload=None):
        super().__init__("FORBIDDEN", message, 403, payload)


class EmptyInputError(APIError):
    def __init__(self, message="No active employees found.", payload=None):
        super().__init__("EMPTY_INPUT", message, 422, payload)


class NoWorkingDaysError(APIError):
    def __init__(self, message=None, payload=None):
        super().__init__(
            "NO_WORKING_DAYS",
            message or "No working days found in the specified pay period. Please check the date range.",
            422,
            payload,
        )


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    if e.status_code >= 500:
        current_app.logger.error("api error %s: %s", e.code, e.message)
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
