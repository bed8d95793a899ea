"""Custom exception classes for the booking service."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Base exception for all API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class AuthenticationError(APIException):
    """Exception raised for authentication failures."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=401,
            code="AUTHENTICATION_ERROR",
            details=details,
        )


class AuthorizationError(APIException):
    """Exception raised for authorization failures."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=403,
            code="AUTHORIZATION_ERROR",
            details=details,
        )


class ValidationError(APIException):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=422,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class NotFoundError(APIException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        if resource_id:
            message += f" with id: {resource_id}"
        error_details = details or {}
        error_details["resource"] = resource
        if resource_id:
            error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            code="NOT_FOUND",
            details=error_details,
        )


class ConflictError(APIException):
    """Exception raised when a slot-run overlaps an existing booking."""

    def __init__(
        self,
        message: str = "Requested slot is already booked",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=409,
            code="CONFLICT",
            details=details,
        )


class DatabaseError(APIException):
    """Exception raised for database-related errors."""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="DATABASE_ERROR",
            details=details,
        )


class PastDateError(APIException):
    """Exception raised when a booking date precedes today."""

    def __init__(
        self,
        message: str = "Cannot book appointments in the past",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            code="PAST_DATE",
            details=details,
        )


class AdvanceWindowViolation(APIException):
    """Exception raised when a booking falls outside the salon's advance window."""

    def __init__(
        self,
        message: str = "Requested time is outside the booking window",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            code="ADVANCE_WINDOW_VIOLATION",
            details=details,
        )


class ClosedDayError(APIException):
    """Exception raised when the salon is explicitly closed on the requested weekday."""

    def __init__(
        self,
        weekday: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["weekday"] = weekday
        super().__init__(
            message=f"Salon is closed on {weekday}",
            status_code=422,
            code="CLOSED_DAY",
            details=error_details,
        )


class SlotRangeError(APIException):
    """Exception raised for off-grid times or slot-runs that pass closing time."""

    def __init__(
        self,
        message: str = "Requested time is not a bookable slot",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=422,
            code="SLOT_RANGE",
            details=details,
        )


class IllegalTransitionError(APIException):
    """Exception raised for status changes the current state does not permit."""

    def __init__(
        self,
        current_status: str,
        target_status: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["current_status"] = current_status
        error_details["target_status"] = target_status
        super().__init__(
            message=message or f"Cannot change appointment status from '{current_status}' to '{target_status}'",
            status_code=409,
            code="ILLEGAL_TRANSITION",
            details=error_details,
        )


class PolicyViolation(APIException):
    """Exception raised when a customer action breaks the salon's booking policy."""

    def __init__(
        self,
        message: str = "Action not allowed by salon policy",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=403,
            code="POLICY_VIOLATION",
            details=details,
        )
