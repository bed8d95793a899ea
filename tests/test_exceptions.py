"""Tests for exception handling."""

from booking_core.exceptions import (
    AdvanceWindowViolation,
    APIException,
    AuthenticationError,
    AuthorizationError,
    ClosedDayError,
    ConflictError,
    DatabaseError,
    IllegalTransitionError,
    NotFoundError,
    PastDateError,
    PolicyViolation,
    SlotRangeError,
    ValidationError,
)


def test_api_exception():
    """Test base APIException."""
    exc = APIException("Test error", status_code=400, code="TEST_ERROR")
    assert exc.message == "Test error"
    assert exc.status_code == 400
    assert exc.code == "TEST_ERROR"
    assert exc.to_dict()["error"]["message"] == "Test error"


def test_api_exception_default_code():
    """The class name is the code when none is given."""
    exc = APIException("Boom")
    assert exc.code == "APIException"
    assert exc.details == {}


def test_authentication_error():
    """Test AuthenticationError."""
    exc = AuthenticationError("Token expired")
    assert exc.status_code == 401
    assert exc.code == "AUTHENTICATION_ERROR"
    assert exc.message == "Token expired"


def test_authorization_error():
    """Test AuthorizationError."""
    exc = AuthorizationError("Access denied")
    assert exc.status_code == 403
    assert exc.code == "AUTHORIZATION_ERROR"


def test_validation_error():
    """Test ValidationError."""
    exc = ValidationError("Validation failed", errors={"service_id": "svc-1"})
    assert exc.status_code == 422
    assert exc.code == "VALIDATION_ERROR"
    assert exc.details["validation_errors"] == {"service_id": "svc-1"}


def test_not_found_error():
    """Test NotFoundError."""
    exc = NotFoundError("Appointment", resource_id="123")
    assert exc.status_code == 404
    assert exc.code == "NOT_FOUND"
    assert "Appointment not found with id: 123" in exc.message
    assert exc.details["resource_id"] == "123"


def test_conflict_error():
    """Test ConflictError."""
    exc = ConflictError(details={"taken": ["10:00"]})
    assert exc.status_code == 409
    assert exc.code == "CONFLICT"
    assert exc.details["taken"] == ["10:00"]


def test_database_error():
    """Test DatabaseError."""
    exc = DatabaseError("Connection failed")
    assert exc.status_code == 500
    assert exc.code == "DATABASE_ERROR"


def test_booking_window_errors():
    """Date and lead-time problems are unprocessable requests."""
    assert PastDateError().status_code == 422
    assert PastDateError().code == "PAST_DATE"
    assert AdvanceWindowViolation().status_code == 422
    assert AdvanceWindowViolation().code == "ADVANCE_WINDOW_VIOLATION"


def test_closed_day_error():
    """Test ClosedDayError."""
    exc = ClosedDayError("sunday")
    assert exc.status_code == 422
    assert exc.code == "CLOSED_DAY"
    assert exc.message == "Salon is closed on sunday"
    assert exc.details["weekday"] == "sunday"


def test_slot_range_error():
    """Test SlotRangeError."""
    exc = SlotRangeError(details={"time": "17:30"})
    assert exc.status_code == 422
    assert exc.code == "SLOT_RANGE"


def test_illegal_transition_error():
    """Test IllegalTransitionError."""
    exc = IllegalTransitionError("pending", "completed")
    assert exc.status_code == 409
    assert exc.code == "ILLEGAL_TRANSITION"
    assert "'pending' to 'completed'" in exc.message
    assert exc.details == {"current_status": "pending", "target_status": "completed"}


def test_policy_violation():
    """Test PolicyViolation."""
    exc = PolicyViolation()
    assert exc.status_code == 403
    assert exc.code == "POLICY_VIOLATION"
