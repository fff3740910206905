"""Custom application exceptions.

Each exception carries an HTTP status code for the transport layer and a
stable machine-readable ``code`` naming the guard that failed.
"""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500, code: str = "internal_error"):
        """Initialize exception with message, status code and error code."""
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Referenced appointment, patient or doctor does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404, code=code)


class ValidationException(AppException):
    """Structurally invalid input, detected before any mutation."""

    def __init__(self, message: str = "Validation error", code: str = "validation_failed"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422, code=code)


class RescheduleWindowClosedException(ValidationException):
    """The original appointment start is too close to allow rescheduling."""

    def __init__(
        self,
        message: str = "Appointments cannot be rescheduled this close to their start time",
    ):
        """Initialize with the window-closed code."""
        super().__init__(message, code="appointment.reschedule_window_closed")


class StatusConflictException(AppException):
    """Operation is not permitted in the appointment's current status."""

    def __init__(self, message: str = "Status conflict", code: str = "appointment.status_conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, code=code)


class ResourceConflictException(AppException):
    """Requested window overlaps another active appointment of the same doctor."""

    def __init__(
        self,
        message: str = "Doctor has a conflicting appointment during the requested time",
        code: str = "appointment.conflict",
    ):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, code=code)


class ConcurrencyConflictException(AppException):
    """The appointment was modified by another writer between read and write."""

    def __init__(
        self,
        message: str = (
            "The appointment was modified by another request. Reload it and retry the operation."
        ),
        code: str = "appointment.concurrency_conflict",
    ):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409, code=code)
