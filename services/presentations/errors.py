"""Domain errors raised by the presentation scheduling components."""


class SchedulingError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = 500
    error_code = "server_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    """Raised when a presentation or slot does not exist."""

    status_code = 404
    error_code = "not_found"


class ForbiddenError(SchedulingError):
    """Raised when the caller may not act, or registration is closed."""

    status_code = 403
    error_code = "forbidden"


class ConflictError(SchedulingError):
    """Raised when current slot or roster state prevents the operation."""

    status_code = 409
    error_code = "conflict"


class SchedulingValidationError(SchedulingError):
    """Raised when a request is malformed or violates a bound."""

    status_code = 400
    error_code = "validation_error"
