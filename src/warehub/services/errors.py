"""Error taxonomy for booking and offer operations.

Every error is raised before the surrounding transaction commits. The HTTP
layer maps ``status_code``/``code`` onto the response; nothing is retried
automatically except write contention (see ``ConflictError``).
"""

from typing import Any


class BookingError(Exception):
    """Base class for caller-visible booking engine failures."""

    status_code = 400
    code = "booking_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PermissionDenied(BookingError):
    """Caller lacks the role or ownership required for the operation."""

    status_code = 403
    code = "permission_denied"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class ValidationError(BookingError):
    """A field is missing, negative or out of range."""

    status_code = 422
    code = "validation_error"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class ReferentialError(BookingError):
    """An allocation references a catalog entry that does not exist or does not fit."""

    status_code = 422
    code = "referential_error"

    def __init__(self, entity: str, entity_id: Any, reason: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id}: {reason}")


class InvalidState(BookingError):
    """Operation attempted in the wrong lifecycle phase."""

    status_code = 409
    code = "invalid_state"


class NotFoundError(BookingError):
    """Record does not exist. Only raised after access was already granted."""

    status_code = 404
    code = "not_found"


class ConflictError(BookingError):
    """Concurrent write on the same record survived the internal retry."""

    status_code = 409
    code = "conflict"
