"""
Domain exceptions for the expense and trip services.

Services raise these; the handler registered in ``main.py`` converts them
into JSON error responses. Routes never need to catch them.
"""
from typing import Any, Optional


class TripLedgerError(Exception):
    """Base exception for all service errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TripLedgerError):
    """Raised when input is inconsistent. Nothing has been written."""
    status_code = 422


class NotFoundError(TripLedgerError):
    """Raised when a record does not exist or lies outside the caller's group."""
    status_code = 404


class InvalidRangeError(TripLedgerError):
    """Raised when a trip's end date precedes its start date."""
    status_code = 400


class ConflictError(TripLedgerError):
    """Raised when a write collides with concurrent or existing state."""
    status_code = 409


class ScheduleChangeConflict(ConflictError):
    """Raised when a date change would delete day-anchored content without confirmation."""
    pass
