# app/exceptions.py
"""
Error taxonomy for the workflow tracker.
Each error carries the HTTP status the API layer answers with.
"""


class TrackerError(Exception):
    """Base exception for all tracker errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(TrackerError):
    """Missing field or rejected duplicate report. Nothing was written."""

    status_code = 400


class NotFoundError(TrackerError):
    """Requested vehicle has no recorded visits."""

    status_code = 404


class StoreError(TrackerError):
    """Persistence layer failure. The session was rolled back."""

    def __init__(self, message: str, cause: Exception = None):
        self.cause = cause
        super().__init__(message)


class ConcurrentUpdateError(StoreError):
    """Another writer changed the visit between our read and our write."""

    status_code = 409
