# activity_service/core/exceptions.py
"""
Error taxonomy for the lifecycle and enrollment engine.

Each error carries a stable `code` and a human readable message. The API
layer maps them to HTTP responses; nothing in the engine retries on them.
"""


class ActivityServiceError(Exception):
    """Base class for errors surfaced to the caller."""

    code = "error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ActivityServiceError):
    code = "not_found"
    status_code = 404


class ForbiddenError(ActivityServiceError):
    code = "forbidden"
    status_code = 403


class BadRequestError(ActivityServiceError):
    code = "bad_request"
    status_code = 400


class ConflictError(ActivityServiceError):
    code = "conflict"
    status_code = 409


class BusyError(ActivityServiceError):
    """Another request held the activity for longer than the lock timeout."""

    code = "busy"
    status_code = 503
