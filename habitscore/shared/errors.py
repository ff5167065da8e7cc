"""Error taxonomy for the scoring core.

Each error carries a stable ``code`` returned to API callers and the HTTP
status the global exception handler maps it to. ``NotFoundError`` and
``ValidationError`` also subclass the builtin ``LookupError`` / ``ValueError``
so generic handlers keep working.
"""


class HabitscoreError(Exception):
    code: str = "ERROR"
    error_type: str = "error"
    status_code: int = 500

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(HabitscoreError, LookupError):
    code = "NOT_FOUND"
    error_type = "not_found"
    status_code = 404


class ConflictError(HabitscoreError):
    code = "CONFLICT"
    error_type = "conflict"
    status_code = 409


class NeedsConfirmationError(ConflictError):
    """A destructive change was requested without explicit confirmation."""

    code = "NEEDS_CONFIRMATION"


class ValidationError(HabitscoreError, ValueError):
    code = "VALIDATION_ERROR"
    error_type = "bad_request"
    status_code = 400


class InternalError(HabitscoreError):
    code = "INTERNAL_ERROR"
    error_type = "internal_server_error"
    status_code = 500
