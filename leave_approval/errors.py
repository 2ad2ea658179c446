"""
Error kinds reported by the directory and the request engine.

Expected failures are returned as values (``record | LeaveError``) so callers
can report them verbatim and re-prompt. They are still exceptions, which lets
the HTTP layer raise them and map each kind to a status code.
"""


class LeaveError(Exception):
    """Base class for every user-reportable failure."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}

    def __eq__(self, other):
        return type(self) is type(other) and self.message == other.message

    def __hash__(self):
        return hash((type(self), self.message))


class ValidationFailed(LeaveError):
    """Missing or invalid field in a submission or registration."""

    kind = "validation_error"


class Forbidden(LeaveError):
    """Role or ownership mismatch on a decision or admin-only view."""

    kind = "forbidden"


class NotFound(LeaveError):
    """Unknown leave request id."""

    kind = "not_found"


class AuthError(LeaveError):
    """Bad credentials, or no logged-in principal."""

    kind = "auth_error"
