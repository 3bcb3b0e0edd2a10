"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``edupresence.main`` turns them into ``{"error": ...}``
responses. Gateway failures (``StoreError``) never reach callers directly.
"""
from typing import Optional


class AttendanceError(Exception):
    status_code = 500
    code: Optional[str] = None
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


class BadRequest(AttendanceError):
    status_code = 400
    default_message = "Bad request"


class AlreadyMarked(BadRequest):
    code = "already_marked"
    default_message = "Attendance already marked for today"


class Unauthorized(AttendanceError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AttendanceError):
    status_code = 403
    default_message = "Forbidden"


class NotOwner(Forbidden):
    default_message = "Unauthorized: Teacher does not own this class"


class NotEnrolled(Forbidden):
    default_message = "Student not enrolled in this class"


class Internal(AttendanceError):
    status_code = 500


# --- Session token failures ---

class TokenError(Unauthorized):
    default_message = "Invalid session token"


class InvalidSignature(TokenError):
    pass


class Malformed(TokenError):
    pass


class Expired(TokenError):
    default_message = "Session expired"


# --- Data store gateway failures ---

class StoreError(Exception):
    """Raised by a gateway when the backing store fails or answers unexpectedly."""


class DuplicateKey(StoreError):
    """An insert violated the (class_id, student_id, date) uniqueness constraint."""
