"""
Service-layer error taxonomy.

Every error raised by a service carries a machine-readable ``kind`` next to its
human-readable message, so API clients can branch on the kind instead of
parsing text. The FastAPI exception handler in ``penpal.main`` renders these as
``{"detail": <message>, "kind": <kind>}`` with ``status_code``.
"""
from fastapi import status


class PenpalError(Exception):
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class Unauthenticated(PenpalError):
    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotAuthorized(PenpalError):
    """Caller lacks permission over the target."""
    kind = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(PenpalError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailed(PenpalError):
    """Malformed or out-of-range input."""
    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Conflict(PenpalError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class SelfReferenceError(ValidationFailed):
    kind = "self_reference"


class AlreadyFriends(Conflict):
    kind = "already_friends"


class DuplicateRequest(Conflict):
    kind = "duplicate_request"


class NotFriends(Conflict):
    kind = "not_friends"


class AlreadyBlocked(Conflict):
    kind = "already_blocked"


class AlreadyReported(Conflict):
    kind = "already_reported"
