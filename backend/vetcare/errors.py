"""Error kinds raised by the appointment core.

Each error carries a stable ``kind`` and a human readable message. The HTTP
layer maps kinds to status codes; nothing else about the failure is exposed.
"""


class AppointmentError(Exception):
    kind = "PROCESSING_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message, "status_code": self.status_code}


class NotFoundError(AppointmentError):
    kind = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(AppointmentError):
    kind = "UNAUTHORIZED"
    status_code = 403


class PolicyViolationError(AppointmentError):
    kind = "POLICY_VIOLATION"
    status_code = 409


class InvalidRequestError(AppointmentError):
    kind = "INVALID_REQUEST"
    status_code = 422


class ConflictError(AppointmentError):
    """Stored revision moved under a read-modify-write cycle."""
    kind = "CONFLICT"
    status_code = 409


class ProcessingError(AppointmentError):
    """A collaborator (store, directory) failed or timed out."""
    kind = "PROCESSING_ERROR"
    status_code = 502


class NotificationError(Exception):
    """Delivery failure from the e-mail channel. Never surfaced to callers."""
