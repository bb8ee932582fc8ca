"""Error types raised by the repository, inventory and coordinator.

Routers never build these; they are turned into HTTP responses by the
handlers registered in ``main.py``.
"""
from typing import Iterable, Optional


class VisitorServiceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"error": type(self).__name__, "message": self.message}


class ValidationError(VisitorServiceError):
    status_code = 422

    def __init__(self, message: str, missing_fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing_fields = sorted(missing_fields or [])

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["missing_fields"] = self.missing_fields
        return detail


class NotFound(VisitorServiceError):
    status_code = 404


class BadgeUnavailable(VisitorServiceError):
    status_code = 409


class InvalidStateTransition(VisitorServiceError):
    status_code = 409

    def __init__(self, subject: str, current: str, attempted: str):
        super().__init__(f"Cannot {attempted} {subject} while status is '{current}'")
        self.current = current
        self.attempted = attempted

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail.update(current_status=self.current, attempted=self.attempted)
        return detail


class CheckInNotAllowed(VisitorServiceError):
    status_code = 409


class TransientError(VisitorServiceError):
    """Datastore/transport failure; the caller may retry the whole operation."""
    status_code = 503
