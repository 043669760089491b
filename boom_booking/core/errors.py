from __future__ import annotations

from typing import Any


class BookingAppError(Exception):
    """Base class for errors that are reported to API callers as structured results."""

    status_code = 500
    code = "internal"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class InvalidInput(BookingAppError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class InvalidInterval(InvalidInput):
    code = "invalid_interval"
    default_message = "End time must be after start time"


class OutOfHours(InvalidInput):
    code = "out_of_hours"
    default_message = "Booking is outside business hours"


class InvalidTransition(InvalidInput):
    code = "invalid_transition"
    default_message = "Booking status transition not allowed"


class NotFound(BookingAppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class Conflict(BookingAppError):
    status_code = 409
    code = "conflict"
    default_message = "Time slot conflicts with existing booking"


class AlreadyExists(BookingAppError):
    status_code = 409
    code = "already_exists"
    default_message = "Resource already exists"


class Unauthorized(BookingAppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Not authenticated"


class InvalidCredentials(Unauthorized):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class InvalidToken(Unauthorized):
    code = "invalid_token"
    default_message = "Invalid token"


class TokenExpired(Unauthorized):
    code = "token_expired"
    default_message = "Token expired"


class Forbidden(BookingAppError):
    status_code = 403
    code = "forbidden"
    default_message = "Insufficient permissions"


class QuotaExceeded(Forbidden):
    code = "quota_exceeded"
    default_message = "Subscription plan limit reached"
