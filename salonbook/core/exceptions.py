from typing import Optional

from fastapi import status


class BookingError(Exception):
    """Base class for errors surfaced to API callers as ``{"error": message}``."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(BookingError):
    """Salon, service, booking or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class SlotUnavailable(BookingError):
    """The requested interval overlaps an active booking or lost a commit race."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This slot is no longer available. Please check availability and choose another time"


class UnauthorizedError(BookingError):
    """Missing, invalid or unknown bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class StoreUnavailable(BookingError):
    """Persistence failure. Never retried by the engine."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage is unavailable"
