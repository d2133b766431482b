"""Booking error taxonomy mapped onto HTTP responses."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    code = "booking_error"

    def __init__(self, detail: str | None = None) -> None:
        """Keep a client-facing detail message."""
        self.detail = detail if detail is not None else self.code
        super().__init__(self.detail)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error into a JSON response body."""
        return {"error": self.code, "detail": self.detail}


class InvalidInput(BookingError):
    """Missing or malformed fields in a booking request."""

    status_code = 400
    code = "invalid_input"


class InvalidRange(InvalidInput):
    """Listing window is missing a bound or cannot be parsed."""

    code = "invalid_range"


class SlotTaken(BookingError):
    """The requested interval overlaps an existing appointment."""

    status_code = 409
    code = "slot_taken"


class NotFound(BookingError):
    """No appointment exists with the given id."""

    status_code = 404
    code = "not_found"


class StoreUnavailable(BookingError):
    """The record store failed or could not be reached."""

    status_code = 500
    code = "store_unavailable"
