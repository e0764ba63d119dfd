"""
Domain errors for the booking workflow.

InvalidTransition and InvalidBooking are raised before any write is attempted.
PersistenceFailure wraps a rejected store call; NotificationFailure wraps a
failed email send and is only ever logged by callers.
"""
from typing import Optional


class BookingError(Exception):
    """Base class for all booking workflow errors."""


class InvalidTransition(BookingError):
    def __init__(self, current, action):
        self.current = current
        self.action = action
        current_value = getattr(current, "value", current)
        action_value = getattr(action, "value", action)
        super().__init__(f"Cannot {action_value} a booking that is {current_value}")


class InvalidBooking(BookingError):
    def __init__(self, message: str, booking_id: Optional[str] = None):
        self.booking_id = booking_id
        super().__init__(message)


class BookingNotFound(BookingError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class PersistenceFailure(BookingError):
    def __init__(self, operation: str, detail: str = "", record_id: Optional[str] = None):
        self.operation = operation
        self.record_id = record_id
        message = f"Store rejected {operation}"
        if record_id:
            message += f" for {record_id}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NotificationFailure(BookingError):
    def __init__(self, recipient: str, detail: str = ""):
        self.recipient = recipient
        super().__init__(f"Email to {recipient} failed: {detail}" if detail else f"Email to {recipient} failed")
