"""
Booking lifecycle rules.

Pure functions only: nothing here reads the store or sends email. Callers
(the admin service and the maintenance sweep) decide what to persist.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled | confirmed (reschedule)
    cancelled -> confirmed (reconfirm)
    completed -> (terminal)
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from spa_admin.core.config import settings
from spa_admin.core.errors import InvalidBooking, InvalidTransition
from spa_admin.models.db_models import BookingAction, BookingStatus

AUTO_COMPLETE_GRACE = timedelta(hours=settings.AUTO_COMPLETE_GRACE_HOURS)
DEFAULT_RETENTION_DAYS = settings.ARCHIVE_RETENTION_DAYS

TRANSITIONS = {
    BookingStatus.PENDING: {
        BookingAction.CONFIRM: BookingStatus.CONFIRMED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
        BookingAction.RESCHEDULE: BookingStatus.CONFIRMED,
    },
    BookingStatus.CANCELLED: {
        BookingAction.RECONFIRM: BookingStatus.CONFIRMED,
    },
    BookingStatus.COMPLETED: {},
}


def business_tz() -> tzinfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def localize(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Naive datetimes are wall-clock time at the business location."""
    tz = tz or business_tz()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def starts_at(booking, tz: Optional[tzinfo] = None) -> datetime:
    booking_date = getattr(booking, "booking_date", None)
    booking_time = getattr(booking, "booking_time", None)
    if booking_date is None or booking_time is None:
        raise InvalidBooking(
            "Booking has no scheduled date/time",
            booking_id=getattr(booking, "id", None),
        )
    return datetime.combine(booking_date, booking_time, tzinfo=tz or business_tz())


def should_auto_complete(now: datetime, booking, grace: timedelta = AUTO_COMPLETE_GRACE) -> bool:
    """A confirmed appointment counts as finished once its start is more than `grace` ago."""
    tz = business_tz()
    start = starts_at(booking, tz)
    if booking.status != BookingStatus.CONFIRMED:
        return False
    # Same-tzinfo subtraction is wall-clock; compare in UTC so DST days count real hours
    elapsed = localize(now, tz).astimezone(timezone.utc) - start.astimezone(timezone.utc)
    return elapsed > grace


def is_archivable(booking, now: datetime, retention_days: int = DEFAULT_RETENTION_DAYS) -> bool:
    booking_date = getattr(booking, "booking_date", None)
    if booking_date is None:
        raise InvalidBooking(
            "Booking has no scheduled date",
            booking_id=getattr(booking, "id", None),
        )
    if booking.status != BookingStatus.COMPLETED:
        return False
    cutoff = (localize(now) - timedelta(days=retention_days)).date()
    return booking_date < cutoff


def next_status(current: BookingStatus, action: BookingAction) -> BookingStatus:
    try:
        current = BookingStatus(current)
        action = BookingAction(action)
    except ValueError:
        raise InvalidTransition(current, action)

    allowed = TRANSITIONS[current]
    if action not in allowed:
        raise InvalidTransition(current, action)
    return allowed[action]


def allowed_actions(current: BookingStatus):
    """Actions the admin UI may offer for a booking in `current`."""
    return list(TRANSITIONS[BookingStatus(current)].keys())
