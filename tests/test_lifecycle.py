import pytest
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from spa_admin.core.errors import InvalidBooking, InvalidTransition
from spa_admin.models.db_models import Booking, BookingAction, BookingStatus
from spa_admin.services.lifecycle import (
    allowed_actions,
    is_archivable,
    next_status,
    should_auto_complete,
    starts_at,
)
from tests.factories import make_booking


# --- Auto-completion (2h grace) ---

def test_confirmed_booking_three_hours_past_is_auto_completed():
    booking = make_booking(day=date(2024, 1, 1), at=time(8, 0))
    assert should_auto_complete(datetime(2024, 1, 1, 11, 0), booking) is True

def test_exactly_two_hours_is_not_past_grace():
    booking = make_booking(day=date(2024, 1, 1), at=time(8, 0))
    assert should_auto_complete(datetime(2024, 1, 1, 10, 0), booking) is False
    assert should_auto_complete(datetime(2024, 1, 1, 10, 0, 1), booking) is True

@pytest.mark.parametrize("minutes_past", [0, 30, 119, 120])
def test_within_grace_is_not_completed(minutes_past):
    booking = make_booking(day=date(2024, 6, 1), at=time(14, 0))
    now = datetime(2024, 6, 1, 14, 0) + timedelta(minutes=minutes_past)
    assert should_auto_complete(now, booking) is False

@pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_only_confirmed_bookings_auto_complete(status):
    booking = make_booking(status=status, day=date(2024, 1, 1), at=time(8, 0))
    assert should_auto_complete(datetime(2024, 2, 1, 12, 0), booking) is False

def test_aware_now_is_compared_in_business_timezone():
    booking = make_booking(day=date(2024, 1, 1), at=time(8, 0))
    # 09:30 UTC == 10:30 in Prague (CET): 2.5h after an 08:00 local start
    now = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
    assert should_auto_complete(now, booking) is True
    assert starts_at(booking).tzinfo == ZoneInfo("Europe/Prague")

def test_grace_counts_real_hours_across_spring_forward():
    # Prague skips 02:00-03:00 on 2024-03-31: 01:00 -> 03:30 is only 1.5h
    booking = make_booking(day=date(2024, 3, 31), at=time(1, 0))
    assert should_auto_complete(datetime(2024, 3, 31, 3, 30), booking) is False
    assert should_auto_complete(datetime(2024, 3, 31, 4, 30), booking) is True

def test_grace_counts_real_hours_across_fall_back():
    # 2024-10-27 repeats 02:00-03:00: 01:30 -> 03:00 is 2.5h
    booking = make_booking(day=date(2024, 10, 27), at=time(1, 30))
    assert should_auto_complete(datetime(2024, 10, 27, 3, 0), booking) is True

def test_missing_date_or_time_is_invalid_booking():
    booking = Booking.model_construct(id="broken", booking_date=None, booking_time=time(9, 0),
                                      status=BookingStatus.CONFIRMED)
    with pytest.raises(InvalidBooking) as exc:
        should_auto_complete(datetime(2024, 1, 1, 12, 0), booking)
    assert exc.value.booking_id == "broken"

    booking = Booking.model_construct(id="broken", booking_date=date(2024, 1, 1), booking_time=None,
                                      status=BookingStatus.CONFIRMED)
    with pytest.raises(InvalidBooking):
        should_auto_complete(datetime(2024, 1, 1, 12, 0), booking)


# --- Archival (retention window) ---

def test_completed_booking_older_than_retention_is_archivable():
    now = datetime(2024, 3, 1, 12, 0)
    assert is_archivable(make_booking(status=BookingStatus.COMPLETED, day=date(2024, 1, 30)), now, 30) is True
    assert is_archivable(make_booking(status=BookingStatus.COMPLETED, day=date(2024, 1, 31)), now, 30) is False

def test_default_retention_is_thirty_days():
    booking = make_booking(status=BookingStatus.COMPLETED, day=date(2024, 1, 1))
    assert is_archivable(booking, datetime(2024, 1, 31, 12, 0)) is False
    assert is_archivable(booking, datetime(2024, 2, 1, 12, 0)) is True

@pytest.mark.parametrize("status", [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CANCELLED])
def test_non_completed_bookings_are_never_archivable(status):
    ancient = make_booking(status=status, day=date(2000, 1, 1))
    assert is_archivable(ancient, datetime(2024, 1, 1, 12, 0), 30) is False

def test_archivable_without_date_is_invalid_booking():
    booking = Booking.model_construct(id="x", booking_date=None, status=BookingStatus.COMPLETED)
    with pytest.raises(InvalidBooking):
        is_archivable(booking, datetime(2024, 1, 1), 30)


# --- Transition table ---

@pytest.mark.parametrize("current, action, expected", [
    (BookingStatus.PENDING, BookingAction.CONFIRM, BookingStatus.CONFIRMED),
    (BookingStatus.PENDING, BookingAction.CANCEL, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingAction.COMPLETE, BookingStatus.COMPLETED),
    (BookingStatus.CONFIRMED, BookingAction.CANCEL, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingAction.RESCHEDULE, BookingStatus.CONFIRMED),
    (BookingStatus.CANCELLED, BookingAction.RECONFIRM, BookingStatus.CONFIRMED),
])
def test_valid_transitions(current, action, expected):
    assert next_status(current, action) == expected

@pytest.mark.parametrize("action", list(BookingAction))
def test_completed_is_terminal(action):
    with pytest.raises(InvalidTransition):
        next_status(BookingStatus.COMPLETED, action)

def test_pending_cannot_be_completed_directly():
    with pytest.raises(InvalidTransition) as exc:
        next_status(BookingStatus.PENDING, BookingAction.COMPLETE)
    assert "complete" in str(exc.value)
    assert "pending" in str(exc.value)

@pytest.mark.parametrize("current, action", [
    (BookingStatus.PENDING, BookingAction.RESCHEDULE),
    (BookingStatus.PENDING, BookingAction.RECONFIRM),
    (BookingStatus.CONFIRMED, BookingAction.CONFIRM),
    (BookingStatus.CANCELLED, BookingAction.CANCEL),
    (BookingStatus.CANCELLED, BookingAction.COMPLETE),
])
def test_invalid_transitions(current, action):
    with pytest.raises(InvalidTransition):
        next_status(current, action)

def test_string_values_are_accepted_and_unknown_ones_rejected():
    assert next_status("pending", "confirm") == BookingStatus.CONFIRMED
    with pytest.raises(InvalidTransition):
        next_status("pending", "teleport")

def test_allowed_actions_follow_table():
    assert allowed_actions(BookingStatus.COMPLETED) == []
    assert set(allowed_actions(BookingStatus.CONFIRMED)) == {
        BookingAction.COMPLETE, BookingAction.CANCEL, BookingAction.RESCHEDULE
    }
