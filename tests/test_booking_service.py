import pytest
from datetime import date, datetime, time, timezone
from unittest.mock import patch

from spa_admin.core.errors import InvalidBooking, InvalidTransition, PersistenceFailure
from spa_admin.models.db_models import BookingAction, BookingStatus, StaffSummary
from spa_admin.services.booking_service import BookingService
from tests.factories import FakeStore, make_booking

NOW = datetime(2024, 5, 6, 8, 0)


@pytest.fixture
def send_email():
    with patch("spa_admin.services.booking_service.send_email", return_value=True) as mock_send:
        yield mock_send


@pytest.mark.asyncio
async def test_confirm_persists_and_emails_customer(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.PENDING)])
    service = BookingService(store=store, config=company_config)

    updated = await service.apply_action("b1", BookingAction.CONFIRM)

    assert updated.status == BookingStatus.CONFIRMED
    assert store.status_updates == [("b1", BookingStatus.CONFIRMED)]
    send_email.assert_called_once()
    to, subject, html = send_email.call_args[0]
    assert to == "jana@example.com"
    assert subject == "Booking Confirmation - Hot Stone Massage"
    assert "Jana Nováková" in html

@pytest.mark.asyncio
async def test_invalid_transition_is_rejected_before_any_write(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.PENDING)])
    service = BookingService(store=store, config=company_config)

    with pytest.raises(InvalidTransition):
        await service.apply_action("b1", BookingAction.COMPLETE)

    assert store.status_updates == []
    assert store.bookings["b1"].status == BookingStatus.PENDING
    send_email.assert_not_called()

@pytest.mark.asyncio
async def test_failed_email_does_not_undo_cancellation(company_config):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED)])
    service = BookingService(store=store, config=company_config)

    with patch("spa_admin.services.booking_service.send_email", return_value=False) as mock_send:
        updated = await service.apply_action("b1", BookingAction.CANCEL, reason="Therapist ill")

    assert updated.status == BookingStatus.CANCELLED
    assert store.bookings["b1"].status == BookingStatus.CANCELLED
    subject, html = mock_send.call_args[0][1:]
    assert subject.startswith("Appointment Cancelled")
    assert "Therapist ill" in html

@pytest.mark.asyncio
async def test_persistence_failure_propagates_and_sends_nothing(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.PENDING)], fail_ids={"b1"})
    service = BookingService(store=store, config=company_config)

    with pytest.raises(PersistenceFailure):
        await service.apply_action("b1", BookingAction.CONFIRM)
    send_email.assert_not_called()

@pytest.mark.asyncio
async def test_complete_sends_no_email(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED)])
    service = BookingService(store=store, config=company_config)

    await service.apply_action("b1", BookingAction.COMPLETE)
    send_email.assert_not_called()

@pytest.mark.asyncio
async def test_missing_customer_email_skips_notification(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.PENDING, customer_email=None)])
    service = BookingService(store=store, config=company_config)

    updated = await service.apply_action("b1", BookingAction.CONFIRM)
    assert updated.status == BookingStatus.CONFIRMED
    send_email.assert_not_called()

@pytest.mark.asyncio
async def test_reschedule_action_requires_date(company_config, send_email):
    service = BookingService(store=FakeStore([make_booking("b1")]), config=company_config)
    with pytest.raises(InvalidBooking):
        await service.apply_action("b1", BookingAction.RESCHEDULE)


# --- Reschedule ---

@pytest.mark.asyncio
async def test_reschedule_keeps_confirmed_and_moves_slot(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED, date(2024, 5, 6), time(10, 0))])
    service = BookingService(store=store, config=company_config)

    updated = await service.reschedule("b1", date(2024, 5, 7), time(14, 30), reason="Staff training", now=NOW)

    assert updated.status == BookingStatus.CONFIRMED
    assert (updated.booking_date, updated.booking_time) == (date(2024, 5, 7), time(14, 30))
    assert store.reschedules == [("b1", date(2024, 5, 7), time(14, 30))]
    subject, html = send_email.call_args[0][1:]
    assert subject == "Appointment Rescheduled - Hot Stone Massage"
    assert "10:00" in html and "14:30" in html

@pytest.mark.asyncio
async def test_reschedule_pending_booking_is_invalid_transition(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.PENDING)])
    service = BookingService(store=store, config=company_config)

    with pytest.raises(InvalidTransition):
        await service.reschedule("b1", date(2024, 5, 7), time(14, 0), now=NOW)
    assert store.reschedules == []

@pytest.mark.asyncio
async def test_reschedule_outside_business_hours_is_rejected(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED)])
    service = BookingService(store=store, config=company_config)

    with pytest.raises(InvalidBooking):
        await service.reschedule("b1", date(2024, 5, 7), time(17, 30), now=NOW)  # 60 min service, closes 18:00
    with pytest.raises(InvalidBooking):
        await service.reschedule("b1", date(2024, 5, 7), time(8, 0), now=NOW)
    assert store.reschedules == []

@pytest.mark.asyncio
async def test_reschedule_into_same_staff_booking_is_rejected(company_config, send_email):
    therapist = StaffSummary(id="st-1", name="Eva")
    store = FakeStore([
        make_booking("b1", BookingStatus.CONFIRMED, date(2024, 5, 6), time(10, 0), staff_id="st-1", staff=therapist),
        make_booking("b2", BookingStatus.CONFIRMED, date(2024, 5, 7), time(14, 0), staff_id="st-1", staff=therapist),
        make_booking("b3", BookingStatus.CANCELLED, date(2024, 5, 7), time(11, 0), staff_id="st-1", staff=therapist),
    ])
    service = BookingService(store=store, config=company_config)

    with pytest.raises(InvalidBooking):
        await service.reschedule("b1", date(2024, 5, 7), time(14, 30), now=NOW)
    # Cancelled bookings do not block the slot
    await service.reschedule("b1", date(2024, 5, 7), time(11, 0), now=NOW)

@pytest.mark.asyncio
async def test_reschedule_into_the_past_is_rejected(company_config, send_email):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED, date(2030, 1, 7), time(10, 0))])
    service = BookingService(store=store, config=company_config)

    with pytest.raises(InvalidBooking):
        await service.reschedule("b1", date(2020, 1, 6), time(10, 0))
    with pytest.raises(InvalidBooking):
        await service.reschedule("b1", date(2024, 5, 5), time(10, 0), now=NOW)
    assert store.bookings["b1"].booking_date == date(2030, 1, 7)
    assert store.reschedules == []
    send_email.assert_not_called()

    # Later today is still allowed
    await service.reschedule("b1", date(2024, 5, 6), time(15, 0), now=NOW)
    assert store.reschedules == [("b1", date(2024, 5, 6), time(15, 0))]


# --- Stats & reminders ---

@pytest.mark.asyncio
async def test_dashboard_stats_counts_today_in_business_timezone(company_config):
    store = FakeStore([
        make_booking("p1", BookingStatus.PENDING, date(2024, 1, 2), time(9, 0)),
        make_booking("p2", BookingStatus.PENDING, date(2024, 1, 3), time(9, 0)),
        make_booking("c1", BookingStatus.CONFIRMED, date(2024, 1, 2), time(9, 0)),
        make_booking("d1", BookingStatus.COMPLETED, date(2023, 12, 1), time(9, 0)),
    ])
    store.archived = {"a1": object()}
    service = BookingService(store=store, config=company_config)

    # 23:30 UTC on Jan 1 is already Jan 2 in Prague
    stats = await service.dashboard_stats(datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc))

    assert stats.today == date(2024, 1, 2)
    assert stats.pending == 2
    assert stats.pending_today == 1
    assert stats.confirmed == 1
    assert stats.completed == 1
    assert (stats.active, stats.archived, stats.total) == (4, 1, 5)

@pytest.mark.asyncio
async def test_reminders_go_to_confirmed_bookings_tomorrow(company_config, send_email):
    store = FakeStore([
        make_booking("t1", BookingStatus.CONFIRMED, date(2024, 1, 2), time(9, 0)),
        make_booking("t2", BookingStatus.CONFIRMED, date(2024, 1, 2), time(11, 0), customer_email=None),
        make_booking("t3", BookingStatus.PENDING, date(2024, 1, 2), time(13, 0)),
        make_booking("t4", BookingStatus.CONFIRMED, date(2024, 1, 3), time(9, 0)),
    ])
    service = BookingService(store=store, config=company_config)

    report = await service.send_reminders(datetime(2024, 1, 1, 18, 0))

    assert (report.sent, report.failed, report.skipped) == (1, 0, 1)
    assert send_email.call_args[0][1] == "Appointment Reminder - Tomorrow at 09:00"

@pytest.mark.asyncio
async def test_reminders_disabled_in_config(company_config, send_email):
    company_config["notifications"] = {"reminders_enabled": False}
    store = FakeStore([make_booking("t1", BookingStatus.CONFIRMED, date(2024, 1, 2), time(9, 0))])
    service = BookingService(store=store, config=company_config)

    report = await service.send_reminders(datetime(2024, 1, 1, 18, 0))
    assert report.sent == 0
    send_email.assert_not_called()

@pytest.mark.asyncio
async def test_reminders_with_email_switched_off_are_skipped(company_config, send_email):
    company_config["notifications"] = {"email_enabled": False, "reminders_enabled": True}
    store = FakeStore([
        make_booking("t1", BookingStatus.CONFIRMED, date(2024, 1, 2), time(9, 0)),
        make_booking("t2", BookingStatus.CONFIRMED, date(2024, 1, 2), time(11, 0)),
    ])
    service = BookingService(store=store, config=company_config)

    report = await service.send_reminders(datetime(2024, 1, 1, 18, 0))

    assert (report.sent, report.failed, report.skipped) == (0, 0, 2)
    send_email.assert_not_called()


# --- Staff schedule ---

@pytest.fixture
def schedule_store():
    eva = StaffSummary(id="st-1", name="Eva")
    return FakeStore([
        make_booking("sun", BookingStatus.CONFIRMED, date(2024, 5, 5), time(9, 0), staff_id="st-1", staff=eva),
        make_booking("mon", BookingStatus.PENDING, date(2024, 5, 6), time(10, 0), staff_id="st-1", staff=eva),
        make_booking("mon-x", BookingStatus.CANCELLED, date(2024, 5, 6), time(12, 0), staff_id="st-1", staff=eva),
        make_booking("mon-2", BookingStatus.CONFIRMED, date(2024, 5, 6), time(11, 0), staff_id="st-2"),
        make_booking("sat", BookingStatus.COMPLETED, date(2024, 5, 11), time(9, 0), staff_id="st-1", staff=eva),
        make_booking("next-sun", BookingStatus.CONFIRMED, date(2024, 5, 12), time(9, 0), staff_id="st-1", staff=eva),
    ])

@pytest.mark.asyncio
async def test_daily_schedule_leaves_out_cancelled(company_config, schedule_store):
    service = BookingService(store=schedule_store, config=company_config)

    day = await service.schedule(date(2024, 5, 6))
    assert sorted(b.id for b in day) == ["mon", "mon-2"]

    eva = await service.schedule(date(2024, 5, 6), staff_id="st-1")
    assert [b.id for b in eva] == ["mon"]

@pytest.mark.asyncio
async def test_weekly_schedule_runs_sunday_to_saturday(company_config, schedule_store):
    service = BookingService(store=schedule_store, config=company_config)

    week = await service.schedule(date(2024, 5, 8), weekly=True, staff_id="st-1")
    assert sorted(b.id for b in week) == ["mon", "sat", "sun"]

    # A Sunday starts its own week
    week = await service.schedule(date(2024, 5, 12), weekly=True, staff_id="st-1")
    assert [b.id for b in week] == ["next-sun"]

@pytest.mark.asyncio
async def test_busy_slots_expand_service_duration(company_config):
    store = FakeStore([make_booking("b1", BookingStatus.CONFIRMED, date(2024, 5, 7), time(10, 0))])
    service = BookingService(store=store, config=company_config)

    assert await service.busy_slots(date(2024, 5, 7)) == ["10:00", "10:30"]
