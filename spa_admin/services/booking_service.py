import asyncio
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel

from spa_admin.core.config_loader import load_company_config, get_business_hours, get_notification_config
from spa_admin.core.errors import InvalidBooking
from spa_admin.core.logger import logger
from spa_admin.models.db_models import Booking, BookingAction, BookingStatus
from spa_admin.services import email_templates, sweep
from spa_admin.services.db_service import db_service
from spa_admin.services.lifecycle import DEFAULT_RETENTION_DAYS, business_tz, localize, next_status
from spa_admin.services.notification_service import send_email
from spa_admin.services.schedule_service import busy_slots, is_within_business_hours, slot_unavailable_reason


class DashboardStats(BaseModel):
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0
    pending_today: int = 0
    active: int = 0
    archived: int = 0
    total: int = 0
    today: date


class ReminderReport(BaseModel):
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class BookingService:
    """
    Admin commands over bookings. Every status change goes through the
    lifecycle table before anything is written; emails go out after the write
    and a failed email never undoes it.
    """

    def __init__(self, store=None, config: Optional[Dict] = None):
        self.store = store or db_service
        self.config = config if config is not None else load_company_config()

    @property
    def business_hours(self) -> Dict:
        return get_business_hours(self.config)

    def _notify_enabled(self, key: str) -> bool:
        return get_notification_config(self.config).get(key, True)

    async def _email_customer(self, booking: Booking, subject: str, html: str) -> bool:
        if not booking.customer_email:
            logger.warning(f"⚠️ Booking {booking.id} has no customer email, skipping notification")
            return False
        return await asyncio.to_thread(send_email, booking.customer_email, subject, html)

    async def list_bookings(self, status: Optional[BookingStatus] = None,
                            date_from: Optional[date] = None, date_to: Optional[date] = None,
                            staff_id: Optional[str] = None) -> List[Booking]:
        return await self.store.list_bookings(status=status, date_from=date_from, date_to=date_to,
                                              staff_id=staff_id)

    async def schedule(self, day: date, weekly: bool = False, staff_id: Optional[str] = None) -> List[Booking]:
        """
        Bookings a therapist (or everyone) works on `day`, or on the Sunday-to-Saturday
        week containing it. Cancelled bookings are left out.
        """
        if weekly:
            start = day - timedelta(days=(day.weekday() + 1) % 7)
            end = start + timedelta(days=6)
        else:
            start = end = day
        return await self.store.list_bookings(date_from=start, date_to=end, staff_id=staff_id,
                                              exclude_cancelled=True)

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.store.get_booking(booking_id)

    async def apply_action(self, booking_id: str, action: BookingAction, reason: Optional[str] = None) -> Booking:
        """
        Confirm, cancel, complete or reconfirm a booking.
        Raises InvalidTransition before any write if the action is not allowed.
        """
        action = BookingAction(action)
        if action == BookingAction.RESCHEDULE:
            raise InvalidBooking("Reschedule needs a new date and time", booking_id=booking_id)

        booking = await self.store.get_booking(booking_id)
        new_status = next_status(booking.status, action)

        await self.store.update_status(booking_id, new_status)
        updated = booking.model_copy(update={"status": new_status})
        logger.info(f"🔁 Booking {booking_id}: {booking.status.value} -> {new_status.value} ({action.value})")

        if action in (BookingAction.CONFIRM, BookingAction.RECONFIRM) and self._notify_enabled("notify_on_confirm"):
            subject, html = email_templates.booking_confirmation(self.config, updated)
            await self._email_customer(updated, subject, html)
        elif action == BookingAction.CANCEL and self._notify_enabled("notify_on_cancel"):
            subject, html = email_templates.booking_cancelled(self.config, updated, reason)
            await self._email_customer(updated, subject, html)

        return updated

    async def reschedule(self, booking_id: str, new_date: date, new_time: time,
                         reason: Optional[str] = None, now: Optional[datetime] = None) -> Booking:
        booking = await self.store.get_booking(booking_id)
        next_status(booking.status, BookingAction.RESCHEDULE)

        today = localize(now).date() if now else datetime.now(business_tz()).date()
        if new_date < today:
            raise InvalidBooking(f"Cannot move a booking into the past ({new_date})", booking_id=booking_id)

        hours = self.business_hours
        duration = booking.service_duration
        if not is_within_business_hours(new_time, duration, hours):
            raise InvalidBooking(
                f"{new_time.strftime('%H:%M')} is outside business hours "
                f"({hours['open_time']}-{hours['close_time']})",
                booking_id=booking_id,
            )

        same_day = await self.store.list_bookings(date_from=new_date, date_to=new_date)
        taken = busy_slots(same_day, hours, staff_id=booking.staff_id, exclude_id=booking.id)
        unavailable = slot_unavailable_reason(new_time.strftime("%H:%M"), duration, taken, hours)
        if unavailable:
            raise InvalidBooking(f"Requested slot is unavailable ({unavailable})", booking_id=booking_id)

        await self.store.reschedule_booking(booking_id, new_date, new_time)
        updated = booking.model_copy(update={"booking_date": new_date, "booking_time": new_time})

        if self._notify_enabled("notify_on_reschedule"):
            subject, html = email_templates.booking_rescheduled(
                self.config, updated, booking.booking_date, booking.booking_time, reason
            )
            await self._email_customer(updated, subject, html)
        return updated

    async def busy_slots(self, day: date, staff_id: Optional[str] = None) -> List[str]:
        bookings = await self.store.list_bookings(date_from=day, date_to=day)
        return sorted(busy_slots(bookings, self.business_hours, staff_id=staff_id))

    async def dashboard_stats(self, now: datetime) -> DashboardStats:
        """Counts for the admin header. "Today" is the business location's date."""
        today = localize(now).date()
        bookings = await self.store.list_bookings()

        stats = DashboardStats(today=today, active=len(bookings))
        for booking in bookings:
            setattr(stats, booking.status.value, getattr(stats, booking.status.value) + 1)
            if booking.status == BookingStatus.PENDING and booking.booking_date == today:
                stats.pending_today += 1

        stats.archived = await self.store.count('archived_bookings')
        stats.total = stats.active + stats.archived
        return stats

    async def send_reminders(self, now: datetime) -> ReminderReport:
        """Emails every confirmed customer whose appointment is tomorrow."""
        report = ReminderReport()
        if not self._notify_enabled("reminders_enabled"):
            logger.info("ℹ️ Reminders are disabled in config.")
            return report

        tomorrow = localize(now).date() + timedelta(days=1)
        bookings = await self.store.list_bookings(
            status=BookingStatus.CONFIRMED, date_from=tomorrow, date_to=tomorrow
        )
        if not get_notification_config(self.config).get("email_enabled", False):
            report.skipped = len(bookings)
            logger.info(f"ℹ️ Email disabled, {report.skipped} reminders for {tomorrow} skipped.")
            return report

        for booking in bookings:
            if not booking.customer_email:
                report.skipped += 1
                continue
            subject, html = email_templates.booking_reminder(self.config, booking)
            if await self._email_customer(booking, subject, html):
                report.sent += 1
            else:
                report.failed += 1

        logger.info(f"⏰ Reminders for {tomorrow}: sent={report.sent} failed={report.failed} skipped={report.skipped}")
        return report

    async def run_sweep(self, now: datetime, retention_days: int = DEFAULT_RETENTION_DAYS) -> sweep.SweepReport:
        return await sweep.run_sweep(self.store, now, retention_days)

    async def mark_past_completed(self, now: datetime) -> sweep.SweepReport:
        return await sweep.mark_past_bookings_completed(self.store, now)

    async def archive_old(self, now: datetime, retention_days: int = DEFAULT_RETENTION_DAYS) -> sweep.SweepReport:
        return await sweep.archive_old_bookings(self.store, now, retention_days)
