"""
Maintenance sweep: auto-complete past appointments and archive old completed ones.

`plan_sweep` is pure. The `run_*` coroutines persist one record at a time; a
rejected write is counted and the sweep moves on to the next record.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from spa_admin.core.errors import InvalidBooking, PersistenceFailure
from spa_admin.core.logger import logger
from spa_admin.models.db_models import Booking, BookingStatus
from spa_admin.services.lifecycle import DEFAULT_RETENTION_DAYS, is_archivable, should_auto_complete


@dataclass(frozen=True)
class SweepPlan:
    to_complete: List[Booking] = field(default_factory=list)
    to_archive: List[Booking] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


@dataclass
class SweepReport:
    completed: int = 0
    archived: int = 0
    failed: int = 0
    failed_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.completed + self.archived

    def record_failure(self, booking_id: str):
        self.failed += 1
        self.failed_ids.append(booking_id)

    def merge(self, other: "SweepReport") -> "SweepReport":
        return SweepReport(
            completed=self.completed + other.completed,
            archived=self.archived + other.archived,
            failed=self.failed + other.failed,
            failed_ids=self.failed_ids + other.failed_ids,
            skipped_ids=self.skipped_ids + other.skipped_ids,
        )


def plan_sweep(
    bookings: Iterable[Booking],
    now: datetime,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> SweepPlan:
    to_complete, to_archive, skipped = [], [], []
    for booking in bookings:
        try:
            if should_auto_complete(now, booking):
                to_complete.append(booking)
            elif is_archivable(booking, now, retention_days):
                to_archive.append(booking)
        except InvalidBooking as e:
            logger.warning(f"⚠️ Sweep skipping booking {e.booking_id}: {e}")
            skipped.append(e.booking_id)
    return SweepPlan(to_complete=to_complete, to_archive=to_archive, skipped=skipped)


async def complete_bookings(store, bookings: Iterable[Booking]) -> SweepReport:
    report = SweepReport()
    for booking in bookings:
        try:
            await store.update_status(booking.id, BookingStatus.COMPLETED)
            report.completed += 1
        except PersistenceFailure as e:
            logger.error(f"❌ Could not complete booking {booking.id}: {e}")
            report.record_failure(booking.id)
    return report


async def archive_bookings(store, bookings: Iterable[Booking], archived_at: Optional[datetime] = None) -> SweepReport:
    report = SweepReport()
    for booking in bookings:
        try:
            await store.archive_booking(booking, archived_at)
            report.archived += 1
        except PersistenceFailure as e:
            logger.error(f"❌ Could not archive booking {booking.id}: {e}")
            report.record_failure(booking.id)
    return report


async def run_sweep(store, now: datetime, retention_days: int = DEFAULT_RETENTION_DAYS) -> SweepReport:
    """Full pass over the active set: completions first, then archival."""
    active = await store.list_bookings()
    plan = plan_sweep(active, now, retention_days)
    logger.info(
        f"🧹 Sweep planned: {len(plan.to_complete)} to complete, "
        f"{len(plan.to_archive)} to archive, {len(plan.skipped)} skipped"
    )

    report = (await complete_bookings(store, plan.to_complete)).merge(
        await archive_bookings(store, plan.to_archive)
    )
    report.skipped_ids = list(plan.skipped)
    logger.info(f"📊 Sweep summary: completed={report.completed} archived={report.archived} failed={report.failed}")
    return report


async def mark_past_bookings_completed(store, now: datetime) -> SweepReport:
    confirmed = await store.list_bookings(status=BookingStatus.CONFIRMED)
    plan = plan_sweep(confirmed, now)
    report = await complete_bookings(store, plan.to_complete)
    report.skipped_ids = list(plan.skipped)
    logger.info(f"✅ Marked {report.completed} bookings as completed ({report.failed} failed)")
    return report


async def archive_old_bookings(store, now: datetime, retention_days: int = DEFAULT_RETENTION_DAYS) -> SweepReport:
    completed = await store.list_bookings(status=BookingStatus.COMPLETED)
    plan = plan_sweep(completed, now, retention_days)
    report = await archive_bookings(store, plan.to_archive)
    report.skipped_ids = list(plan.skipped)
    logger.info(f"📦 Archived {report.archived} old bookings ({report.failed} failed)")
    return report
