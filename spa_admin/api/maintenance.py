from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from spa_admin.api.bookings import get_booking_service
from spa_admin.core.logger import logger
from spa_admin.core.security import verify_admin_token
from spa_admin.models.db_models import ArchivedBooking, BookingStatus
from spa_admin.services.archive_export import archived_to_csv
from spa_admin.services.booking_service import BookingService, ReminderReport
from spa_admin.services.db_service import db_service
from spa_admin.services.lifecycle import DEFAULT_RETENTION_DAYS, business_tz
from spa_admin.services.sweep import SweepReport

router = APIRouter(dependencies=[Depends(verify_admin_token)])


def _now() -> datetime:
    return datetime.now(business_tz())


def _summary(report: SweepReport) -> dict:
    return {
        "completed": report.completed,
        "archived": report.archived,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "failed_ids": report.failed_ids,
        "skipped_ids": report.skipped_ids,
    }


@router.post("/maintenance/sweep")
async def sweep(retention_days: int = Query(DEFAULT_RETENTION_DAYS, ge=0),
                service: BookingService = Depends(get_booking_service)):
    return _summary(await service.run_sweep(_now(), retention_days))


@router.post("/maintenance/complete-past")
async def complete_past(service: BookingService = Depends(get_booking_service)):
    return _summary(await service.mark_past_completed(_now()))


@router.post("/maintenance/archive")
async def archive(retention_days: int = Query(DEFAULT_RETENTION_DAYS, ge=0),
                  service: BookingService = Depends(get_booking_service)):
    return _summary(await service.archive_old(_now(), retention_days))


@router.post("/maintenance/reminders", response_model=ReminderReport)
async def reminders(service: BookingService = Depends(get_booking_service)):
    return await service.send_reminders(_now())


@router.get("/archive", response_model=List[ArchivedBooking])
async def list_archive(date_from: Optional[date] = None, date_to: Optional[date] = None,
                       status: Optional[BookingStatus] = None,
                       limit: int = Query(500, ge=1, le=5000)):
    return await db_service.list_archived(date_from=date_from, date_to=date_to, status=status, limit=limit)


@router.get("/archive/export")
async def export_archive(date_from: Optional[date] = None, date_to: Optional[date] = None,
                         status: Optional[BookingStatus] = None):
    bookings = await db_service.list_archived(date_from=date_from, date_to=date_to, status=status, limit=5000)
    filename = f"archived-bookings-{_now().date().isoformat()}.csv"
    logger.info(f"📊 Archive export: {filename} ({len(bookings)} bookings)")
    return StreamingResponse(
        iter([archived_to_csv(bookings)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
