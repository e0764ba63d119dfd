from datetime import date, datetime, time
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from spa_admin.core.security import verify_admin_token
from spa_admin.models.db_models import Booking, BookingAction, BookingStatus
from spa_admin.services.booking_service import BookingService, DashboardStats
from spa_admin.services.lifecycle import allowed_actions, business_tz

router = APIRouter(prefix="/bookings", dependencies=[Depends(verify_admin_token)])


def get_booking_service() -> BookingService:
    return BookingService()


class ActionRequest(BaseModel):
    action: BookingAction
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    booking_date: date
    booking_time: time
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    booking: Booking
    allowed_actions: List[BookingAction]


def _with_actions(booking: Booking) -> BookingResponse:
    return BookingResponse(booking=booking, allowed_actions=allowed_actions(booking.status))


@router.get("", response_model=List[Booking])
async def list_bookings(
    status: Optional[BookingStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    staff_id: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
):
    return await service.list_bookings(status=status, date_from=date_from, date_to=date_to, staff_id=staff_id)


@router.get("/stats", response_model=DashboardStats)
async def booking_stats(service: BookingService = Depends(get_booking_service)):
    return await service.dashboard_stats(datetime.now(business_tz()))


@router.get("/schedule", response_model=List[Booking])
async def schedule(day: Optional[date] = Query(None, alias="date"),
                   view: Literal["daily", "weekly"] = "daily",
                   staff_id: Optional[str] = None,
                   service: BookingService = Depends(get_booking_service)):
    day = day or datetime.now(business_tz()).date()
    return await service.schedule(day, weekly=view == "weekly", staff_id=staff_id)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return _with_actions(await service.get_booking(booking_id))


@router.post("/{booking_id}/actions", response_model=BookingResponse)
async def apply_action(booking_id: str, req: ActionRequest,
                       service: BookingService = Depends(get_booking_service)):
    return _with_actions(await service.apply_action(booking_id, req.action, req.reason))


@router.post("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule(booking_id: str, req: RescheduleRequest,
                     service: BookingService = Depends(get_booking_service)):
    booking = await service.reschedule(booking_id, req.booking_date, req.booking_time, req.reason)
    return _with_actions(booking)


@router.get("/{booking_id}/busy-slots")
async def busy_slots(booking_id: str, day: date = Query(..., alias="date"),
                     service: BookingService = Depends(get_booking_service)):
    booking = await service.get_booking(booking_id)
    slots = await service.busy_slots(day, staff_id=booking.staff_id)
    return {"date": day.isoformat(), "busy": slots}
