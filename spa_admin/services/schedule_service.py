import math
from datetime import time
from typing import Dict, Iterable, List, Optional, Set

from spa_admin.models.db_models import Booking, BookingStatus

BOOKED = "booked"
AFTER_HOURS = "after-hours"
INSUFFICIENT_TIME = "insufficient-time"
OFF_GRID = "off-grid"


def _to_minutes(value: str) -> int:
    hour, minute = value.split(":")[:2]
    return int(hour) * 60 + int(minute)


def _to_slot(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def generate_time_slots(hours: Dict) -> List[str]:
    """Start times from opening until closing, every `slot_duration` minutes."""
    open_minutes = _to_minutes(hours["open_time"])
    close_minutes = _to_minutes(hours["close_time"])
    step = int(hours["slot_duration"])
    return [_to_slot(m) for m in range(open_minutes, close_minutes, step)]


def is_slot_after_hours(slot: str, duration: int, hours: Dict) -> bool:
    return _to_minutes(slot) + duration > _to_minutes(hours["close_time"])


def is_within_business_hours(start: time, duration: int, hours: Dict) -> bool:
    slot = start.strftime("%H:%M")
    return _to_minutes(hours["open_time"]) <= _to_minutes(slot) and not is_slot_after_hours(slot, duration, hours)


def busy_slots(bookings: Iterable[Booking], hours: Dict, staff_id: Optional[str] = None,
               exclude_id: Optional[str] = None) -> Set[str]:
    """
    Slots occupied by non-cancelled bookings, each expanded over its service duration.
    With `staff_id`, only that therapist's bookings count.
    """
    step = int(hours["slot_duration"])
    taken = set()
    for booking in bookings:
        if booking.status == BookingStatus.CANCELLED or booking.id == exclude_id:
            continue
        if staff_id and booking.staff_id != staff_id:
            continue
        start = _to_minutes(booking.booking_time.strftime("%H:%M"))
        for offset in range(0, booking.service_duration, step):
            taken.add(_to_slot(start + offset))
    return taken


def slot_unavailable_reason(slot: str, duration: int, booked: Set[str], hours: Dict) -> Optional[str]:
    """None if the slot can take a `duration`-minute appointment."""
    if slot in booked:
        return BOOKED
    if is_slot_after_hours(slot, duration, hours):
        return AFTER_HOURS

    slots = generate_time_slots(hours)
    if slot not in slots:
        return OFF_GRID
    index = slots.index(slot)
    needed = math.ceil(duration / int(hours["slot_duration"]))
    for i in range(1, needed):
        if index + i >= len(slots) or slots[index + i] in booked:
            return INSUFFICIENT_TIME
    return None


def available_slots(duration: int, booked: Set[str], hours: Dict) -> List[str]:
    return [s for s in generate_time_slots(hours) if slot_unavailable_reason(s, duration, booked, hours) is None]
