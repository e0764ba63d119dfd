from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from spa_admin.core.errors import InvalidBooking


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    RESCHEDULE = "reschedule"
    RECONFIRM = "reconfirm"


class ServiceSummary(BaseModel):
    """Joined `service:service_uuid(...)` columns."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = "Service"
    duration: int = 60
    price: Optional[Decimal] = None


class StaffSummary(BaseModel):
    """Joined `staff:staff_id(...)` columns."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    email: Optional[str] = None


# Joined relations are read-only; they never go back into a write
RELATION_FIELDS = {"service", "staff"}


class Booking(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    booking_date: date
    booking_time: time
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    service_uuid: Optional[str] = None
    staff_id: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    service: Optional[ServiceSummary] = None
    staff: Optional[StaffSummary] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Booking":
        """Validate a raw `bookings` row; malformed rows raise InvalidBooking."""
        try:
            return cls.model_validate(row)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidBooking(f"Malformed booking row ({fields})", booking_id=row.get("id")) from e

    @property
    def service_name(self) -> str:
        return self.service.name if self.service else "Service"

    @property
    def service_duration(self) -> int:
        return self.service.duration if self.service else 60

    @property
    def staff_name(self) -> Optional[str]:
        return self.staff.name if self.staff else None

    def to_row(self) -> Dict[str, Any]:
        """Store columns only, JSON-ready."""
        return self.model_dump(mode="json", exclude=RELATION_FIELDS)


class ArchivedBooking(Booking):
    """Historical copy of a completed booking. Never updated once written."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    archived_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking, archived_at: datetime) -> "ArchivedBooking":
        return cls(**booking.model_dump(), archived_at=archived_at)


class ServiceCategory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    display_order: int = 0


class Service(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    duration: int = Field(default=60, gt=0)
    price: Decimal = Decimal("0")
    category_id: Optional[str] = None
    is_active: bool = True


class Staff(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
