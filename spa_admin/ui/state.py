"""
Admin dashboard state.

The dashboard keeps exactly one AdminState and replaces it through `reduce`;
widgets dispatch events instead of flipping flags on the session.
"""
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Union

from spa_admin.models.db_models import BookingStatus

LIST_VIEW = "list"
CALENDAR_VIEW = "calendar"
VIEW_MODES = (LIST_VIEW, CALENDAR_VIEW)

NO_MODAL = "none"
DETAILS_MODAL = "details"
RESCHEDULE_MODAL = "reschedule"


@dataclass(frozen=True)
class Flash:
    message: str
    level: str = "info"  # info | success | error


@dataclass(frozen=True)
class AdminState:
    selected_date: date
    view_mode: str = CALENDAR_VIEW
    selected_booking_id: Optional[str] = None
    modal: str = NO_MODAL
    status_filter: Optional[BookingStatus] = None
    flash: Optional[Flash] = None


@dataclass(frozen=True)
class SetViewMode:
    view_mode: str


@dataclass(frozen=True)
class SelectDate:
    selected_date: date


@dataclass(frozen=True)
class OpenBooking:
    booking_id: str


@dataclass(frozen=True)
class OpenReschedule:
    booking_id: str


@dataclass(frozen=True)
class CloseModal:
    pass


@dataclass(frozen=True)
class FilterStatus:
    status: Optional[BookingStatus]


@dataclass(frozen=True)
class ShowMessage:
    message: str
    level: str = "info"


@dataclass(frozen=True)
class ClearMessage:
    pass


Event = Union[SetViewMode, SelectDate, OpenBooking, OpenReschedule, CloseModal,
              FilterStatus, ShowMessage, ClearMessage]


def initial_state(today: date) -> AdminState:
    return AdminState(selected_date=today)


def reduce(state: AdminState, event: Event) -> AdminState:
    if isinstance(event, SetViewMode):
        if event.view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {event.view_mode}")
        return replace(state, view_mode=event.view_mode)

    if isinstance(event, SelectDate):
        return replace(state, selected_date=event.selected_date)

    if isinstance(event, OpenBooking):
        return replace(state, selected_booking_id=event.booking_id, modal=DETAILS_MODAL)

    if isinstance(event, OpenReschedule):
        return replace(state, selected_booking_id=event.booking_id, modal=RESCHEDULE_MODAL)

    if isinstance(event, CloseModal):
        return replace(state, selected_booking_id=None, modal=NO_MODAL)

    if isinstance(event, FilterStatus):
        # Filtering by status only makes sense across dates
        status = BookingStatus(event.status) if event.status else None
        view_mode = LIST_VIEW if status else state.view_mode
        return replace(state, status_filter=status, view_mode=view_mode)

    if isinstance(event, ShowMessage):
        return replace(state, flash=Flash(event.message, event.level))

    if isinstance(event, ClearMessage):
        return replace(state, flash=None)

    raise TypeError(f"Unhandled admin event: {type(event).__name__}")
