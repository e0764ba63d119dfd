import asyncio
from datetime import datetime, timedelta

import pandas as pd
import streamlit as st

from spa_admin.core.errors import BookingError
from spa_admin.core.logger import setup_logging
from spa_admin.models.db_models import BookingAction, BookingStatus
from spa_admin.services.booking_service import BookingService
from spa_admin.services.db_service import db_service
from spa_admin.services.lifecycle import allowed_actions, business_tz
from spa_admin.ui.state import (
    CALENDAR_VIEW, LIST_VIEW, RESCHEDULE_MODAL, DETAILS_MODAL,
    ClearMessage, CloseModal, FilterStatus, OpenBooking, OpenReschedule,
    SelectDate, SetViewMode, ShowMessage, initial_state, reduce,
)

setup_logging()

st.set_page_config(
    page_title="Spa Admin",
    page_icon="📅",
    layout="wide"
)

def now():
    return datetime.now(business_tz())

def run(coro):
    # Each asyncio.run gets a fresh loop; the cached Supabase client is bound to the old one
    db_service._client = None
    return asyncio.run(coro)

def dispatch(event):
    st.session_state.admin_state = reduce(st.session_state.admin_state, event)

if "admin_state" not in st.session_state:
    st.session_state.admin_state = initial_state(now().date())

service = BookingService()
state = st.session_state.admin_state

st.title(f"{service.config.get('company_name', 'Spa')} - Admin Panel")

if state.flash:
    getattr(st, state.flash.level if state.flash.level in ("success", "error") else "info")(state.flash.message)
    dispatch(ClearMessage())

# Header metrics
try:
    stats = run(service.dashboard_stats(now()))
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Pending today", stats.pending_today, help=f"{stats.pending} pending in total")
    col2.metric("Confirmed", stats.confirmed)
    col3.metric("Completed", stats.completed)
    col4.metric("Archived", stats.archived)
except BookingError as e:
    st.error(f"Could not load statistics: {e}")

# Controls
with st.sidebar:
    view = st.radio("View", [CALENDAR_VIEW, LIST_VIEW], index=[CALENDAR_VIEW, LIST_VIEW].index(state.view_mode))
    if view != state.view_mode:
        dispatch(SetViewMode(view))
        st.rerun()

    picked = st.date_input("Date", value=state.selected_date)
    if picked != state.selected_date:
        dispatch(SelectDate(picked))
        st.rerun()

    options = ["all"] + [s.value for s in BookingStatus]
    current = state.status_filter.value if state.status_filter else "all"
    chosen = st.selectbox("Status", options, index=options.index(current))
    if chosen != current:
        dispatch(FilterStatus(None if chosen == "all" else BookingStatus(chosen)))
        st.rerun()

    st.markdown("---")
    st.subheader("Maintenance")
    if st.button("Complete past & archive old"):
        report = run(service.run_sweep(now()))
        dispatch(ShowMessage(
            f"Completed {report.completed}, archived {report.archived}, failed {report.failed}",
            "error" if report.failed else "success",
        ))
        st.rerun()
    if st.button("Send tomorrow's reminders"):
        reminders = run(service.send_reminders(now()))
        dispatch(ShowMessage(f"Reminders sent: {reminders.sent}, failed: {reminders.failed}", "success"))
        st.rerun()

# Booking list
if state.view_mode == CALENDAR_VIEW:
    date_from = date_to = state.selected_date
else:
    date_from, date_to = None, None

try:
    bookings = run(service.list_bookings(status=state.status_filter, date_from=date_from, date_to=date_to))
except BookingError as e:
    st.error(f"Could not load bookings: {e}")
    bookings = []

if bookings:
    df = pd.DataFrame([{
        "id": b.id,
        "date": b.booking_date,
        "time": b.booking_time.strftime("%H:%M"),
        "customer": b.customer_name,
        "service": b.service_name,
        "staff": b.staff_name or "",
        "status": b.status.value,
    } for b in bookings])

    st.subheader("Bookings")
    st.dataframe(
        df.drop(columns=["id"]),
        use_container_width=True,
        column_config={
            "date": st.column_config.DateColumn("Date", format="D.M.YYYY"),
            "time": "Time",
            "customer": "Customer",
            "service": "Service",
            "staff": "Therapist",
            "status": "Status",
        }
    )

    labels = {f"{b.booking_date} {b.booking_time.strftime('%H:%M')} - {b.customer_name}": b.id for b in bookings}
    label = st.selectbox("Open booking", list(labels))
    if st.button("Open"):
        dispatch(OpenBooking(labels[label]))
        st.rerun()
else:
    st.info("No bookings for this selection.")

# Booking details / reschedule
selected = next((b for b in bookings if b.id == state.selected_booking_id), None)
if selected and state.modal in (DETAILS_MODAL, RESCHEDULE_MODAL):
    st.markdown("---")
    st.subheader(f"{selected.customer_name} · {selected.service_name}")
    st.write(f"📅 {selected.booking_date} {selected.booking_time.strftime('%H:%M')} · status **{selected.status.value}**")
    st.write(f"✉️ {selected.customer_email or '-'} · 📞 {selected.customer_phone or '-'}")
    if selected.notes:
        st.caption(selected.notes)

    if state.modal == DETAILS_MODAL:
        actions = [a for a in allowed_actions(selected.status) if a != BookingAction.RESCHEDULE]
        columns = st.columns(len(actions) + 2)
        for column, action in zip(columns, actions):
            if column.button(action.value.title()):
                try:
                    run(service.apply_action(selected.id, action))
                    dispatch(ShowMessage(f"Booking {action.value} done", "success"))
                except BookingError as e:
                    dispatch(ShowMessage(str(e), "error"))
                dispatch(CloseModal())
                st.rerun()
        if BookingAction.RESCHEDULE in allowed_actions(selected.status):
            if columns[-2].button("Reschedule"):
                dispatch(OpenReschedule(selected.id))
                st.rerun()
        if columns[-1].button("Close"):
            dispatch(CloseModal())
            st.rerun()
    else:
        with st.form("reschedule"):
            new_date = st.date_input("New date", value=selected.booking_date, min_value=now().date())
            new_time = st.time_input("New time", value=selected.booking_time, step=timedelta(minutes=30))
            reason = st.text_input("Reason (sent to the customer)")
            submitted = st.form_submit_button("Reschedule")
        if submitted:
            try:
                run(service.reschedule(selected.id, new_date, new_time, reason or None))
                dispatch(ShowMessage("Appointment rescheduled successfully", "success"))
            except BookingError as e:
                dispatch(ShowMessage(f"Failed to reschedule appointment: {e}", "error"))
            dispatch(CloseModal())
            st.rerun()
        if st.button("Cancel"):
            dispatch(CloseModal())
            st.rerun()

# Footer
st.markdown("---")
st.caption("Spa Admin • Booking management")
