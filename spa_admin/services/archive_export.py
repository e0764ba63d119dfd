from typing import List

import pandas as pd

from spa_admin.models.db_models import ArchivedBooking

CSV_COLUMNS = ["Date", "Time", "Customer", "Email", "Phone", "Service", "Staff", "Status", "Archived Date"]


def archived_to_csv(bookings: List[ArchivedBooking]) -> str:
    """Archive rows as CSV text, one line per booking under a fixed header."""
    df = pd.DataFrame([{
        "Date": b.booking_date.isoformat(),
        "Time": b.booking_time.strftime("%H:%M"),
        "Customer": b.customer_name,
        "Email": b.customer_email or "",
        "Phone": b.customer_phone or "",
        "Service": b.service.name if b.service else "Unknown",
        "Staff": b.staff_name or "Unknown",
        "Status": b.status.value,
        "Archived Date": b.archived_at.date().isoformat(),
    } for b in bookings], columns=CSV_COLUMNS)
    return df.to_csv(index=False)
