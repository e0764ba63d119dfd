"""
HTML email templates for customer booking notifications.
Each builder returns (subject, html).
"""
from datetime import date, time
from html import escape
from typing import Optional, Tuple

THEME = {
    "sage": "#708360",
    "sage_light": "#f6f7f5",
    "teal": "#5c9e9e",
    "amber": "#dda15e",
    "danger": "#b45454",
    "background": "#faf9f8",
    "text_primary": "#292524",
    "text_secondary": "#57534e",
    "text_muted": "#78716c",
    "border": "#e7e5e4",
}


def format_date(value: date) -> str:
    # e.g. "Monday, January 1, 2024"
    return f"{value.strftime('%A')}, {value.strftime('%B')} {value.day}, {value.year}"


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _detail_row(label: str, value: str) -> str:
    return f"""
        <tr>
          <td style="padding: 12px 0; vertical-align: top;">
            <span style="color: {THEME['text_muted']}; font-size: 12px; text-transform: uppercase; letter-spacing: 1px;">{label}</span>
            <p style="color: {THEME['text_primary']}; font-size: 16px; margin: 5px 0 0 0;">{value}</p>
          </td>
        </tr>"""


def _details_card(service_name: str, booking_date: date, booking_time: time, staff_name: Optional[str]) -> str:
    rows = _detail_row("Service", escape(service_name))
    rows += _detail_row("Date", format_date(booking_date))
    rows += _detail_row("Time", format_time(booking_time))
    if staff_name:
        rows += _detail_row("Therapist", escape(staff_name))
    return f"""
      <div style="background-color: {THEME['background']}; border-radius: 12px; padding: 25px; margin-bottom: 30px;">
        <h2 style="color: {THEME['sage']}; font-size: 20px; margin: 0 0 20px 0; font-weight: 400;">Appointment Details</h2>
        <table style="width: 100%; border-collapse: collapse; border-top: 1px solid {THEME['border']};">{rows}
        </table>
      </div>"""


def get_base_template(company_name: str, heading: str, accent: str, customer_name: str, body: str,
                      tagline: str = "") -> str:
    """Shared wrapper: header band, greeting, body sections, footer."""
    company = escape(company_name)
    footer_tagline = f'<p style="color: {THEME["text_muted"]}; font-size: 13px; margin: 0 0 10px 0; font-style: italic;">"{escape(tagline)}"</p>' if tagline else ""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; font-family: Georgia, 'Times New Roman', serif; background-color: {THEME['background']};">
  <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">
    <div style="background: {accent}; padding: 40px 30px; text-align: center;">
      <h1 style="color: #ffffff; margin: 0 0 10px 0; font-size: 32px; font-weight: 300; letter-spacing: 2px;">{company}</h1>
      <p style="color: #ffffff; margin: 0; font-size: 18px; font-weight: 300;">{heading}</p>
    </div>
    <div style="padding: 40px 30px;">
      <p style="font-size: 16px; color: {THEME['text_primary']}; margin-bottom: 25px;">Dear {escape(customer_name)},</p>
      {body}
    </div>
    <div style="background-color: {THEME['sage_light']}; padding: 30px; text-align: center; border-top: 1px solid {THEME['border']};">
      {footer_tagline}
      <p style="color: {THEME['text_muted']}; font-size: 12px; margin: 0;">&copy; {company}. All rights reserved.</p>
    </div>
  </div>
</body>
</html>"""


def _paragraph(text: str) -> str:
    return f'<p style="font-size: 15px; color: {THEME["text_secondary"]}; margin-bottom: 30px; line-height: 1.8;">{text}</p>'


def booking_confirmation(company: dict, booking) -> Tuple[str, str]:
    name = escape(company.get("company_name", "our spa"))
    body = _paragraph(f"We're delighted to confirm your appointment at {name}.")
    body += _details_card(booking.service_name, booking.booking_date, booking.booking_time, booking.staff_name)
    body += _paragraph("Please arrive 10 minutes early to check in.")
    html = get_base_template(company.get("company_name", ""), "Appointment Confirmed", THEME["sage"],
                             booking.customer_name, body, company.get("tagline", ""))
    return f"Booking Confirmation - {booking.service_name}", html


def booking_reminder(company: dict, booking) -> Tuple[str, str]:
    body = _paragraph("This is a friendly reminder about your appointment tomorrow.")
    body += _details_card(booking.service_name, booking.booking_date, booking.booking_time, booking.staff_name)
    body += _paragraph("Please arrive 10 minutes early to check in. We look forward to seeing you!")
    html = get_base_template(company.get("company_name", ""), "Appointment Reminder", THEME["amber"],
                             booking.customer_name, body, company.get("tagline", ""))
    return f"Appointment Reminder - Tomorrow at {format_time(booking.booking_time)}", html


def booking_rescheduled(company: dict, booking, old_date: date, old_time: time,
                        reason: Optional[str] = None) -> Tuple[str, str]:
    body = _paragraph(
        f"Your appointment originally scheduled for <s>{format_date(old_date)} at {format_time(old_time)}</s> "
        "has been moved. Your new appointment details are below."
    )
    if reason:
        body += _paragraph(f"<strong>Reason:</strong> {escape(reason)}")
    body += _details_card(booking.service_name, booking.booking_date, booking.booking_time, booking.staff_name)
    html = get_base_template(company.get("company_name", ""), "Appointment Rescheduled", THEME["teal"],
                             booking.customer_name, body, company.get("tagline", ""))
    return f"Appointment Rescheduled - {booking.service_name}", html


def booking_cancelled(company: dict, booking, reason: Optional[str] = None) -> Tuple[str, str]:
    body = _paragraph("We're sorry to let you know that your appointment has been cancelled.")
    if reason:
        body += _paragraph(f"<strong>Reason:</strong> {escape(reason)}")
    body += _details_card(booking.service_name, booking.booking_date, booking.booking_time, booking.staff_name)
    body += _paragraph("We'd love to see you another time. Reply to this email to book a new appointment.")
    html = get_base_template(company.get("company_name", ""), "Appointment Cancelled", THEME["danger"],
                             booking.customer_name, body, company.get("tagline", ""))
    return f"Appointment Cancelled - {booking.service_name}", html
