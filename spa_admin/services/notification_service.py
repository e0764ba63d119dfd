import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests

from spa_admin.core.config import settings
from spa_admin.core.config_loader import load_company_config, get_notification_config
from spa_admin.core.errors import NotificationFailure
from spa_admin.core.logger import logger

REQUEST_TIMEOUT = 10


def notifications_enabled() -> bool:
    return get_notification_config(load_company_config()).get("email_enabled", False)


def _send_via_edge_function(to_email: str, subject: str, html: str):
    """
    Posts to the Supabase `send-email` Edge Function, which owns the actual
    mail provider credentials.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise NotificationFailure(to_email, "Supabase credentials missing")

    url = f"{settings.SUPABASE_URL.rstrip('/')}/functions/v1/{settings.SEND_EMAIL_FUNCTION}"
    headers = {
        "Authorization": f"Bearer {settings.SUPABASE_KEY}",
        "Content-Type": "application/json",
    }
    payload = {"to": to_email, "subject": subject, "html": html}

    try:
        response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise NotificationFailure(to_email, str(e)) from e

    if response.status_code not in (200, 201, 202):
        raise NotificationFailure(to_email, f"HTTP {response.status_code}: {response.text}")


def _send_via_smtp(to_email: str, subject: str, html: str):
    if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
        raise NotificationFailure(to_email, "SMTP credentials missing")

    sender = settings.EMAIL_FROM or settings.SMTP_USERNAME
    msg = MIMEMultipart("alternative")
    msg['From'] = sender
    msg['To'] = to_email
    msg['Subject'] = subject
    msg.attach(MIMEText(html, 'html'))

    try:
        server = smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT)
        server.starttls()
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.sendmail(sender, to_email, msg.as_string())
        server.quit()
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationFailure(to_email, str(e)) from e


def deliver_email(to_email: str, subject: str, html: str):
    """Sends one email through the configured transport. Raises NotificationFailure."""
    if not to_email:
        raise NotificationFailure("<missing>", "no recipient address")

    if settings.EMAIL_TRANSPORT == "smtp":
        _send_via_smtp(to_email, subject, html)
    else:
        _send_via_edge_function(to_email, subject, html)


def send_email(to_email: str, subject: str, html: str) -> bool:
    """
    Fire-and-forget email send.
    Returns: True if delivered, False otherwise. Never raises; the status change
    that triggered the email stands either way.
    """
    if not notifications_enabled():
        logger.info("ℹ️ Email notifications are disabled in config.")
        return False

    try:
        deliver_email(to_email, subject, html)
    except NotificationFailure as e:
        logger.error(f"❌ Email not sent: {e}")
        return False

    logger.info(f"✅ Email sent to {to_email} with subject: '{subject}'")
    return True
