"""
SMTP email delivery.

Sends the weekly inventory report to the admin mailbox as an attachment.
"""

import smtplib
from contextlib import contextmanager
from email.message import EmailMessage
from typing import Optional
import structlog

from config import settings
from models.report import ReportAttachment
from exceptions import EmailDeliveryError

logger = structlog.get_logger(__name__)

WEEKLY_REPORT_SUBJECT = "Weekly Inventory Metrics"
WEEKLY_REPORT_BODY = "Please find attached the weekly inventory report."


@contextmanager
def smtp_connection():
    """Open an authenticated SMTP session from settings."""
    if settings.smtp_use_ssl:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=30)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)

    try:
        if not settings.smtp_use_ssl:
            server.starttls()
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)
        yield server
    finally:
        try:
            server.quit()
        except smtplib.SMTPException as e:
            logger.warning("smtp_quit_failed", error=str(e))


def build_message(
    sender: str,
    recipients: list[str],
    subject: str,
    body: str,
    attachments: Optional[list[ReportAttachment]] = None,
) -> EmailMessage:
    """Construct a plain-text message with binary attachments."""
    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = subject
    msg.set_content(body)

    for attachment in attachments or []:
        maintype, _, subtype = attachment.content_type.partition("/")
        msg.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )

    return msg


def send_email(
    recipients: list[str],
    subject: str,
    body: str,
    attachments: Optional[list[ReportAttachment]] = None,
) -> None:
    """
    Send an email through the configured SMTP server.

    Raises:
        EmailDeliveryError: If SMTP is not configured or the send fails
    """
    if not settings.email_configured:
        raise EmailDeliveryError(
            "Email delivery is not configured",
            details={"missing": "SMTP_HOST, ADMIN_EMAIL and EMAIL_FROM or SMTP_USERNAME"}
        )

    sender = settings.email_from or settings.smtp_username
    msg = build_message(sender, recipients, subject, body, attachments)

    try:
        with smtp_connection() as server:
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(
            "email_send_failed",
            recipients=recipients,
            error=str(e),
            error_type=type(e).__name__
        )
        raise EmailDeliveryError(f"Failed to send email: {e}")

    logger.info("email_sent", recipients=recipients, subject=subject)


def send_weekly_inventory_report(attachment: ReportAttachment) -> None:
    """
    Mail the weekly report to ADMIN_EMAIL.

    Raises:
        EmailDeliveryError: If delivery fails
    """
    send_email(
        recipients=[settings.admin_email] if settings.admin_email else [],
        subject=WEEKLY_REPORT_SUBJECT,
        body=WEEKLY_REPORT_BODY,
        attachments=[attachment],
    )
