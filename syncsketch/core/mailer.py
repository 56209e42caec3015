"""
Email adapter for the SyncSketch backend.

The default implementation uses SMTP, reading credentials from Settings.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
import logging
import smtplib
import ssl

from .config import Settings, get_settings
from .errors import MailDeliveryError

logger = logging.getLogger(__name__)


def smtp_configured(settings: Settings) -> bool:
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password and settings.smtp_from and settings.smtp_port)


def send_email(
    subject: str,
    to_email: str,
    html_body: str,
    text_body: str | None = None,
    *,
    settings: Settings | None = None,
) -> bool:
    """
    Send a multipart (plain + html) message.

    Returns False without sending when SMTP is not configured (local dev).
    Raises MailDeliveryError when the transport fails.
    """
    settings = settings or get_settings()
    if not smtp_configured(settings):
        logger.warning("SMTP not configured; skipping mail %r to %s", subject, to_email)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((settings.mail_sender_name, settings.smtp_from))
    msg["To"] = to_email
    plain = text_body or html_body
    msg.attach(MIMEText(plain, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    port = settings.smtp_port or 587
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send %r to %s: %s", subject, to_email, exc)
        raise MailDeliveryError("Unable to send email. Please try again later.") from exc
    logger.info("Sent %r to %s", subject, to_email)
    return True
