"""
Transactional mail: OTP, password reset and welcome messages.

Bodies are rendered from the Jinja2 templates in syncsketch/templates/mails
and handed to the SMTP adapter.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from syncsketch.core import mailer
from syncsketch.core.config import Settings, get_settings

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates" / "mails"
APP_NAME = "SyncSketch"


@lru_cache
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_mail(template: str, **context) -> str:
    context.setdefault("app_name", APP_NAME)
    context.setdefault("year", datetime.now(timezone.utc).year)
    return _environment().get_template(template).render(**context)


class NotificationService:
    """Sends the three transactional mails the account flows need."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def send_otp_mail(self, to_email: str, otp: str) -> bool:
        minutes = self.settings.otp_ttl_minutes
        html_body = render_mail("otp.html", otp=otp, ttl_minutes=minutes)
        text_body = f"Your {APP_NAME} verification code is {otp}. It expires in {minutes} minutes."
        return mailer.send_email("Your OTP Code", to_email, html_body, text_body, settings=self.settings)

    def send_reset_password_mail(self, to_email: str, otp: str) -> bool:
        minutes = self.settings.otp_ttl_minutes
        html_body = render_mail("reset_password.html", otp=otp, ttl_minutes=minutes)
        text_body = f"Your {APP_NAME} password reset code is {otp}. It expires in {minutes} minutes."
        return mailer.send_email("Your Password Reset Code", to_email, html_body, text_body, settings=self.settings)

    def send_welcome_mail(self, to_email: str, name: str) -> bool:
        html_body = render_mail("welcome.html", name=name or to_email)
        text_body = f"Welcome to {APP_NAME}, {name or to_email}!"
        return mailer.send_email(f"Welcome to {APP_NAME}", to_email, html_body, text_body, settings=self.settings)
