"""
Shared fixtures: a temporary SQLite database, captured outgoing mail and an
HTTP client bound to a fresh app.
"""
from __future__ import annotations

import re
import sys
from pathlib import Path

import pytest

# Make the syncsketch package importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from syncsketch.core import config as core_config
from syncsketch.core import mailer
from syncsketch.core.rate_limiter import reset_rate_limits
from syncsketch.db import models
from syncsketch.db import session as db_session

STRONG_PASSWORD = "Sketch#2024"
OTP_IN_TEXT = re.compile(r"\b(\d{6})\b")


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Point DATABASE_URL at a throwaway SQLite file and rebuild the schema."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("JWT_SECRET", "test-secret-value")
    monkeypatch.setenv("APP_ENV", "test")
    for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    # force re-reading the environment
    core_config.get_settings.cache_clear()
    db_session.reset_engine()
    reset_rate_limits()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    models.Base.metadata.drop_all(bind=engine)
    db_session.reset_engine()
    core_config.get_settings.cache_clear()


class Outbox(list):
    """Messages captured instead of being sent."""

    def codes_for(self, to_email: str) -> list[str]:
        found = []
        for message in self:
            if message["to"] == to_email:
                match = OTP_IN_TEXT.search(message["text"] or "")
                if match:
                    found.append(match.group(1))
        return found

    def last_code(self, to_email: str) -> str:
        codes = self.codes_for(to_email)
        assert codes, f"no code mailed to {to_email}"
        return codes[-1]


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = Outbox()

    def fake_send_email(subject, to_email, html_body, text_body=None, *, settings=None):
        sent.append({"subject": subject, "to": to_email, "html": html_body, "text": text_body})
        return True

    monkeypatch.setattr(mailer, "send_email", fake_send_email)
    return sent


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from syncsketch.app import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


def signup_payload(user_name: str, email: str, **overrides) -> dict:
    payload = {
        "userName": user_name,
        "email": email,
        "name": user_name.title()[:20],
        "password": STRONG_PASSWORD,
    }
    payload.update(overrides)
    return payload
