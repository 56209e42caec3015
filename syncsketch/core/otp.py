"""One-time code helpers: generation, keyed hashing and expiry."""

from __future__ import annotations

import hmac
import secrets
import string
from datetime import datetime, timedelta, timezone
from hashlib import sha256


def generate_otp(length: int = 6) -> str:
    """Generate a numeric OTP code."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def hash_otp(identity: str, code: str, secret: str) -> str:
    normalized = f"{identity.lower().strip()}:{(code or '').strip()}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), normalized, sha256).hexdigest()


def otp_matches(stored_hash: str | None, identity: str, code: str, secret: str) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(stored_hash, hash_otp(identity, code, secret))


def otp_expiry(ttl_seconds: int, now: datetime | None = None) -> datetime:
    base = now or datetime.now(timezone.utc)
    return base + timedelta(seconds=ttl_seconds)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    if expires_at is None:
        return True
    current = now or datetime.now(timezone.utc)
    return as_utc(expires_at) <= current
