"""
Configuration helpers for the SyncSketch backend.

Settings is built once from the environment and handed to services at
construction time, so routers/services never read os.environ directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

PRODUCTION = "production"


class ConfigError(RuntimeError):
    """Raised when the environment holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    port: int
    database_url: str
    jwt_secret: str
    jwt_expires_seconds: int
    otp_ttl_seconds: int
    otp_length: int
    otp_max_attempts: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    mail_sender_name: str
    cors_origins: tuple[str, ...]
    trusted_proxies: tuple[str, ...]
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.app_env == PRODUCTION

    @property
    def otp_ttl_minutes(self) -> int:
        return max(1, self.otp_ttl_seconds // 60)


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    jwt_secret = os.getenv("JWT_SECRET", "dev-secret-change-me")
    if len(jwt_secret) < 6:
        raise ConfigError("JWT_SECRET must be at least 6 chars long")

    smtp_user = os.getenv("SMTP_USER", "")
    return Settings(
        app_env=(os.getenv("APP_ENV") or "development").lower(),
        port=_int(os.getenv("PORT", "3000"), 3000),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./syncsketch.db"),
        jwt_secret=jwt_secret,
        jwt_expires_seconds=_int(os.getenv("JWT_EXPIRES_SECONDS", "86400"), 86400),
        otp_ttl_seconds=_int(os.getenv("OTP_TTL_SECONDS", "600"), 600),
        otp_length=_int(os.getenv("OTP_LENGTH", "6"), 6),
        otp_max_attempts=max(1, _int(os.getenv("OTP_MAX_ATTEMPTS", "5"), 5)),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "587"), 587),
        smtp_user=smtp_user,
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", smtp_user),
        mail_sender_name=os.getenv("MAIL_SENDER_NAME", "SyncSketch Team"),
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
        trusted_proxies=_list(os.getenv("TRUSTED_PROXIES")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
