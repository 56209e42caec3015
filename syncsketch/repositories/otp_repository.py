"""OTP store: short-lived one-time codes keyed by signup identity or user id."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select, update

from syncsketch.db.models import OTP_PURPOSE_RESET, OTP_PURPOSE_SIGNUP, Otp, new_id
from syncsketch.db.session import get_session


class OtpRepository:
    """
    Replacing a code removes every earlier code for the same identity and
    purpose, so at most one active code exists per pair. Expired rows are
    purged on each create.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def purge_expired(self, now: datetime | None = None) -> int:
        current = now or datetime.now(timezone.utc)
        with get_session(self.database_url) as session:
            result = session.execute(delete(Otp).where(Otp.expires_at <= current))
            session.commit()
            return result.rowcount or 0

    def _insert(self, session, **values) -> Otp:
        entity = Otp(id=new_id(), failed_attempts=0, created_at=datetime.now(timezone.utc), **values)
        session.add(entity)
        session.commit()
        session.refresh(entity)
        return entity

    def replace_signup_otp(self, email: str, user_name: str, code_hash: str, expires_at: datetime) -> Otp:
        email_norm = email.strip().lower()
        user_name_norm = user_name.strip().lower()
        self.purge_expired()
        with get_session(self.database_url) as session:
            session.execute(
                delete(Otp).where(
                    Otp.purpose == OTP_PURPOSE_SIGNUP,
                    Otp.email == email_norm,
                    Otp.user_name == user_name_norm,
                )
            )
            return self._insert(
                session,
                purpose=OTP_PURPOSE_SIGNUP,
                email=email_norm,
                user_name=user_name_norm,
                user_id=None,
                code_hash=code_hash,
                expires_at=expires_at,
            )

    def replace_reset_otp(self, user_id: str, email: str, code_hash: str, expires_at: datetime) -> Otp:
        self.purge_expired()
        with get_session(self.database_url) as session:
            session.execute(delete(Otp).where(Otp.purpose == OTP_PURPOSE_RESET, Otp.user_id == user_id))
            return self._insert(
                session,
                purpose=OTP_PURPOSE_RESET,
                email=email.strip().lower(),
                user_name=None,
                user_id=user_id,
                code_hash=code_hash,
                expires_at=expires_at,
            )

    def find_signup(self, email: str, user_name: str) -> Optional[Otp]:
        """Latest signup code for the pair, expired or not."""
        with get_session(self.database_url) as session:
            stmt = (
                select(Otp)
                .where(
                    Otp.purpose == OTP_PURPOSE_SIGNUP,
                    Otp.email == email.strip().lower(),
                    Otp.user_name == user_name.strip().lower(),
                )
                .order_by(Otp.created_at.desc())
            )
            return session.execute(stmt).scalars().first()

    def find_reset(self, user_id: str) -> Optional[Otp]:
        with get_session(self.database_url) as session:
            stmt = (
                select(Otp)
                .where(Otp.purpose == OTP_PURPOSE_RESET, Otp.user_id == user_id)
                .order_by(Otp.created_at.desc())
            )
            return session.execute(stmt).scalars().first()

    def get(self, otp_id: str) -> Optional[Otp]:
        with get_session(self.database_url) as session:
            return session.get(Otp, otp_id)

    def record_failed_attempt(self, otp_id: str, max_attempts: int) -> int:
        """
        Count a wrong guess against the code and return the new total.

        Once the total reaches `max_attempts` the code is deleted, so a fresh
        one has to be requested.
        """
        with get_session(self.database_url) as session:
            session.execute(
                update(Otp).where(Otp.id == otp_id).values(failed_attempts=Otp.failed_attempts + 1)
            )
            session.commit()
            attempts = session.execute(select(Otp.failed_attempts).where(Otp.id == otp_id)).scalar_one_or_none()
            if attempts is None:
                return max_attempts
            if attempts >= max_attempts:
                session.execute(delete(Otp).where(Otp.id == otp_id))
                session.commit()
            return attempts

    def delete(self, otp_id: str) -> None:
        with get_session(self.database_url) as session:
            session.execute(delete(Otp).where(Otp.id == otp_id))
            session.commit()
