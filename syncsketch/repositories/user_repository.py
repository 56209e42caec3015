"""Credential store: user records backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from syncsketch.core.errors import ConflictError
from syncsketch.db.models import User, new_id
from syncsketch.db.session import get_session

UPDATABLE_FIELDS = {"user_name", "name", "email", "phone_number", "avatar_url", "is_blocked", "blocked_users"}


class UserRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        with get_session(self.database_url) as session:
            return session.get(User, user_id)

    def get_users(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = {uid for uid in user_ids if uid}
        if not ids:
            return {}
        with get_session(self.database_url) as session:
            rows = session.execute(select(User).where(User.id.in_(ids))).scalars().all()
            return {row.id: row for row in rows}

    def get_by_user_name(self, user_name: str) -> Optional[User]:
        with get_session(self.database_url) as session:
            stmt = select(User).where(User.user_name == (user_name or "").strip().lower())
            return session.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> Optional[User]:
        with get_session(self.database_url) as session:
            stmt = select(User).where(User.email == (email or "").strip().lower())
            return session.execute(stmt).scalar_one_or_none()

    def find_by_identity(self, user_name: str | None = None, email: str | None = None) -> Optional[User]:
        """Username takes precedence when both are supplied."""
        if user_name:
            return self.get_by_user_name(user_name)
        if email:
            return self.get_by_email(email)
        return None

    def exists_user_name(self, user_name: str, exclude_id: str | None = None) -> bool:
        with get_session(self.database_url) as session:
            stmt = select(User.id).where(User.user_name == (user_name or "").strip().lower())
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def exists_email(self, email: str, exclude_id: str | None = None) -> bool:
        with get_session(self.database_url) as session:
            stmt = select(User.id).where(User.email == (email or "").strip().lower())
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def create_user(
        self,
        *,
        user_name: str,
        email: str,
        name: str,
        password_hash: str,
        phone_number: str | None = None,
        avatar_url: str | None = None,
        is_verified: bool = False,
    ) -> User:
        now = datetime.now(timezone.utc)
        entity = User(
            id=new_id(),
            user_name=user_name.strip().lower(),
            email=email.strip().lower(),
            name=name.strip(),
            password_hash=password_hash,
            phone_number=phone_number or None,
            avatar_url=avatar_url or None,
            is_verified=is_verified,
            roles=["viewer"],
            can_draw=True,
            can_type=True,
            can_audio=True,
            can_invite=True,
            is_blocked=False,
            blocked_users=[],
            created_at=now,
            updated_at=now,
        )
        with get_session(self.database_url) as session:
            session.add(entity)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Username or email already exists.") from exc
            session.refresh(entity)
            return entity

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        with get_session(self.database_url) as session:
            user = session.get(User, user_id)
            if not user:
                return None
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = datetime.now(timezone.utc)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Username or email already exists.") from exc
            session.refresh(user)
            return user

    def update_password(self, user_id: str, password_hash: str) -> None:
        with get_session(self.database_url) as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            )
            session.execute(stmt)
            session.commit()

    def touch_last_login(self, user_id: str) -> datetime:
        now = datetime.now(timezone.utc)
        with get_session(self.database_url) as session:
            session.execute(update(User).where(User.id == user_id).values(last_login=now))
            session.commit()
        return now
