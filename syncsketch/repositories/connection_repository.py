"""Connection requests between two users."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, delete, or_, select

from syncsketch.db.models import STATUS_PENDING, Connection, new_id
from syncsketch.db.session import get_session


def _between(user_a: str, user_b: str):
    return or_(
        and_(Connection.from_user_id == user_a, Connection.to_user_id == user_b),
        and_(Connection.from_user_id == user_b, Connection.to_user_id == user_a),
    )


class ConnectionRepository:
    """CRUD helpers for the connections table."""

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    def get(self, connection_id: str) -> Optional[Connection]:
        with get_session(self.database_url) as session:
            return session.get(Connection, connection_id)

    def find_between(self, user_a: str, user_b: str) -> Optional[Connection]:
        """Most recently touched record for the pair, in either direction."""
        with get_session(self.database_url) as session:
            stmt = select(Connection).where(_between(user_a, user_b)).order_by(Connection.updated_at.desc())
            return session.execute(stmt).scalars().first()

    def create(self, from_user_id: str, to_user_id: str, status: str = STATUS_PENDING) -> Connection:
        now = datetime.now(timezone.utc)
        entity = Connection(
            id=new_id(),
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            status=status,
            created_at=now,
            updated_at=now,
        )
        with get_session(self.database_url) as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def reopen(self, connection_id: str, from_user_id: str, to_user_id: str) -> Optional[Connection]:
        """Point an existing record at a new sender/recipient and make it pending again."""
        now = datetime.now(timezone.utc)
        with get_session(self.database_url) as session:
            entity = session.get(Connection, connection_id)
            if not entity:
                return None
            entity.from_user_id = from_user_id
            entity.to_user_id = to_user_id
            entity.status = STATUS_PENDING
            entity.created_at = now
            entity.updated_at = now
            session.commit()
            session.refresh(entity)
            return entity

    def set_status(self, connection_id: str, status: str) -> Optional[Connection]:
        with get_session(self.database_url) as session:
            entity = session.get(Connection, connection_id)
            if not entity:
                return None
            entity.status = status
            entity.updated_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(entity)
            return entity

    def delete(self, connection_id: str) -> None:
        with get_session(self.database_url) as session:
            session.execute(delete(Connection).where(Connection.id == connection_id))
            session.commit()

    def list_for_user(self, user_id: str, status: str) -> list[Connection]:
        with get_session(self.database_url) as session:
            stmt = (
                select(Connection)
                .where(
                    Connection.status == status,
                    or_(Connection.from_user_id == user_id, Connection.to_user_id == user_id),
                )
                .order_by(Connection.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def list_received(self, user_id: str, status: str = STATUS_PENDING) -> list[Connection]:
        with get_session(self.database_url) as session:
            stmt = (
                select(Connection)
                .where(Connection.to_user_id == user_id, Connection.status == status)
                .order_by(Connection.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())

    def list_sent(self, user_id: str, status: str = STATUS_PENDING) -> list[Connection]:
        with get_session(self.database_url) as session:
            stmt = (
                select(Connection)
                .where(Connection.from_user_id == user_id, Connection.status == status)
                .order_by(Connection.created_at.desc())
            )
            return list(session.execute(stmt).scalars().all())
