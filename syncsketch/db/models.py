"""SQLAlchemy models for users, one-time codes and connections."""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    JSON,
    func,
)

from .session import Base

OTP_PURPOSE_SIGNUP = "signup"
OTP_PURPOSE_RESET = "resetPassword"

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


def new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    user_name = Column(String(30), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(64), nullable=False)
    password_hash = Column(Text, nullable=False)
    phone_number = Column(String(32), nullable=True)
    avatar_url = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    roles = Column(JSON, default=lambda: ["viewer"], nullable=False)
    can_draw = Column(Boolean, default=True, nullable=False)
    can_type = Column(Boolean, default=True, nullable=False)
    can_audio = Column(Boolean, default=True, nullable=False)
    can_invite = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    blocked_users = Column(JSON, default=list, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def permissions(self) -> dict:
        return {
            "canDraw": bool(self.can_draw),
            "canType": bool(self.can_type),
            "canAudio": bool(self.can_audio),
            "canInvite": bool(self.can_invite),
        }


class Otp(Base):
    __tablename__ = "otps"
    __table_args__ = (
        Index("ix_otps_signup_identity", "email", "user_name", "purpose"),
        Index("ix_otps_user_purpose", "user_id", "purpose"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    purpose = Column(String(32), nullable=False)
    email = Column(String(255), nullable=False)
    user_name = Column(String(30), nullable=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    code_hash = Column(String(128), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Connection(Base):
    __tablename__ = "connections"
    __table_args__ = (
        Index("ix_connections_pair", "from_user_id", "to_user_id"),
        Index("ix_connections_to_status", "to_user_id", "status"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    from_user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), default=STATUS_PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.from_user_id, self.to_user_id)

    def counterpart_of(self, user_id: str) -> str:
        return self.to_user_id if self.from_user_id == user_id else self.from_user_id
