"""Helpers turning entities into the JSON shapes the API returns."""
from __future__ import annotations

from typing import Mapping, Optional

from syncsketch.core.utils import format_relative, format_timestamp, isoformat
from syncsketch.db.models import Connection, User


def user_summary(user: User) -> dict:
    return {
        "id": user.id,
        "userName": user.user_name,
        "email": user.email,
        "name": user.name,
        "avatarUrl": user.avatar_url or "",
        "role": list(user.roles or []),
        "isVerified": bool(user.is_verified),
    }


def user_profile(user: User) -> dict:
    data = user_summary(user)
    data.update(
        {
            "phoneNumber": user.phone_number or "",
            "permissions": user.permissions,
            "isBlocked": bool(user.is_blocked),
            "lastLogin": isoformat(user.last_login),
            "lastLoginFormatted": format_timestamp(user.last_login),
            "lastLoginRelative": format_relative(user.last_login),
            "createdAt": isoformat(user.created_at),
        }
    )
    return data


def public_user(user: Optional[User]) -> Optional[dict]:
    """Identity shown next to a connection (counterpart expansion)."""
    if user is None:
        return None
    return {
        "id": user.id,
        "userName": user.user_name,
        "name": user.name,
        "email": user.email,
        "avatarUrl": user.avatar_url or "",
    }


def connection_dict(connection: Connection, users: Mapping[str, User] | None = None, *, expand: tuple[str, ...] = ()) -> dict:
    """Serialize a connection; `expand` names the sides ("from", "to") to replace with user details."""
    users = users or {}
    data = {
        "id": connection.id,
        "from": connection.from_user_id,
        "to": connection.to_user_id,
        "status": connection.status,
        "createdAt": isoformat(connection.created_at),
        "updatedAt": isoformat(connection.updated_at),
    }
    if "from" in expand:
        data["from"] = public_user(users.get(connection.from_user_id))
    if "to" in expand:
        data["to"] = public_user(users.get(connection.to_user_id))
    return data
