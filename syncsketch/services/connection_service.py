"""
Connection request use cases.

A request starts pending and ends accepted or rejected. Only the recipient
accepts/rejects, only the sender cancels a pending request, and only a
participant removes an accepted connection. A rejected record is reused when
either side sends a fresh request: it is pointed at the new sender and made
pending again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from syncsketch.core.config import Settings, get_settings
from syncsketch.core.errors import BadRequestError, NotFoundError, UnauthorizedError, ValidationError
from syncsketch.db.models import STATUS_ACCEPTED, STATUS_PENDING, STATUS_REJECTED, Connection, User
from syncsketch.domain.validation import validate_object_id
from syncsketch.repositories.connection_repository import ConnectionRepository
from syncsketch.repositories.user_repository import UserRepository
from syncsketch.services.user_display import connection_dict, public_user

logger = logging.getLogger(__name__)

STATUS_SELF = "self"
STATUS_NONE = "none"
STATUS_CONNECTED = "connected"
STATUS_SENT = "sent"
STATUS_RECEIVED = "received"

NOT_AUTHORIZED = "You are not authorized to perform this action"
REQUEST_NOT_FOUND = "Connection request not found"
NO_LONGER_PENDING = "Connection request is no longer pending"


@dataclass
class ConnectionStatus:
    status: str
    connection_id: Optional[str] = None


def _require_id(value: str | None, field_name: str, label: str) -> str:
    errors = validate_object_id(value, field_name, label)
    if errors:
        raise ValidationError(errors)
    return value


@dataclass
class ConnectionService:
    """Send/accept/reject/cancel/remove plus listing and status lookups."""

    settings: Optional[Settings] = None
    connections: Optional[ConnectionRepository] = None
    users: Optional[UserRepository] = None

    def __post_init__(self):
        self.settings = self.settings or get_settings()
        self.connections = self.connections or ConnectionRepository(self.settings.database_url)
        self.users = self.users or UserRepository(self.settings.database_url)

    # -------------------------------------- helpers --------------------------------------
    def _load(self, connection_id: str) -> Connection:
        connection = self.connections.get(connection_id)
        if connection is None:
            raise NotFoundError(REQUEST_NOT_FOUND)
        return connection

    def _users_for(self, connections: list[Connection]) -> dict[str, User]:
        ids = set()
        for connection in connections:
            ids.add(connection.from_user_id)
            ids.add(connection.to_user_id)
        return self.users.get_users(ids)

    # -------------------------------------- mutations --------------------------------------
    def send_request(self, user: User, to_user_id: str | None) -> dict:
        to_user_id = _require_id(to_user_id, "toUserId", "Target user ID")
        if to_user_id == user.id:
            raise BadRequestError("You cannot send a connection request to yourself")
        receiver = self.users.get_user(to_user_id)
        if receiver is None:
            raise NotFoundError("User not found")

        existing = self.connections.find_between(user.id, to_user_id)
        if existing is not None:
            if existing.status == STATUS_ACCEPTED:
                raise BadRequestError("You are already connected with this user")
            if existing.status == STATUS_PENDING:
                if existing.from_user_id == user.id:
                    raise BadRequestError("Connection request already sent")
                raise BadRequestError("You already have a pending request from this user")
            connection = self.connections.reopen(existing.id, user.id, to_user_id)
            logger.info("Connection %s reopened by %s", existing.id, user.id)
        else:
            connection = self.connections.create(user.id, to_user_id)
            logger.info("Connection request %s sent %s -> %s", connection.id, user.id, to_user_id)
        return connection_dict(connection)

    def _pending_for_recipient(self, user: User, request_id: str | None) -> Connection:
        request_id = _require_id(request_id, "requestId", "Request ID")
        connection = self._load(request_id)
        if connection.to_user_id != user.id:
            raise UnauthorizedError(NOT_AUTHORIZED)
        if connection.status != STATUS_PENDING:
            raise BadRequestError(NO_LONGER_PENDING)
        return connection

    def accept(self, user: User, request_id: str | None) -> dict:
        connection = self._pending_for_recipient(user, request_id)
        updated = self.connections.set_status(connection.id, STATUS_ACCEPTED)
        if updated is None:
            raise NotFoundError(REQUEST_NOT_FOUND)
        logger.info("Connection %s accepted by %s", connection.id, user.id)
        return connection_dict(updated, self.users.get_users([updated.from_user_id]), expand=("from",))

    def reject(self, user: User, request_id: str | None) -> None:
        connection = self._pending_for_recipient(user, request_id)
        self.connections.set_status(connection.id, STATUS_REJECTED)
        logger.info("Connection %s rejected by %s", connection.id, user.id)

    def cancel(self, user: User, request_id: str | None) -> None:
        request_id = _require_id(request_id, "requestId", "Request ID")
        connection = self._load(request_id)
        if connection.from_user_id != user.id:
            raise UnauthorizedError(NOT_AUTHORIZED)
        if connection.status != STATUS_PENDING:
            raise BadRequestError(NO_LONGER_PENDING)
        self.connections.delete(connection.id)
        logger.info("Connection request %s cancelled by %s", connection.id, user.id)

    def remove(self, user: User, connection_id: str | None) -> None:
        connection_id = _require_id(connection_id, "connectionId", "Connection ID")
        connection = self._load(connection_id)
        if not connection.involves(user.id):
            raise UnauthorizedError(NOT_AUTHORIZED)
        if connection.status != STATUS_ACCEPTED:
            raise BadRequestError("Can only remove accepted connections")
        self.connections.delete(connection.id)
        logger.info("Connection %s removed by %s", connection.id, user.id)

    # -------------------------------------- queries --------------------------------------
    def list_connections(self, user: User) -> list[dict]:
        rows = self.connections.list_for_user(user.id, STATUS_ACCEPTED)
        users = self._users_for(rows)
        return [
            {
                "id": row.id,
                "user": public_user(users.get(row.counterpart_of(user.id))),
                "connectedAt": connection_dict(row)["createdAt"],
            }
            for row in rows
        ]

    def list_pending(self, user: User) -> list[dict]:
        rows = self.connections.list_received(user.id)
        users = self._users_for(rows)
        return [connection_dict(row, users, expand=("from",)) for row in rows]

    def list_sent(self, user: User) -> list[dict]:
        rows = self.connections.list_sent(user.id)
        users = self._users_for(rows)
        return [connection_dict(row, users, expand=("to",)) for row in rows]

    def status(self, user: User, other_user_id: str | None) -> ConnectionStatus:
        other_user_id = _require_id(other_user_id, "userId", "User ID")
        if other_user_id == user.id:
            return ConnectionStatus(STATUS_SELF)
        connection = self.connections.find_between(user.id, other_user_id)
        if connection is None:
            return ConnectionStatus(STATUS_NONE)
        if connection.status == STATUS_ACCEPTED:
            label = STATUS_CONNECTED
        elif connection.status == STATUS_REJECTED:
            label = STATUS_REJECTED
        elif connection.from_user_id == user.id:
            label = STATUS_SENT
        else:
            label = STATUS_RECEIVED
        return ConnectionStatus(label, connection.id)
