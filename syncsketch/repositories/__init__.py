"""
Persistence adapters.

Each repository wraps the SQLAlchemy session for one aggregate (users,
one-time codes, connections). Services depend on these instead of touching
sessions directly.
"""

from .connection_repository import ConnectionRepository
from .otp_repository import OtpRepository
from .user_repository import UserRepository

__all__ = ["ConnectionRepository", "OtpRepository", "UserRepository"]
