"""
Authentication and identity related use cases.

Signup is two steps: request a code for (email, userName), then present the
code with the profile to create a verified account. Password reset follows
the same pattern with a code keyed by the user id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from syncsketch.core.config import Settings, get_settings
from syncsketch.core.errors import (
    BadRequestError,
    ConflictError,
    InvalidOtpError,
    MailDeliveryError,
    UnauthorizedError,
    ValidationError,
)
from syncsketch.core.otp import generate_otp, hash_otp, is_expired, otp_expiry, otp_matches
from syncsketch.core.security import burn_password_check, hash_password, needs_rehash, verify_password
from syncsketch.db.models import User
from syncsketch.domain import validation
from syncsketch.repositories.otp_repository import OtpRepository
from syncsketch.repositories.user_repository import UserRepository
from syncsketch.services.notification_service import NotificationService
from syncsketch.services.session_service import issue_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _clean(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


def _signup_identity(email: str, user_name: str) -> str:
    return f"{email.strip().lower()}:{user_name.strip().lower()}"


@dataclass
class SignupOtpRequested:
    email: str
    user_name: str


@dataclass
class AuthResult:
    user: User
    token: str


@dataclass
class AuthService:
    """Handles signup, signin, profile, password change and reset flows."""

    settings: Optional[Settings] = None
    users: Optional[UserRepository] = None
    otps: Optional[OtpRepository] = None
    notifications: Optional[NotificationService] = None

    def __post_init__(self):
        self.settings = self.settings or get_settings()
        self.users = self.users or UserRepository(self.settings.database_url)
        self.otps = self.otps or OtpRepository(self.settings.database_url)
        self.notifications = self.notifications or NotificationService(self.settings)

    # -------------------------------------- helpers --------------------------------------
    def _new_code(self, identity: str) -> tuple[str, str]:
        code = generate_otp(self.settings.otp_length)
        return code, hash_otp(identity, code, self.settings.jwt_secret)

    def _reject_attempt(self, otp_id: str) -> None:
        attempts = self.otps.record_failed_attempt(otp_id, self.settings.otp_max_attempts)
        if attempts >= self.settings.otp_max_attempts:
            logger.warning("OTP %s discarded after %d failed attempts", otp_id, attempts)

    def _ensure_available(self, email: str, user_name: str) -> None:
        if self.users.exists_user_name(user_name):
            raise ConflictError("Username already exists")
        if self.users.exists_email(email):
            raise ConflictError("Email already exists")

    # -------------------------------------- signup --------------------------------------
    def request_signup_otp(self, data: Mapping[str, Any]) -> SignupOtpRequested:
        errors = validation.validate_signup_request(data)
        if errors:
            raise ValidationError(errors)
        email = _clean(data, "email").lower()
        user_name = _clean(data, "userName").lower()
        self._ensure_available(email, user_name)

        code, code_hash = self._new_code(_signup_identity(email, user_name))
        self.otps.replace_signup_otp(email, user_name, code_hash, otp_expiry(self.settings.otp_ttl_seconds))
        self.notifications.send_otp_mail(email, code)
        logger.info("Signup OTP issued for %s", email)
        return SignupOtpRequested(email=email, user_name=user_name)

    def complete_signup(self, data: Mapping[str, Any]) -> AuthResult:
        errors = validation.validate_otp_verification(data)
        if errors:
            raise ValidationError(errors)
        errors = validation.validate_signup_profile(data)
        if errors:
            raise ValidationError(errors)
        email = _clean(data, "email").lower()
        user_name = _clean(data, "userName").lower()
        code = _clean(data, "otpCode")

        otp = self.otps.find_signup(email, user_name)
        if otp is None:
            logger.warning("No pending signup OTP for %s", email)
            raise InvalidOtpError()
        if is_expired(otp.expires_at):
            self.otps.delete(otp.id)
            logger.warning("Expired signup OTP for %s", email)
            raise InvalidOtpError()
        if not otp_matches(otp.code_hash, _signup_identity(email, user_name), code, self.settings.jwt_secret):
            self._reject_attempt(otp.id)
            logger.warning("Wrong signup OTP for %s", email)
            raise InvalidOtpError()

        # another signup may have claimed the name/email since the code was sent
        self._ensure_available(email, user_name)
        user = self.users.create_user(
            user_name=user_name,
            email=email,
            name=_clean(data, "name"),
            password_hash=hash_password(data["password"]),
            phone_number=_clean(data, "phoneNumber") or None,
            avatar_url=_clean(data, "avatarUrl") or None,
            is_verified=True,
        )
        self.otps.delete(otp.id)
        logger.info("User %s created (%s)", user.id, user.user_name)
        return AuthResult(user=user, token=issue_token(user, self.settings))

    def send_welcome(self, user: User) -> None:
        """Runs after the signup response; the account already exists, so a mail failure is only logged."""
        try:
            self.notifications.send_welcome_mail(user.email, user.name)
        except MailDeliveryError:
            logger.warning("Welcome mail to user %s could not be delivered", user.id)

    # -------------------------------------- signin --------------------------------------
    def signin(self, data: Mapping[str, Any]) -> AuthResult:
        errors = validation.validate_signin(data)
        if errors:
            raise ValidationError(errors)
        password = data["password"]
        user = self.users.find_by_identity(_clean(data, "userName"), _clean(data, "email"))
        if user is None:
            burn_password_check(password)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.warning("Failed signin for %s", user.user_name)
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if user.is_blocked:
            raise UnauthorizedError("User account is blocked")
        if needs_rehash(user.password_hash):
            self.users.update_password(user.id, hash_password(password))
        user.last_login = self.users.touch_last_login(user.id)
        return AuthResult(user=user, token=issue_token(user, self.settings))

    # -------------------------------------- profile --------------------------------------
    def edit_profile(self, user: User, data: Mapping[str, Any]) -> User:
        errors = validation.validate_profile_update(data)
        if errors:
            raise ValidationError(errors)
        updates: dict[str, Any] = {}
        if "userName" in data:
            user_name = _clean(data, "userName").lower()
            if self.users.exists_user_name(user_name, exclude_id=user.id):
                raise BadRequestError("Username is already taken")
            updates["user_name"] = user_name
        if "email" in data:
            email = _clean(data, "email").lower()
            if self.users.exists_email(email, exclude_id=user.id):
                raise BadRequestError("Email is already taken")
            updates["email"] = email
        if "name" in data:
            updates["name"] = _clean(data, "name")
        if "phoneNumber" in data:
            updates["phone_number"] = _clean(data, "phoneNumber") or None
        if "avatarUrl" in data:
            updates["avatar_url"] = _clean(data, "avatarUrl") or None
        if not updates:
            return user
        updated = self.users.update_user(user.id, **updates)
        if updated is None:
            raise UnauthorizedError("User not found")
        return updated

    def change_password(self, user: User, data: Mapping[str, Any]) -> None:
        errors = validation.validate_password_change(data)
        if errors:
            raise ValidationError(errors, message="Current password and new password required")
        if not verify_password(data["currentPassword"], user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        self.users.update_password(user.id, hash_password(data["newPassword"]))
        logger.info("Password changed for user %s", user.id)

    # -------------------------------------- password reset --------------------------------------
    def request_password_reset(self, data: Mapping[str, Any]) -> None:
        """Silently does nothing for unknown addresses."""
        email = _clean(data, "email").lower()
        if not email:
            raise ValidationError({"email": "Email is required."}, message="Email is required")
        if not validation.is_valid_email(email):
            raise ValidationError({"email": "Email is not valid."})
        user = self.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown address")
            return
        code, code_hash = self._new_code(user.id)
        self.otps.replace_reset_otp(user.id, user.email, code_hash, otp_expiry(self.settings.otp_ttl_seconds))
        self.notifications.send_reset_password_mail(user.email, code)
        logger.info("Password reset OTP issued for user %s", user.id)

    def reset_password(self, data: Mapping[str, Any]) -> None:
        errors = validation.validate_password_reset(data)
        if errors:
            raise ValidationError(errors, message="Email, OTP code, and new password are required")
        email = _clean(data, "email").lower()
        code = _clean(data, "otpCode")
        new_password = data["newPassword"]

        user = self.users.get_by_email(email)
        if user is None:
            raise InvalidOtpError()
        otp = self.otps.find_reset(user.id)
        if otp is None:
            raise InvalidOtpError()
        if is_expired(otp.expires_at):
            self.otps.delete(otp.id)
            raise InvalidOtpError()
        if not otp_matches(otp.code_hash, user.id, code, self.settings.jwt_secret):
            self._reject_attempt(otp.id)
            logger.warning("Wrong reset OTP for user %s", user.id)
            raise InvalidOtpError()
        if verify_password(new_password, user.password_hash):
            raise BadRequestError("New password must be different from the current password")
        self.users.update_password(user.id, hash_password(new_password))
        # consumed only once the password actually changed
        self.otps.delete(otp.id)
        logger.info("Password reset for user %s", user.id)
