"""
Field rules for request payloads.

Every validator takes the raw payload and returns a mapping of field name to
message; an empty mapping means the payload is acceptable. Nothing here
touches persistence.
"""
from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import urlparse

USER_NAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,20}")
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+")
PHONE_PATTERN = re.compile(r"\+?[0-9]{7,15}")
OTP_PATTERN = re.compile(r"[0-9]{6}")
OBJECT_ID_PATTERN = re.compile(r"[0-9a-f]{32}")
PASSWORD_SYMBOLS = re.compile(r"[^A-Za-z0-9]")

PROFILE_FIELDS = ("userName", "name", "email", "phoneNumber", "avatarUrl")

Errors = dict[str, str]


def _text(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        return ""
    return value.strip()


def is_valid_email(value: str | None) -> bool:
    if not value or len(value) > 254:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value))


def is_valid_user_name(value: str | None) -> bool:
    return bool(value) and bool(USER_NAME_PATTERN.fullmatch(value))


def is_valid_phone(value: str | None) -> bool:
    if not value:
        return False
    compact = re.sub(r"[\s().-]", "", value)
    return bool(PHONE_PATTERN.fullmatch(compact))


def is_valid_url(value: str | None) -> bool:
    if not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and "." in (parsed.hostname or "")


def is_strong_password(value: str | None) -> bool:
    """At least 8 characters with lower, upper, digit and symbol."""
    if not value or len(value) < 8:
        return False
    return (
        any(ch.islower() for ch in value)
        and any(ch.isupper() for ch in value)
        and any(ch.isdigit() for ch in value)
        and bool(PASSWORD_SYMBOLS.search(value))
    )


def is_valid_object_id(value: str | None) -> bool:
    return bool(value) and bool(OBJECT_ID_PATTERN.fullmatch(value))


def _check_user_name(errors: Errors, value: str | None) -> None:
    if not is_valid_user_name(value):
        errors["userName"] = "Username must be 3-20 characters and can only contain letters, numbers, and underscores."


def _check_email(errors: Errors, value: str | None) -> None:
    if not value:
        errors["email"] = "Email is required."
    elif not is_valid_email(value):
        errors["email"] = "Email is not valid."


def _check_contact_fields(errors: Errors, data: Mapping[str, Any]) -> None:
    """Optional phoneNumber/avatarUrl: absent or null is fine, anything else must be a valid string."""
    for key, label, check in (
        ("phoneNumber", "Phone number", is_valid_phone),
        ("avatarUrl", "Avatar URL", is_valid_url),
    ):
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            errors[key] = f"{label} must be a string."
        elif value.strip() and not check(value.strip()):
            errors[key] = f"{label} is not valid."


def validate_signup_request(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    _check_user_name(errors, _text(data, "userName"))
    _check_email(errors, _text(data, "email"))
    return errors


def validate_otp_verification(data: Mapping[str, Any]) -> Errors:
    errors = validate_signup_request(data)
    otp_code = _text(data, "otpCode")
    if not otp_code:
        errors["otpCode"] = "OTP code is required."
    elif not OTP_PATTERN.fullmatch(otp_code):
        errors["otpCode"] = "OTP must be exactly 6 digits."
    return errors


def validate_signup_profile(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    name = _text(data, "name")
    if not name or not 2 <= len(name) <= 20:
        errors["name"] = "Name must be 2-20 characters long."
    password = data.get("password")
    if not password:
        errors["password"] = "Password is required."
    elif not isinstance(password, str) or not is_strong_password(password):
        errors["password"] = "Password is not strong enough."
    _check_contact_fields(errors, data)
    return errors


def validate_signin(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    if not _text(data, "userName") and not _text(data, "email"):
        errors["userName"] = "Either userName or email is required."
    password = data.get("password")
    if not password:
        errors["password"] = "Password is required."
    elif not isinstance(password, str) or len(password) < 6:
        errors["password"] = "Password must be at least 6 characters long."
    return errors


def validate_profile_update(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    unknown = sorted(key for key in data if key not in PROFILE_FIELDS)
    if unknown:
        errors["fields"] = f"Invalid fields in update: {', '.join(unknown)}."
    if "userName" in data:
        user_name = _text(data, "userName") or ""
        if not 3 <= len(user_name) <= 30 or not re.fullmatch(r"[A-Za-z0-9_]+", user_name):
            errors["userName"] = "UserName must be 3-30 characters long and use letters, numbers, and underscores."
    if "name" in data:
        name = _text(data, "name") or ""
        if not 2 <= len(name) <= 20:
            errors["name"] = "Name must be 2-20 characters long."
    if "email" in data and not is_valid_email(_text(data, "email")):
        errors["email"] = "Email is not valid."
    _check_contact_fields(errors, data)
    return errors


def validate_password_change(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    if not data.get("currentPassword"):
        errors["currentPassword"] = "Current password is required."
    new_password = data.get("newPassword")
    if not new_password:
        errors["newPassword"] = "New password is required."
    elif not isinstance(new_password, str) or not is_strong_password(new_password):
        errors["newPassword"] = "Password is not strong enough."
    return errors


def validate_password_reset(data: Mapping[str, Any]) -> Errors:
    errors: Errors = {}
    _check_email(errors, _text(data, "email"))
    otp_code = _text(data, "otpCode")
    if not otp_code:
        errors["otpCode"] = "OTP code is required."
    elif not OTP_PATTERN.fullmatch(otp_code):
        errors["otpCode"] = "OTP must be exactly 6 digits."
    new_password = data.get("newPassword")
    if not new_password:
        errors["newPassword"] = "New password is required."
    elif not isinstance(new_password, str) or not is_strong_password(new_password):
        errors["newPassword"] = "Password is not strong enough."
    return errors


def validate_object_id(value: str | None, field: str, label: str) -> Errors:
    if not value:
        return {field: f"{label} is required"}
    if not is_valid_object_id(value):
        return {field: f"Invalid {label[0].lower() + label[1:]} format"}
    return {}
