"""Input validation helpers for import records and request payloads."""
from __future__ import annotations
import re
import secrets
import string
from typing import Any, Optional

from cams.core.exceptions import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 50
PHONE_MAX_LENGTH = 15
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(
    r"^[\+]?[(]?[0-9]{1,3}[)]?[-\s\.]?[(]?[0-9]{1,4}[)]?[-\s\.]?[0-9]{1,4}[-\s\.]?[0-9]{1,9}$"
)
PASSWORD_SPECIAL_CHARS = "@$!%*?&"
DANGEROUS_CHARS = "<>\"'`;&|$"

_CONTROL_CHARS = re.compile(r"[\r\n\t]")
_MULTIPLE_SPACES = re.compile(r"\s+")


def validate_username(raw: Any) -> str:
    """Validate username format (3-50 chars, alphanumeric + .-_).

    Args:
        raw: Raw username input

    Returns:
        Trimmed username (case preserved; uniqueness is case-insensitive)

    Raises:
        ValidationError: If username is invalid
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Username is required")

    username = raw.strip()
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("Username may only contain letters, digits, '.', '-' and '_'")
    if username[0] in {".", "-", "_"} or username[-1] in {".", "-", "_"}:
        raise ValidationError("Username cannot start or end with special characters")

    return username


def validate_email(raw: Any) -> str:
    """Validate email address.

    Returns:
        Normalized (trimmed, lowercased) email address

    Raises:
        ValidationError: If email is invalid
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Email is required")

    email = raw.strip().lower()
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError(f"Email must not exceed {EMAIL_MAX_LENGTH} characters")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")

    return email


def validate_name(raw: Any, field: str, *, max_length: int = NAME_MAX_LENGTH) -> Optional[str]:
    """Validate an optional first/last name field.

    Returns:
        Trimmed name, or None when not provided
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{field} must be a string")

    name = raw.strip()
    if not name:
        return None
    if len(name) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")

    # Prevent injection attacks
    if any(char in name for char in DANGEROUS_CHARS):
        raise ValidationError(f"{field} contains invalid characters")

    return name


def validate_password(raw: Any) -> Optional[str]:
    """Validate an optional password against the complexity policy."""
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        raise ValidationError("Password must be a string")
    if len(raw) > PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
        )

    missing = []
    if len(raw) < PASSWORD_MIN_LENGTH:
        missing.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", raw):
        missing.append("at least one uppercase letter")
    if not re.search(r"[a-z]", raw):
        missing.append("at least one lowercase letter")
    if not re.search(r"\d", raw):
        missing.append("at least one digit")
    if not any(char in PASSWORD_SPECIAL_CHARS for char in raw):
        missing.append(f"at least one special character ({PASSWORD_SPECIAL_CHARS})")

    if missing:
        raise ValidationError(f"Password must contain {', '.join(missing)}")
    return raw


def validate_phone(raw: Any) -> Optional[str]:
    """Validate an optional phone number."""
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError("Phone number must be a string")

    phone = raw.strip()
    if not phone:
        return None
    if len(phone) > PHONE_MAX_LENGTH:
        raise ValidationError(f"Phone number cannot exceed {PHONE_MAX_LENGTH} characters")
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("Invalid phone number format")
    return phone


def validate_text(
    raw: Any,
    field: str,
    *,
    max_length: int,
    min_length: int = 0,
    required: bool = False,
) -> Optional[str]:
    """Validate a free-text field by length."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{field} must be a string")

    value = raw.strip()
    if len(value) < min_length or len(value) > max_length:
        if min_length:
            raise ValidationError(f"{field} must be between {min_length} and {max_length} characters")
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return value


def validate_bool(raw: Any, field: str, *, default: bool = True) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    raise ValidationError(f"{field} must be a boolean")


def validate_id_list(raw: Any, field: str, *, allow_empty: bool = False) -> list[int]:
    """Validate a list of integer ids, preserving order and dropping duplicates."""
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be a list of ids")
    if not raw and not allow_empty:
        raise ValidationError(f"{field} must not be empty")

    ids: list[int] = []
    for value in raw:
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{field} must contain integer ids")
        if value not in ids:
            ids.append(value)
    return ids


def sanitize_for_log(value: Any) -> Optional[str]:
    """Collapse control characters so user input cannot forge log lines."""
    if value is None:
        return None
    text = _CONTROL_CHARS.sub(" ", str(value))
    return _MULTIPLE_SPACES.sub(" ", text).strip()


def generate_temp_password(length: int = 16) -> str:
    """Generate a temporary password that satisfies the password policy."""
    alphabet = string.ascii_letters + string.digits + PASSWORD_SPECIAL_CHARS
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if (any(c.isupper() for c in password)
                and any(c.islower() for c in password)
                and any(c.isdigit() for c in password)
                and any(c in PASSWORD_SPECIAL_CHARS for c in password)):
            return password
