"""Input checks performed before anything is sent to the backend."""

import re
from typing import Optional

from ..errors import ValidationError


MIN_PASSWORD_LENGTH = 6
OTP_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not email:
        raise ValidationError("email", "Email is required")
    if not _EMAIL_RE.match(email):
        raise ValidationError("email", "Invalid email address format")
    return email


def validate_password(password: str, confirm: Optional[str] = None) -> str:
    if not password:
        raise ValidationError("password", "Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if confirm is not None and confirm != password:
        raise ValidationError("password", "Passwords do not match")
    return password


def validate_otp_code(code: str) -> str:
    code = (code or "").strip()
    if not code:
        raise ValidationError("code", "OTP code is required")
    if len(code) > OTP_LENGTH:
        raise ValidationError("code", f"OTP code must be at most {OTP_LENGTH} characters")
    return code


def require_text(value: Optional[str], field: str, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(field, message)
    return value
