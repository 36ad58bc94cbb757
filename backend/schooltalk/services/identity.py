"""
Identity normalization - turns raw user input into account identifiers.

Teachers sign in with either a phone number or an email address. Both are
normalized before they touch the store so that "+1 (555) 123-4567" and
"15551234567" address the same account, and "Ms.Lee@School.org" and
"ms.lee@school.org" do too.

All validation here runs before any store call; failures raise
InvalidArgument and never reach the database.
"""

import re

from schooltalk import config
from schooltalk.errors import InvalidArgument


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number by extracting only digits.

    Examples:
        "+1 555 123 4567"   → "15551234567"
        "(555) 123-4567"    → "5551234567"

    Raises:
        InvalidArgument: if fewer than MIN_PHONE_DIGITS digits remain
    """
    digits = re.sub(r'\D', '', phone or "")
    if len(digits) < config.MIN_PHONE_DIGITS:
        raise InvalidArgument("Please enter a valid phone number.")
    return digits


def normalize_email(email: str) -> str:
    """Lower-case and strip an email address, rejecting obvious garbage."""
    email = (email or "").strip().lower()
    local_part, _, domain = email.partition("@")
    if not local_part or "." not in domain or " " in email:
        raise InvalidArgument("Please enter a valid email address.")
    return email


def normalize_identifier(identifier: str) -> str:
    """
    Normalize an account identifier.

    Anything containing '@' is treated as an email address, everything else
    as a phone number.
    """
    if identifier is None or not str(identifier).strip():
        raise InvalidArgument("An account identifier is required.")
    identifier = str(identifier).strip()
    if "@" in identifier:
        return normalize_email(identifier)
    return normalize_phone(identifier)


def validate_secret(secret: str, mode: str = None) -> str:
    """
    Check a secret against the configured format and return it unchanged.

    access_code mode: exactly ACCESS_CODE_LENGTH digits.
    password mode: at least MIN_PASSWORD_LENGTH characters.
    """
    mode = mode or config.SECRET_MODE
    if not isinstance(secret, str):
        raise InvalidArgument("A secret is required.")

    if mode == "access_code":
        length = config.ACCESS_CODE_LENGTH
        if len(secret) != length or not secret.isdigit():
            raise InvalidArgument(f"Access code must be {length} digits.")
    elif mode == "password":
        if len(secret) < config.MIN_PASSWORD_LENGTH:
            raise InvalidArgument(
                f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters.")
    else:
        raise InvalidArgument(f"Unknown secret mode: {mode}")
    return secret
