"""Random password generation for the record form."""

from __future__ import annotations

import secrets
import string

PASSWORD_CHARS = string.ascii_lowercase + string.ascii_uppercase + string.digits + "!@#$%^&*"
PASSWORD_LENGTH = 16


def generate_password(length: int = PASSWORD_LENGTH, charset: str = PASSWORD_CHARS) -> str:
    """Return *length* characters picked independently and uniformly from *charset*."""
    if length < 1:
        raise ValueError("Password length must be at least 1.")
    return "".join(secrets.choice(charset) for _ in range(length))
