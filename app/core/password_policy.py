"""Password rules applied when a reset sets a new credential."""

import re
from typing import Optional

MIN_PASSWORD_LENGTH = 8
PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters with one uppercase letter and one number."
)

_UPPERCASE = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")


def password_policy_violation(password: str) -> Optional[str]:
    """Return a description of the broken rule, or None when the password is acceptable."""
    if (
        len(password) < MIN_PASSWORD_LENGTH
        or not _UPPERCASE.search(password)
        or not _DIGIT.search(password)
    ):
        return PASSWORD_POLICY_MESSAGE
    return None


def is_password_valid(password: str) -> bool:
    return password_policy_violation(password) is None
