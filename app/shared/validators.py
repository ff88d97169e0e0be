"""Shared validation utilities"""

import re
from typing import Optional

from .time_utils import is_valid_timezone

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


def normalize_email(email: str) -> str:
    """Canonical form used for storage and case-insensitive matching"""
    return email.strip().lower()


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = normalize_email(email)

    if not re.match(EMAIL_PATTERN, email):
        raise ValueError(f"Invalid email address: {email}")

    return email


def validate_timezone(tz_name: Optional[str]) -> Optional[str]:
    """
    Validate an IANA timezone identifier.

    Raises:
        ValueError: If the zone is unknown
    """
    if tz_name is None:
        return tz_name

    tz_name = tz_name.strip()
    if not is_valid_timezone(tz_name):
        raise ValueError(f"Invalid timezone: {tz_name}")

    return tz_name


def dedupe_emails(emails: list[str]) -> list[str]:
    """Normalize and drop duplicates, keeping first-seen order"""
    seen = set()
    result = []
    for email in emails:
        normalized = normalize_email(email)
        if normalized and normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result
