"""
Input validation utilities for security.

Usernames end up in judge URLs, so they are restricted to the characters
the judges themselves allow before any request is made.
"""
import re
from typing import Optional

from models import Platform


# Input length limits (same as the slash command option limits)
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 24

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]+$')


def validate_discord_id(value: str) -> bool:
    """
    Validate a Discord snowflake ID.

    Discord IDs are 17-20 digit numeric strings.

    Args:
        value: String to validate

    Returns:
        True if valid Discord ID, False otherwise
    """
    if not value or not isinstance(value, str):
        return False
    return bool(re.match(r'^\d{17,20}$', value))


def validate_judge_username(username: str) -> bool:
    """
    Validate a claimed judge username before it is put into a URL.

    Args:
        username: Username as typed by the user

    Returns:
        True if it is 3-24 characters of letters, digits, '_', '.' or '-'
    """
    if not username or not isinstance(username, str):
        return False
    if not MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH:
        return False
    return bool(USERNAME_PATTERN.match(username))


def parse_platform(value: Optional[str]) -> Optional[Platform]:
    """
    Map a slash command option value to a Platform.

    Args:
        value: Option value such as "codeforces"

    Returns:
        The platform, or None if the value is empty or unknown
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return Platform(value.strip().lower())
    except ValueError:
        print(f"ERROR: Unknown platform option: {value}")
        return None
