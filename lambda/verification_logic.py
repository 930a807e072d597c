"""
Verification timing helpers.
Pure functions with no database or network dependencies.
"""
from datetime import datetime, timedelta


# Configuration
DEFAULT_WINDOW_MINUTES = 10


def get_expiration_time(started_at: datetime, minutes: int = DEFAULT_WINDOW_MINUTES) -> datetime:
    """
    Calculate when a challenge issued at `started_at` expires.

    Args:
        started_at: Challenge creation instant
        minutes: Verification window length

    Returns:
        Expiration instant
    """
    return started_at + timedelta(minutes=minutes)


def format_remaining(remaining: timedelta) -> str:
    """
    Format time left on a challenge.

    Args:
        remaining: Time until expiry

    Returns:
        "Xm Ys", or "Expired" when nothing is left
    """
    total_seconds = int(remaining.total_seconds())
    if total_seconds <= 0:
        return "Expired"

    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}m {seconds}s"
