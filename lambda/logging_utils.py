"""
Logging utilities with sensitive data sanitization.
"""
import re
import json
from typing import Any, Optional


# Sensitive keys that should be redacted
SENSITIVE_KEYS = {
    'token', 'password', 'secret', 'authorization',
    'x-signature-ed25519', 'x-signature-timestamp',
    'bot_token', 'api_key', 'private_key'
}


def sanitize_for_logging(data: Any) -> Any:
    """
    Sanitize sensitive data before logging.

    Recursively processes dictionaries, lists, and strings to remove
    credentials such as the bot token or interaction tokens.

    Args:
        data: Data to sanitize (dict, str, list, or other types)

    Returns:
        Sanitized data safe for logging
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                sanitized[key] = '***REDACTED***'
            elif isinstance(value, (dict, list)):
                sanitized[key] = sanitize_for_logging(value)
            elif isinstance(value, str):
                sanitized[key] = sanitize_string(value)
            else:
                sanitized[key] = value
        return sanitized

    elif isinstance(data, list):
        return [sanitize_for_logging(item) for item in data]

    elif isinstance(data, str):
        return sanitize_string(data)

    return data


def sanitize_string(text: str) -> str:
    """
    Sanitize sensitive patterns in strings.

    Args:
        text: String to sanitize

    Returns:
        Sanitized string with sensitive patterns redacted
    """
    if not isinstance(text, str):
        return text

    # Discord bot tokens (MTQ0NjU2... or Bot MTQ0NjU2...)
    text = re.sub(
        r'(Bot\s+)?[A-Za-z0-9_-]{24,}\.[A-Za-z0-9_-]{6,}\.[A-Za-z0-9_-]{27,}',
        'Bot ***TOKEN***',
        text
    )

    # AWS access keys
    text = re.sub(
        r'(AKIA|ASIA)[0-9A-Z]{16}',
        '***AWS_KEY***',
        text
    )

    return text


def log_safe(message: str, data: Any = None) -> None:
    """
    Log a message with automatically sanitized data.

    Args:
        message: Log message
        data: Optional data to include (will be sanitized)
    """
    if data is not None:
        sanitized_data = sanitize_for_logging(data)
        if isinstance(sanitized_data, (dict, list)):
            print(f"{message}: {json.dumps(sanitized_data, default=str)}")
        else:
            print(f"{message}: {sanitized_data}")
    else:
        print(message)


def log_judge_error(platform: str, operation: str, status_code: Optional[int] = None,
                    detail: Optional[str] = None) -> None:
    """
    Log a failed judge request as a single JSON line.

    Args:
        platform: Judge name (e.g. "codeforces")
        operation: Operation that failed (e.g. "user.status")
        status_code: HTTP status code, if a response was received
        detail: Short description (timeout, API comment, ...)
    """
    error_info = {
        'platform': platform,
        'operation': operation,
        'status_code': status_code,
        'detail': sanitize_string(detail) if detail else None
    }
    print(f"Judge API error: {json.dumps(error_info)}")


def log_discord_error(operation: str, status_code: int, error_code: int = None) -> None:
    """
    Log Discord API errors safely without exposing response details.

    Args:
        operation: Operation that failed (e.g., "assign_role", "register_commands")
        status_code: HTTP status code
        error_code: Discord error code if available
    """
    error_info = {
        'operation': operation,
        'status_code': status_code,
        'error_code': error_code
    }
    print(f"Discord API error: {json.dumps(error_info)}")
