"""
Discord Interactions API utilities and constants.
"""
from enum import IntEnum
import os
import time
from typing import Any, Dict, Optional, Tuple
from nacl.signing import VerifyKey
from nacl.exceptions import BadSignatureError


# Reject interactions signed more than 5 minutes ago or in the future
MAX_TIMESTAMP_SKEW_SECONDS = 300


class InteractionType(IntEnum):
    """Discord interaction types."""
    PING = 1
    APPLICATION_COMMAND = 2
    MESSAGE_COMPONENT = 3
    APPLICATION_COMMAND_AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


class InteractionResponseType(IntEnum):
    """Discord interaction response types."""
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5


class MessageFlags(IntEnum):
    """Discord message flags."""
    EPHEMERAL = 64  # Only visible to user who triggered interaction


class CommandOptionType(IntEnum):
    """Application command option types."""
    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8


class EmbedColor(IntEnum):
    """Embed accent colours."""
    CODEFORCES = 0x1F8ACB
    CODECHEF = 0x5B4638
    SUCCESS = 0x00FF00
    WARNING = 0xFFA500
    ERROR = 0xFF0000


def get_command_name(interaction: dict) -> Optional[str]:
    return interaction.get('data', {}).get('name')


def get_subcommand(interaction: dict) -> Tuple[Optional[str], Dict[str, Any]]:
    """
    Extract the invoked subcommand and its options.

    Args:
        interaction: Discord interaction payload

    Returns:
        Tuple of (subcommand name or None, {option name: value})
    """
    options = interaction.get('data', {}).get('options', []) or []
    for option in options:
        if option.get('type') == CommandOptionType.SUB_COMMAND:
            values = {opt['name']: opt.get('value') for opt in option.get('options', []) or []}
            return option.get('name'), values
    return None, {opt['name']: opt.get('value') for opt in options if 'name' in opt}


def get_invoking_user_id(interaction: dict) -> Optional[str]:
    """User ID from a guild interaction (member.user) or a DM interaction (user)."""
    member = interaction.get('member') or {}
    user = member.get('user') or interaction.get('user') or {}
    return user.get('id')


def verify_discord_signature(signature: str, timestamp: str, body: str) -> bool:
    """
    Verify Discord interaction signature using Ed25519 with replay protection.

    Args:
        signature: x-signature-ed25519 header
        timestamp: x-signature-timestamp header
        body: Raw request body

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        current_time = int(time.time())
        request_time = int(timestamp)
    except (ValueError, TypeError) as e:
        print(f"ERROR: Invalid timestamp format: {e}")
        return False

    time_diff = abs(current_time - request_time)
    if time_diff > MAX_TIMESTAMP_SKEW_SECONDS:
        print(f"ERROR: Request timestamp too old or in future. Diff: {time_diff}s")
        return False

    public_key = os.environ.get('DISCORD_PUBLIC_KEY')
    if not public_key:
        print("ERROR: DISCORD_PUBLIC_KEY not found in environment")
        return False

    try:
        verify_key = VerifyKey(bytes.fromhex(public_key))
        verify_key.verify(f"{timestamp}{body}".encode(), bytes.fromhex(signature))
        return True
    except BadSignatureError:
        print("ERROR: Invalid Discord signature")
        return False
    except (ValueError, TypeError) as e:
        print(f"ERROR: Signature verification failed: {e}")
        return False
