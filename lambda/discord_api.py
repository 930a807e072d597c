"""
Discord REST API operations.
Role assignment after a judge account has been verified.
"""
import requests
from typing import Optional

from guild_config import get_rank_role_map, get_verified_role_id
from logging_utils import log_discord_error
from models import Platform, RoleAssignment
from ssm_utils import get_bot_token


DISCORD_API_BASE = "https://discord.com/api/v10"
REQUEST_TIMEOUT_SECONDS = 10


def assign_role(user_id: str, guild_id: str, role_id: str, bot_token: str) -> bool:
    """
    Assign a role to a user via Discord REST API.

    Args:
        user_id: Discord user ID
        guild_id: Discord guild ID
        role_id: Role ID to assign
        bot_token: Discord bot token

    Returns:
        True if role assigned successfully, False otherwise
    """
    url = f"{DISCORD_API_BASE}/guilds/{guild_id}/members/{user_id}/roles/{role_id}"
    headers = {
        "Authorization": f"Bot {bot_token}",
        "Content-Type": "application/json",
        "X-Audit-Log-Reason": "Competitive programming account verified"
    }

    try:
        response = requests.put(url, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        print(f"Error assigning role: {e}")
        return False

    if response.status_code == 204:
        print(f"Assigned role {role_id} to user {user_id}")
        return True
    elif response.status_code == 404:
        print(f"User or role not found in guild")
        return False
    else:
        try:
            error_code = response.json().get('code') if response.content else None
        except ValueError:
            error_code = None
        log_discord_error('assign_role', response.status_code, error_code)
        return False


def assign_verification_roles(
    user_id: str,
    guild_id: str,
    platform: Platform,
    rank: Optional[str]
) -> RoleAssignment:
    """
    Give a freshly verified user the guild's verified role and, if the guild
    maps their rank to a role, the rank role.

    Args:
        user_id: Discord user ID
        guild_id: Discord guild ID
        platform: Judge the account was verified on
        rank: Rank label reported by the judge, if any

    Returns:
        Which roles were assigned
    """
    verified_role_id = get_verified_role_id(guild_id)
    rank_roles = get_rank_role_map(guild_id)
    rank_role_id = rank_roles.get(rank.lower()) if rank else None

    if not verified_role_id and not rank_role_id:
        print(f"Guild {guild_id} has no roles configured for {platform.value} verification")
        return RoleAssignment()

    bot_token = get_bot_token()

    verified_assigned = False
    if verified_role_id:
        verified_assigned = assign_role(user_id, guild_id, verified_role_id, bot_token)

    rank_assigned = False
    if rank_role_id:
        rank_assigned = assign_role(user_id, guild_id, rank_role_id, bot_token)

    return RoleAssignment(
        verified_role_assigned=verified_assigned,
        rank_role_assigned=rank_assigned
    )
