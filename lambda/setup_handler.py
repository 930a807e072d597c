"""
Setup command handler for per-guild configuration.
Lets server admins choose the verified role and map judge ranks to roles.
"""
from codechef_client import CODECHEF_RANKS
from codeforces_client import CODEFORCES_RANKS
from discord_interactions import EmbedColor, get_subcommand, get_invoking_user_id
from errors import PersistenceError
from guild_config import get_guild_config, set_rank_role, set_verified_role
from handlers import embed_response, ephemeral_response, error_response
from validation_utils import validate_discord_id


# Discord Permission: ADMINISTRATOR (0x8)
ADMINISTRATOR_PERMISSION = 0x0000000008

KNOWN_RANKS = CODEFORCES_RANKS + CODECHEF_RANKS


def has_admin_permissions(member: dict, guild_id: str) -> bool:
    """
    Check if a Discord member has administrator permissions.

    Args:
        member: Discord member object from interaction
        guild_id: Guild ID to validate against

    Returns:
        True if user is admin, False otherwise
    """
    # Validate guild context (prevent DM usage)
    if not guild_id or guild_id == '@me':
        print("ERROR: Command used outside of guild context")
        return False

    if not member or 'permissions' not in member:
        print("ERROR: Permissions field missing from member object")
        return False

    try:
        permissions = int(member['permissions'])
    except (ValueError, TypeError) as e:
        print(f"ERROR: Invalid permissions value: {member.get('permissions')} - {e}")
        return False

    has_admin = (permissions & ADMINISTRATOR_PERMISSION) == ADMINISTRATOR_PERMISSION

    user_id = member.get('user', {}).get('id', 'unknown')
    print(f"Authorization check: user={user_id}, guild={guild_id}, admin={has_admin}")

    return has_admin


def handle_setup_command(interaction: dict) -> dict:
    """
    Handle /setup verified-role <role>, /setup rank-role <rank> <role> and /setup view.

    Args:
        interaction: Discord interaction payload

    Returns:
        Lambda response dict
    """
    guild_id = interaction.get('guild_id')
    if not has_admin_permissions(interaction.get('member'), guild_id):
        return error_response("You need Administrator permission to configure the bot.")

    user_id = get_invoking_user_id(interaction)
    subcommand, options = get_subcommand(interaction)

    try:
        if subcommand == 'verified-role':
            return handle_verified_role(guild_id, user_id, options.get('role'))
        elif subcommand == 'rank-role':
            return handle_rank_role(guild_id, user_id, options.get('rank'), options.get('role'))
        elif subcommand == 'view':
            return handle_view(guild_id)
        else:
            return error_response(f"Unknown subcommand: {subcommand}")
    except PersistenceError:
        return error_response("Could not save the configuration. Please try again later.")


def handle_verified_role(guild_id: str, user_id: str, role_id: str) -> dict:
    if not validate_discord_id(role_id):
        return error_response("Invalid role.")

    set_verified_role(guild_id, role_id, user_id)
    return ephemeral_response(f"✅ Verified users will now receive <@&{role_id}>.")


def handle_rank_role(guild_id: str, user_id: str, rank: str, role_id: str) -> dict:
    if not validate_discord_id(role_id):
        return error_response("Invalid role.")

    rank = (rank or '').strip().lower()
    if rank not in KNOWN_RANKS:
        return error_response(
            f"Unknown rank: {rank}\n\nValid ranks: {', '.join(KNOWN_RANKS)}"
        )

    set_rank_role(guild_id, rank, role_id, user_id)
    return ephemeral_response(f"✅ Users with rank **{rank}** will now receive <@&{role_id}>.")


def handle_view(guild_id: str) -> dict:
    config = get_guild_config(guild_id) or {}

    verified_role_id = config.get('verified_role_id')
    rank_roles = config.get('rank_roles', {})

    rank_lines = [
        f"• **{rank}** → <@&{rank_roles[rank]}>"
        for rank in KNOWN_RANKS if rank in rank_roles
    ]

    return embed_response([{
        'title': "⚙️ Bot Configuration",
        'color': int(EmbedColor.CODEFORCES),
        'fields': [
            {
                'name': "Verified Role",
                'value': f"<@&{verified_role_id}>" if verified_role_id else "Not set",
                'inline': False
            },
            {
                'name': "Rank Roles",
                'value': "\n".join(rank_lines) if rank_lines else "None configured",
                'inline': False
            }
        ]
    }])
