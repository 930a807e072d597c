"""
Slash command definitions registered with Discord.
"""
from codechef_client import CODECHEF_RANKS
from codeforces_client import CODEFORCES_RANKS
from discord_interactions import CommandOptionType
from validation_utils import MAX_USERNAME_LENGTH, MIN_USERNAME_LENGTH


CHAT_INPUT = 1
ADMINISTRATOR = "8"


def _username_option(description: str) -> dict:
    return {
        "type": CommandOptionType.STRING,
        "name": "username",
        "description": description,
        "required": True,
        "min_length": MIN_USERNAME_LENGTH,
        "max_length": MAX_USERNAME_LENGTH
    }


def _role_option(description: str) -> dict:
    return {
        "type": CommandOptionType.ROLE,
        "name": "role",
        "description": description,
        "required": True
    }


LINK_COMMAND = {
    "name": "link",
    "type": CHAT_INPUT,
    "description": "Link your competitive programming accounts",
    "dm_permission": False,
    "options": [
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "codeforces",
            "description": "Link your Codeforces account",
            "options": [_username_option("Your Codeforces handle/username")]
        },
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "codechef",
            "description": "Link your CodeChef account",
            "options": [_username_option("Your CodeChef username")]
        },
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "status",
            "description": "View your linked accounts"
        }
    ]
}

VERIFY_COMMAND = {
    "name": "verify",
    "type": CHAT_INPUT,
    "description": "Complete your CP account verification",
    "dm_permission": False,
    "options": [
        {
            "type": CommandOptionType.STRING,
            "name": "platform",
            "description": "Which platform to verify (optional - verifies all pending if not specified)",
            "required": False,
            "choices": [
                {"name": "Codeforces", "value": "codeforces"},
                {"name": "CodeChef", "value": "codechef"}
            ]
        }
    ]
}

SETUP_COMMAND = {
    "name": "setup",
    "type": CHAT_INPUT,
    "description": "Configure the CP verification bot (Admin only)",
    "default_member_permissions": ADMINISTRATOR,
    "dm_permission": False,
    "options": [
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "verified-role",
            "description": "Set the role given to verified users",
            "options": [_role_option("The role to assign to verified users")]
        },
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "rank-role",
            "description": "Map a Codeforces rank or CodeChef star rating to a Discord role",
            "options": [
                {
                    "type": CommandOptionType.STRING,
                    "name": "rank",
                    "description": "Judge rank",
                    "required": True,
                    "choices": [{"name": rank.title(), "value": rank} for rank in CODEFORCES_RANKS + CODECHEF_RANKS]
                },
                _role_option("The Discord role to assign for this rank")
            ]
        },
        {
            "type": CommandOptionType.SUB_COMMAND,
            "name": "view",
            "description": "View current bot configuration"
        }
    ]
}

COMMANDS = [LINK_COMMAND, VERIFY_COMMAND, SETUP_COMMAND]
