#!/usr/bin/env python3
"""
Register slash commands with Discord.
This script registers /link, /verify and /setup globally for the bot.
"""
import os
import sys
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).parent / 'lambda'))

from command_definitions import COMMANDS


# Read .env file manually
def load_env_file(filepath='.env'):
    env_vars = {}
    if os.path.exists(filepath):
        with open(filepath) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    env_vars[key.strip()] = value.strip()
    return env_vars


def register_commands(app_id: str, bot_token: str) -> bool:
    """
    Overwrite the application's global commands with COMMANDS.

    Returns:
        True if Discord accepted the command list
    """
    url = f"https://discord.com/api/v10/applications/{app_id}/commands"
    headers = {
        "Authorization": f"Bot {bot_token}",
        "Content-Type": "application/json"
    }

    print(f"Registering {len(COMMANDS)} commands globally for app {app_id}...")
    response = requests.put(url, headers=headers, json=COMMANDS, timeout=15)

    if response.status_code in [200, 201]:
        for cmd in response.json():
            print(f"✅ /{cmd['name']} registered (ID: {cmd['id']})")
        print("\nThe commands may take up to 1 hour to appear in all servers.")
        return True

    print(f"❌ Failed to register commands: {response.status_code}")
    print(response.text)
    return False


def main():
    env_vars = load_env_file()
    app_id = env_vars.get('DISCORD_APP_ID') or os.environ.get('DISCORD_APP_ID')
    bot_token = env_vars.get('DISCORD_TOKEN') or os.environ.get('DISCORD_TOKEN')

    if not app_id or not bot_token:
        print("ERROR: DISCORD_APP_ID and DISCORD_TOKEN must be set in .env file")
        sys.exit(1)

    sys.exit(0 if register_commands(app_id, bot_token) else 1)


if __name__ == '__main__':
    main()
