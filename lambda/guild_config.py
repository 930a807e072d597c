"""
Guild configuration management.
Stores the verified role and the rank-to-role map per guild in DynamoDB.
"""
import boto3
import os
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from botocore.exceptions import ClientError

from errors import PersistenceError


# Initialize DynamoDB
dynamodb = boto3.resource('dynamodb', region_name=os.environ.get('AWS_REGION', 'us-east-1'))
configs_table = dynamodb.Table(os.environ.get('DYNAMODB_GUILD_CONFIGS_TABLE', 'cp-guild-configs'))


def get_guild_config(guild_id: str) -> Optional[Dict[str, Any]]:
    """
    Get configuration for a specific guild.

    Args:
        guild_id: Discord guild ID

    Returns:
        Guild config dict or None if not configured
    """
    try:
        response = configs_table.get_item(Key={'guild_id': guild_id})
    except ClientError as e:
        print(f"Error getting guild config: {e}")
        raise PersistenceError(f"Could not read guild config: {e}")

    config = response.get('Item')
    if config:
        print(f"Found config for guild {guild_id}: verified_role={config.get('verified_role_id')}, "
              f"rank_roles={len(config.get('rank_roles', {}))}")
    else:
        print(f"No config found for guild {guild_id}")
    return config


def set_verified_role(guild_id: str, role_id: str, setup_by_user_id: str) -> None:
    """
    Set the role given to every verified user.

    Args:
        guild_id: Discord guild ID
        role_id: Role ID to assign on verification
        setup_by_user_id: Admin who ran the command
    """
    now = datetime.now(timezone.utc).isoformat()
    try:
        configs_table.update_item(
            Key={'guild_id': guild_id},
            UpdateExpression='SET verified_role_id = :role, setup_by = :user, last_updated = :now',
            ExpressionAttributeValues={':role': role_id, ':user': setup_by_user_id, ':now': now}
        )
        print(f"Set verified role for guild {guild_id}: role={role_id}")
    except ClientError as e:
        print(f"Error saving verified role: {e}")
        raise PersistenceError(f"Could not save verified role: {e}")


def set_rank_role(guild_id: str, rank: str, role_id: str, setup_by_user_id: str) -> Dict[str, str]:
    """
    Map a judge rank label to a role. Each rank maps to exactly one role.

    Args:
        guild_id: Discord guild ID
        rank: Rank label (e.g. "expert", "3 star")
        role_id: Role ID for that rank
        setup_by_user_id: Admin who ran the command

    Returns:
        The updated rank-to-role map
    """
    config = get_guild_config(guild_id) or {}
    rank_roles = dict(config.get('rank_roles', {}))
    rank_roles[rank.lower()] = role_id

    try:
        configs_table.update_item(
            Key={'guild_id': guild_id},
            UpdateExpression='SET rank_roles = :roles, setup_by = :user, last_updated = :now',
            ExpressionAttributeValues={
                ':roles': rank_roles,
                ':user': setup_by_user_id,
                ':now': datetime.now(timezone.utc).isoformat()
            }
        )
        print(f"Mapped rank '{rank}' to role {role_id} in guild {guild_id}")
    except ClientError as e:
        print(f"Error saving rank role: {e}")
        raise PersistenceError(f"Could not save rank role: {e}")

    return rank_roles


def get_verified_role_id(guild_id: str) -> Optional[str]:
    """
    Get the verified role ID for a guild.

    Args:
        guild_id: Discord guild ID

    Returns:
        Role ID or None if not configured
    """
    config = get_guild_config(guild_id)
    return config.get('verified_role_id') if config else None


def get_rank_role_map(guild_id: str) -> Dict[str, str]:
    """Rank label to role ID map, empty if none configured."""
    config = get_guild_config(guild_id)
    if config and 'rank_roles' in config:
        return dict(config['rank_roles'])
    return {}
