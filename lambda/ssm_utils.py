"""
AWS Systems Manager Parameter Store utilities.
Loads the Discord bot token and other secrets from SSM.
"""
import os
import boto3
from functools import lru_cache

from botocore.exceptions import ClientError

from config import load_settings
from errors import ConfigurationError


ssm_client = boto3.client('ssm', region_name=os.environ.get('AWS_REGION', 'us-east-1'))


@lru_cache(maxsize=32)
def get_parameter(name: str) -> str:
    """
    Get a decrypted SSM parameter. Successful lookups are cached for the
    lifetime of the Lambda container; failures are not.

    Args:
        name: Parameter name (e.g., '/cp-verification-bot/token')

    Returns:
        Parameter value

    Raises:
        ConfigurationError: If the parameter cannot be read
    """
    try:
        response = ssm_client.get_parameter(Name=name, WithDecryption=True)
    except ClientError as e:
        print(f"Error getting parameter {name}: {e.response.get('Error', {}).get('Code')}")
        raise ConfigurationError(f"SSM parameter {name} is unavailable")

    value = response['Parameter']['Value']
    if not value:
        raise ConfigurationError(f"SSM parameter {name} is empty")
    return value


def get_bot_token() -> str:
    """Discord bot token from the parameter named in the settings."""
    return get_parameter(load_settings().bot_token_parameter)
