"""
DynamoDB operations for verification sessions and linked accounts.

Sessions and linked accounts are keyed by (user_guild, platform), where
user_guild is "<user_id>#<guild_id>". Writing a session for a key that
already holds one replaces it, which is how a new /link supersedes an
earlier pending challenge.
"""
import boto3
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from errors import DuplicateLink, PersistenceError
from models import LinkedAccount, Platform, VerificationSession


# Initialize DynamoDB tables
dynamodb = boto3.resource('dynamodb', region_name=os.environ.get('AWS_REGION', 'us-east-1'))
sessions_table = dynamodb.Table(os.environ.get('DYNAMODB_SESSIONS_TABLE', 'cp-verification-sessions'))
accounts_table = dynamodb.Table(os.environ.get('DYNAMODB_LINKED_ACCOUNTS_TABLE', 'cp-linked-accounts'))

ACCOUNT_INDEX = 'account-index'

# DynamoDB TTL backstop; the sweep normally removes sessions long before this
SESSION_TTL_GRACE = timedelta(hours=24)


def user_guild_key(user_id: str, guild_id: str) -> str:
    return f"{user_id}#{guild_id}"


def account_key(guild_id: str, platform: Platform, username: str) -> str:
    """Lookup key for "who linked this judge account in this guild". Usernames are case-insensitive."""
    return f"{guild_id}#{platform.value}#{username.lower()}"


def _epoch(value: datetime) -> Decimal:
    return Decimal(str(value.timestamp()))


def _session_to_item(session: VerificationSession) -> dict:
    return {
        'user_guild': user_guild_key(session.user_id, session.guild_id),
        'platform': session.platform.value,
        'session_id': session.id,
        'user_id': session.user_id,
        'guild_id': session.guild_id,
        'username': session.username,
        'problem_id': session.problem_id,
        'problem_url': session.problem_url,
        'problem_name': session.problem_name,
        'started_at': session.started_at.isoformat(),
        'expires_at': session.expires_at.isoformat(),
        'expires_epoch': _epoch(session.expires_at),
        'ttl': int((session.expires_at + SESSION_TTL_GRACE).timestamp())
    }


def _session_from_item(item: dict) -> VerificationSession:
    return VerificationSession(
        id=item['session_id'],
        user_id=item['user_id'],
        guild_id=item['guild_id'],
        platform=Platform(item['platform']),
        username=item['username'],
        problem_id=item['problem_id'],
        problem_url=item['problem_url'],
        problem_name=item['problem_name'],
        started_at=datetime.fromisoformat(item['started_at']),
        expires_at=datetime.fromisoformat(item['expires_at'])
    )


def save_session(session: VerificationSession) -> None:
    """
    Persist a pending session, replacing any session for the same
    (user, guild, platform).

    Raises:
        PersistenceError: If the write fails
    """
    try:
        sessions_table.put_item(Item=_session_to_item(session))
        print(f"Saved {session.platform.value} session {session.id} for user {session.user_id}")
    except ClientError as e:
        print(f"Error saving verification session: {e}")
        raise PersistenceError(f"Could not save verification session: {e}")


def get_session(user_id: str, guild_id: str, platform: Platform) -> Optional[VerificationSession]:
    """
    Get the pending session for a user and platform.

    Returns:
        The session, or None if there is none
    """
    try:
        response = sessions_table.get_item(
            Key={'user_guild': user_guild_key(user_id, guild_id), 'platform': platform.value}
        )
    except ClientError as e:
        print(f"Error getting verification session: {e}")
        raise PersistenceError(f"Could not read verification session: {e}")

    item = response.get('Item')
    return _session_from_item(item) if item else None


def list_sessions(user_id: str, guild_id: str, platform: Optional[Platform] = None) -> List[VerificationSession]:
    """
    Find all pending sessions for a user in a guild, optionally for one platform.

    Args:
        user_id: Discord user ID
        guild_id: Discord guild ID
        platform: Restrict to this platform

    Returns:
        Sessions ordered by platform name
    """
    condition = Key('user_guild').eq(user_guild_key(user_id, guild_id))
    if platform is not None:
        condition = condition & Key('platform').eq(platform.value)

    try:
        response = sessions_table.query(KeyConditionExpression=condition)
    except ClientError as e:
        print(f"Error listing verification sessions: {e}")
        raise PersistenceError(f"Could not list verification sessions: {e}")

    return [_session_from_item(item) for item in response.get('Items', [])]


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def delete_session(user_id: str, guild_id: str, platform: Platform,
                   session_id: Optional[str] = None) -> bool:
    """
    Delete a pending session.

    Args:
        user_id: Discord user ID
        guild_id: Discord guild ID
        platform: Platform of the session
        session_id: Only delete if the stored session still has this ID, so a
            session that replaced it in the meantime survives

    Returns:
        False if the stored session was replaced by a newer one, else True

    Raises:
        PersistenceError: If the delete fails
    """
    delete_kwargs = {
        'Key': {'user_guild': user_guild_key(user_id, guild_id), 'platform': platform.value}
    }
    if session_id is not None:
        # A missing item passes attribute_not_exists, keeping the delete idempotent
        delete_kwargs['ConditionExpression'] = (
            Attr('session_id').not_exists() | Attr('session_id').eq(session_id)
        )

    try:
        sessions_table.delete_item(**delete_kwargs)
        print(f"Deleted {platform.value} session for user {user_id}")
        return True
    except ClientError as e:
        if _is_condition_failure(e):
            print(f"Session {session_id} was superseded; leaving the newer {platform.value} session")
            return False
        print(f"Error deleting session: {e}")
        raise PersistenceError(f"Could not delete verification session: {e}")


def delete_expired_sessions(now: Optional[datetime] = None) -> int:
    """
    Delete every session whose expiry is in the past.

    Each delete re-checks the expiry, so a session re-created by /link after
    the scan read the old one is left alone.

    Args:
        now: Reference instant (defaults to the current UTC time)

    Returns:
        Number of sessions deleted
    """
    now = now or datetime.now(timezone.utc)
    expired = Attr('expires_epoch').lt(_epoch(now))
    scan_kwargs = {
        'FilterExpression': expired,
        'ProjectionExpression': '#ug, #pf',
        'ExpressionAttributeNames': {'#ug': 'user_guild', '#pf': 'platform'}
    }
    deleted = 0

    try:
        while True:
            response = sessions_table.scan(**scan_kwargs)
            for item in response.get('Items', []):
                try:
                    sessions_table.delete_item(
                        Key={'user_guild': item['user_guild'], 'platform': item['platform']},
                        ConditionExpression=expired
                    )
                    deleted += 1
                except ClientError as e:
                    if not _is_condition_failure(e):
                        raise
                    print(f"Skipped {item['platform']} session replaced during sweep")

            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                break
            scan_kwargs['ExclusiveStartKey'] = last_key
    except ClientError as e:
        print(f"Error sweeping expired sessions after {deleted} deletions: {e}")
        raise PersistenceError(f"Could not sweep expired sessions: {e}")

    return deleted


def save_linked_account(account: LinkedAccount) -> None:
    """
    Record a verified account. Re-verifying the same platform replaces the
    previous link for that user.

    Raises:
        PersistenceError: If the write fails
    """
    verified_at = account.verified_at or datetime.now(timezone.utc)
    item = {
        'user_guild': user_guild_key(account.user_id, account.guild_id),
        'platform': account.platform.value,
        'account_key': account_key(account.guild_id, account.platform, account.username),
        'user_id': account.user_id,
        'guild_id': account.guild_id,
        'username': account.username,
        'verified_at': verified_at.isoformat()
    }
    if account.rank:
        item['rank'] = account.rank

    try:
        accounts_table.put_item(Item=item)
        print(f"Linked {account.platform.value} account for user {account.user_id}")
    except ClientError as e:
        print(f"Error saving linked account: {e}")
        raise PersistenceError(f"Could not save linked account: {e}")


def get_linked_accounts(user_id: str, guild_id: str) -> List[LinkedAccount]:
    """Get all verified accounts of a user in a guild."""
    try:
        response = accounts_table.query(
            KeyConditionExpression=Key('user_guild').eq(user_guild_key(user_id, guild_id))
        )
    except ClientError as e:
        print(f"Error getting linked accounts: {e}")
        raise PersistenceError(f"Could not read linked accounts: {e}")

    return [
        LinkedAccount(
            user_id=item['user_id'],
            guild_id=item['guild_id'],
            platform=Platform(item['platform']),
            username=item['username'],
            rank=item.get('rank'),
            verified_at=datetime.fromisoformat(item['verified_at']) if item.get('verified_at') else None
        )
        for item in response.get('Items', [])
    ]


def is_account_linked_by_other(guild_id: str, platform: Platform, username: str, user_id: str) -> bool:
    """
    Check whether another user in the guild already linked this judge account.

    This is a read before the write, so two simultaneous links can both pass.

    Returns:
        True if a different user holds the link
    """
    try:
        response = accounts_table.query(
            IndexName=ACCOUNT_INDEX,
            KeyConditionExpression=Key('account_key').eq(account_key(guild_id, platform, username))
        )
    except ClientError as e:
        print(f"Error checking existing links: {e}")
        raise PersistenceError(f"Could not check existing links: {e}")

    return any(item.get('user_id') != user_id for item in response.get('Items', []))


def ensure_account_available(guild_id: str, platform: Platform, username: str, user_id: str) -> None:
    """
    Raises:
        DuplicateLink: If another user in the guild holds this judge account
        PersistenceError: If the lookup fails
    """
    if is_account_linked_by_other(guild_id, platform, username, user_id):
        raise DuplicateLink(platform.value, username)
