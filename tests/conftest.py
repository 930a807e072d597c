"""
Central pytest configuration and fixtures for CP verification bot tests.

This module provides reusable fixtures for:
- AWS service mocking (DynamoDB, SSM)
- Judge adapters with a zero-spacing request gate
- Verification service wiring
- Test data factories
"""
import pytest
import sys
import os
from pathlib import Path
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

# Region and credentials must exist before lambda modules create boto3 resources
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('AWS_SECURITY_TOKEN', 'testing')
os.environ.setdefault('AWS_SESSION_TOKEN', 'testing')

# Add lambda directory to path for imports
lambda_dir = Path(__file__).parent.parent / 'lambda'
sys.path.insert(0, str(lambda_dir))

# AWS mocking
from moto import mock_aws
import boto3

from codechef_client import CODECHEF_PROBLEMS, CodechefAdapter
from codeforces_client import CodeforcesAdapter
from config import Settings
from models import Platform, Problem, VerificationSession
from problem_catalog import CachedProblemSource, CuratedProblemSource, ProblemCatalog
from rate_limit import RequestGate
from verification_service import VerificationService


TEST_USER_ID = '789012'
TEST_GUILD_ID = '123456'
BOT_TOKEN_PARAMETER = '/cp-verification-bot/token'


# ==============================================================================
# Environment Setup
# ==============================================================================

@pytest.fixture(scope='session', autouse=True)
def set_test_environment():
    """Set up test environment variables for all tests."""
    os.environ['DISCORD_PUBLIC_KEY'] = 'a' * 64  # Valid hex string
    os.environ['DISCORD_APP_ID'] = '1234567890'

    os.environ['DYNAMODB_SESSIONS_TABLE'] = 'cp-verification-sessions'
    os.environ['DYNAMODB_LINKED_ACCOUNTS_TABLE'] = 'cp-linked-accounts'
    os.environ['DYNAMODB_GUILD_CONFIGS_TABLE'] = 'cp-guild-configs'

    yield


@pytest.fixture(autouse=True)
def clear_cached_singletons():
    """Settings, SSM values and the service are cached per container; reset them per test."""
    from config import load_settings
    from ssm_utils import get_parameter
    from verification_service import get_verification_service

    load_settings.cache_clear()
    get_parameter.cache_clear()
    get_verification_service.cache_clear()
    yield
    load_settings.cache_clear()
    get_parameter.cache_clear()
    get_verification_service.cache_clear()


# ==============================================================================
# AWS Lambda Fixtures
# ==============================================================================

@pytest.fixture
def lambda_context():
    """Mock AWS Lambda context object."""
    class LambdaContext:
        def __init__(self):
            self.function_name = "cp-verification-bot"
            self.function_version = "$LATEST"
            self.aws_request_id = "test-request-id-12345"
            self._remaining_time_ms = 300000

        def get_remaining_time_in_millis(self):
            return self._remaining_time_ms

    return LambdaContext()


# ==============================================================================
# AWS DynamoDB Fixtures
# ==============================================================================

@pytest.fixture
def mock_dynamodb_tables():
    """Create mock DynamoDB tables and point the lambda modules at them."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        sessions_table = dynamodb.create_table(
            TableName='cp-verification-sessions',
            KeySchema=[
                {'AttributeName': 'user_guild', 'KeyType': 'HASH'},
                {'AttributeName': 'platform', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'user_guild', 'AttributeType': 'S'},
                {'AttributeName': 'platform', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        accounts_table = dynamodb.create_table(
            TableName='cp-linked-accounts',
            KeySchema=[
                {'AttributeName': 'user_guild', 'KeyType': 'HASH'},
                {'AttributeName': 'platform', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'user_guild', 'AttributeType': 'S'},
                {'AttributeName': 'platform', 'AttributeType': 'S'},
                {'AttributeName': 'account_key', 'AttributeType': 'S'}
            ],
            GlobalSecondaryIndexes=[{
                'IndexName': 'account-index',
                'KeySchema': [
                    {'AttributeName': 'account_key', 'KeyType': 'HASH'}
                ],
                'Projection': {'ProjectionType': 'ALL'}
            }],
            BillingMode='PAY_PER_REQUEST'
        )

        configs_table = dynamodb.create_table(
            TableName='cp-guild-configs',
            KeySchema=[
                {'AttributeName': 'guild_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'guild_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        with patch('dynamodb_operations.sessions_table', sessions_table), \
             patch('dynamodb_operations.accounts_table', accounts_table), \
             patch('guild_config.configs_table', configs_table):
            yield {
                'sessions': sessions_table,
                'accounts': accounts_table,
                'configs': configs_table,
                'dynamodb': dynamodb
            }


# ==============================================================================
# AWS SSM Fixtures
# ==============================================================================

@pytest.fixture
def mock_ssm_parameters():
    """Mock AWS SSM Parameter Store with bot token."""
    with mock_aws():
        ssm = boto3.client('ssm', region_name='us-east-1')
        ssm.put_parameter(
            Name=BOT_TOKEN_PARAMETER,
            Value='test_bot_token_12345',
            Type='SecureString'
        )
        with patch('ssm_utils.ssm_client', ssm):
            yield ssm


# ==============================================================================
# Judge Adapter and Service Fixtures
# ==============================================================================

@pytest.fixture
def codeforces_adapter():
    """Codeforces adapter with no request spacing."""
    return CodeforcesAdapter(RequestGate(0), timeout=5)


@pytest.fixture
def codechef_adapter():
    """CodeChef adapter with no request spacing."""
    return CodechefAdapter(RequestGate(0), timeout=5)


@pytest.fixture
def cf_problem():
    return Problem(
        id='1000A',
        name='Codehorses T-shirts',
        url='https://codeforces.com/problemset/problem/1000/A',
        rating=1200
    )


@pytest.fixture
def catalog(codeforces_adapter, codechef_adapter, cf_problem):
    """Catalog whose Codeforces source always yields cf_problem and CodeChef only TEST."""
    return ProblemCatalog({
        Platform.CODEFORCES: CachedProblemSource(lambda: [cf_problem]),
        Platform.CODECHEF: CuratedProblemSource(
            [p for p in CODECHEF_PROBLEMS if p[0] == 'TEST'],
            codechef_adapter.problem_url
        ),
    })


@pytest.fixture
def role_assigner():
    """Records role assignment requests."""
    from unittest.mock import MagicMock
    from models import RoleAssignment
    return MagicMock(return_value=RoleAssignment(verified_role_assigned=True, rank_role_assigned=True))


@pytest.fixture
def verification_service(codeforces_adapter, codechef_adapter, catalog, role_assigner):
    """Service wired with real adapters (HTTP stubbed per test) and a recording role callback."""
    return VerificationService(
        adapters={
            Platform.CODEFORCES: codeforces_adapter,
            Platform.CODECHEF: codechef_adapter,
        },
        catalog=catalog,
        settings=Settings(),
        assign_roles=role_assigner
    )


# ==============================================================================
# Test Data Factories
# ==============================================================================

def make_session(
    platform=Platform.CODEFORCES,
    username='tourist',
    problem_id='1000A',
    started_at=None,
    window_minutes=10,
    user_id=TEST_USER_ID,
    guild_id=TEST_GUILD_ID
):
    """Build a VerificationSession for tests."""
    started_at = started_at or datetime.now(timezone.utc)
    if platform is Platform.CODEFORCES:
        url = f"https://codeforces.com/problemset/problem/{problem_id[:-1]}/{problem_id[-1]}"
    else:
        url = f"https://www.codechef.com/problems/{problem_id}"
    return VerificationSession(
        id='test-session-id-001',
        user_id=user_id,
        guild_id=guild_id,
        platform=platform,
        username=username,
        problem_id=problem_id,
        problem_url=url,
        problem_name='Test Problem',
        started_at=started_at,
        expires_at=started_at + timedelta(minutes=window_minutes)
    )


def cf_submission_payload(contest_id, index, verdict, timestamp, submission_id=1):
    """One entry of a Codeforces user.status result."""
    entry = {
        'id': submission_id,
        'contestId': contest_id,
        'creationTimeSeconds': timestamp,
        'problem': {'contestId': contest_id, 'index': index, 'name': 'Test Problem'},
        'programmingLanguage': 'GNU C++17'
    }
    if verdict is not None:
        entry['verdict'] = verdict
    return entry


def get_table_item_count(dynamodb_table):
    """Get number of items in a DynamoDB table."""
    response = dynamodb_table.scan(Select='COUNT')
    return response.get('Count', 0)


# Make helper functions available to tests
pytest.make_session = make_session
pytest.cf_submission_payload = cf_submission_payload
pytest.get_table_item_count = get_table_item_count
