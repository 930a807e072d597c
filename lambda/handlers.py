"""
Slash command handlers for /link and /verify.
Turns interaction payloads into verification service calls and renders
the results as Discord messages.
"""
import json
from typing import List

from discord_interactions import (
    InteractionResponseType,
    MessageFlags,
    EmbedColor,
    get_subcommand,
    get_invoking_user_id
)
from errors import PersistenceError
from models import Outcome, Platform, VerificationResult
from validation_utils import parse_platform
from verification_service import get_verification_service


PLATFORM_EMOJI = {
    Platform.CODEFORCES: '🟦',
    Platform.CODECHEF: '🟫',
}

PLATFORM_COLOR = {
    Platform.CODEFORCES: EmbedColor.CODEFORCES,
    Platform.CODECHEF: EmbedColor.CODECHEF,
}

NO_PENDING_MESSAGE = (
    "❌ You have no pending verifications.\n\n"
    "Use `/link codeforces <username>` or `/link codechef <username>` to start the verification process."
)


def handle_ping() -> dict:
    """Handle Discord PING for endpoint verification."""
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({'type': InteractionResponseType.PONG})
    }


def handle_link_command(interaction: dict) -> dict:
    """
    Handle /link codeforces|codechef <username> and /link status.

    Args:
        interaction: Discord interaction payload

    Returns:
        Lambda response dict
    """
    guild_id = interaction.get('guild_id')
    user_id = get_invoking_user_id(interaction)
    if not guild_id or not user_id:
        return error_response("This command can only be used in a server.")

    subcommand, options = get_subcommand(interaction)

    if subcommand == 'status':
        return handle_link_status(user_id, guild_id)

    platform = parse_platform(subcommand)
    if platform is None:
        return error_response(f"Unknown subcommand: {subcommand}")

    result = get_verification_service().start_session(
        user_id, guild_id, platform, options.get('username') or ''
    )
    print(f"Link {platform.value} for user {user_id}: {result.outcome.value}")

    if result.outcome is not Outcome.STARTED:
        return error_response(result.message)

    return embed_response([build_challenge_embed(result)])


def build_challenge_embed(result: VerificationResult) -> dict:
    """Embed telling the user which problem to submit a Compilation Error to."""
    fields = [
        {'name': '📝 Problem', 'value': f"[{result.problem_name}]({result.problem_url})", 'inline': True},
    ]
    if result.problem_rating is not None:
        fields.append({'name': '⭐ Difficulty', 'value': str(result.problem_rating), 'inline': True})
    fields.append({'name': '⏱️ Time Limit', 'value': result.time_remaining, 'inline': True})
    fields.append({
        'name': '📋 Instructions',
        'value': f"1. Go to the problem: [Click Here]({result.problem_url})\n"
                 f"2. Submit any code that causes a **Compilation Error**\n"
                 f"   (e.g., `int main( {{ }}` or just `error`)\n"
                 f"3. Run `/verify` to complete verification",
        'inline': False
    })

    return {
        'title': f"🔗 {result.platform.display_name} Verification",
        'color': int(PLATFORM_COLOR[result.platform]),
        'description': result.message,
        'fields': fields,
        'footer': {'text': f"Verification expires in {result.time_remaining}"}
    }


def handle_link_status(user_id: str, guild_id: str) -> dict:
    """Show the user's verified accounts in this guild."""
    try:
        accounts = get_verification_service().linked_accounts(user_id, guild_id)
    except PersistenceError:
        return error_response("Could not load your linked accounts. Please try again later.")

    if not accounts:
        return ephemeral_response(
            "📋 You have no linked competitive programming accounts.\n\n"
            "Use `/link codeforces <username>` or `/link codechef <username>` to link your accounts."
        )

    fields = []
    for platform in Platform:
        lines = [
            f"• **{account.username}**" + (f" ({account.rank})" if account.rank else "")
            for account in accounts if account.platform is platform
        ]
        if lines:
            fields.append({
                'name': f"{PLATFORM_EMOJI[platform]} {platform.display_name}",
                'value': "\n".join(lines),
                'inline': True
            })

    return embed_response([{
        'title': "🔗 Your Linked Accounts",
        'color': int(EmbedColor.SUCCESS),
        'description': "Here are your verified competitive programming accounts:",
        'fields': fields,
        'footer': {'text': f"Total: {len(accounts)} account(s)"}
    }])


def handle_verify_command(interaction: dict) -> dict:
    """
    Handle /verify [platform].

    Args:
        interaction: Discord interaction payload

    Returns:
        Lambda response dict
    """
    guild_id = interaction.get('guild_id')
    user_id = get_invoking_user_id(interaction)
    if not guild_id or not user_id:
        return error_response("This command can only be used in a server.")

    _, options = get_subcommand(interaction)
    platform = None
    if options.get('platform'):
        platform = parse_platform(options['platform'])
        if platform is None:
            return error_response(f"Unknown platform: {options['platform']}")

    results = get_verification_service().attempt_verify(user_id, guild_id, platform)
    if not results:
        return ephemeral_response(NO_PENDING_MESSAGE)

    return embed_response(build_result_embeds(results))


def _result_title(result: VerificationResult) -> str:
    if result.platform is None:
        return "Verification"
    return f"{PLATFORM_EMOJI[result.platform]} {result.platform.display_name}: {result.username}"


def build_result_embeds(results: List[VerificationResult]) -> List[dict]:
    """Group verify results into a success embed and an incomplete embed."""
    embeds = []
    successes = [r for r in results if r.success]
    failures = [r for r in results if not r.success]

    if successes:
        fields = []
        for result in successes:
            value = result.message
            if result.rank:
                value += f"\n**Rank:** {result.rank}"
            if result.roles.verified_role_assigned:
                value += "\n✓ Verified role assigned"
            if result.roles.rank_role_assigned:
                value += "\n✓ Rank role assigned"
            fields.append({'name': _result_title(result), 'value': value, 'inline': False})

        embeds.append({
            'title': "✅ Verification Successful!",
            'color': int(EmbedColor.SUCCESS),
            'description': "The following accounts have been verified:",
            'fields': fields
        })

    if failures:
        fields = []
        for result in failures:
            value = result.message
            if result.problem_url:
                value += f"\n\n**Problem:** [{result.problem_name or 'Click here'}]({result.problem_url})"
            if result.time_remaining and result.time_remaining != "Expired":
                value += f"\n**Time remaining:** {result.time_remaining}"
            fields.append({'name': _result_title(result), 'value': value, 'inline': False})

        embed = {
            'title': "⚠️ Verification Incomplete",
            'color': int(EmbedColor.WARNING),
            'description': "The following verifications could not be completed:",
            'fields': fields
        }
        if any(r.outcome in (Outcome.NOT_YET, Outcome.MISMATCH) for r in failures):
            embed['footer'] = {
                'text': "💡 Submit a Compilation Error to the problem, then run /verify again"
            }
        embeds.append(embed)

    return embeds


def embed_response(embeds: List[dict]) -> dict:
    """Helper to create an ephemeral message response carrying embeds."""
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({
            'type': InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE,
            'data': {
                'embeds': embeds,
                'flags': MessageFlags.EPHEMERAL
            }
        })
    }


def ephemeral_response(content: str) -> dict:
    """Helper to create ephemeral message response."""
    return {
        'statusCode': 200,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps({
            'type': InteractionResponseType.CHANNEL_MESSAGE_WITH_SOURCE,
            'data': {
                'content': content,
                'flags': MessageFlags.EPHEMERAL
            }
        })
    }


def error_response(message: str) -> dict:
    """Helper for error responses."""
    return ephemeral_response(f"❌ {message}")
