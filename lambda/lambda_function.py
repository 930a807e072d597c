"""
AWS Lambda handler for the CP verification bot.
Main entry point for all Discord interactions.
"""
import json
import traceback

from discord_interactions import (
    InteractionType,
    get_command_name,
    verify_discord_signature
)
from handlers import (
    handle_ping,
    handle_link_command,
    handle_verify_command,
    error_response
)
from logging_utils import log_safe
from setup_handler import handle_setup_command


COMMAND_HANDLERS = {
    'link': handle_link_command,
    'verify': handle_verify_command,
    'setup': handle_setup_command,
}


def lambda_handler(event, context):
    """
    Main Lambda handler for Discord interactions.

    Discord sends POST requests to this endpoint with interaction data.
    Must respond within 3 seconds or use deferred responses.

    Args:
        event: API Gateway event
        context: Lambda context

    Returns:
        API Gateway response
    """
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    body_str = event.get('body') or '{}'

    signature = headers.get('x-signature-ed25519', '')
    timestamp = headers.get('x-signature-timestamp', '')

    if not signature or not timestamp or not verify_discord_signature(signature, timestamp, body_str):
        print("ERROR: Missing or invalid Discord signature")
        return {
            'statusCode': 401,
            'body': json.dumps({'error': 'Invalid signature'})
        }

    try:
        body = json.loads(body_str)
    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON: {e}")
        return {
            'statusCode': 400,
            'body': json.dumps({'error': 'Invalid JSON'})
        }

    interaction_type = body.get('type')
    log_safe("Interaction", {'type': interaction_type, 'command': get_command_name(body),
                             'guild_id': body.get('guild_id')})

    try:
        if interaction_type == InteractionType.PING:
            return handle_ping()

        elif interaction_type == InteractionType.APPLICATION_COMMAND:
            command_name = get_command_name(body)
            handler = COMMAND_HANDLERS.get(command_name)
            if handler is None:
                return error_response(f"Unknown command: {command_name}")
            return handler(body)

        else:
            print(f"WARNING: Unknown interaction type: {interaction_type}")
            return error_response("Unknown interaction type")

    except Exception as e:
        print(f"ERROR: Exception handling interaction: {e}")
        traceback.print_exc()
        return error_response("An internal error occurred")
