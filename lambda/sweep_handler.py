"""
Expired verification sweep.

Deployed as a second Lambda function on a schedule (every
SWEEP_INTERVAL_MINUTES). Sessions are removed once past their window even
if their owner never ran /verify again.
"""
import json
import threading
from typing import Optional

from config import load_settings
from errors import PersistenceError
from verification_service import VerificationService, get_verification_service


def lambda_handler(event, context):
    """
    Run one sweep. Invoked by an EventBridge schedule.

    Event structure:
    {
        "source": "aws.events",
        "detail-type": "Scheduled Event",
        ...
    }
    """
    print(f"Running verification sweep (source={(event or {}).get('source', 'unknown')})")

    try:
        deleted = get_verification_service().sweep_expired()
    except PersistenceError as e:
        print(f"ERROR: Verification sweep failed: {e}")
        return {
            'statusCode': 500,
            'body': json.dumps({'error': 'Sweep failed'})
        }

    return {
        'statusCode': 200,
        'body': json.dumps({'deleted': deleted})
    }


def run_periodic_sweep(
    service: VerificationService,
    stop_event: threading.Event,
    interval_seconds: Optional[float] = None
) -> int:
    """
    Sweep repeatedly until `stop_event` is set, for hosts that run the bot
    as a long-lived process instead of on Lambda.

    Args:
        service: Verification service to sweep with
        stop_event: Set it to stop the loop
        interval_seconds: Pause between sweeps (defaults to SWEEP_INTERVAL_MINUTES)

    Returns:
        Total number of sessions deleted
    """
    if interval_seconds is None:
        interval_seconds = load_settings().sweep_interval_minutes * 60

    print(f"Verification cleanup job started (every {interval_seconds:.0f}s)")
    total = 0
    while not stop_event.is_set():
        try:
            total += service.sweep_expired()
        except PersistenceError as e:
            print(f"ERROR: Verification sweep failed: {e}")
        stop_event.wait(interval_seconds)

    print(f"Verification cleanup job stopped after deleting {total} session(s)")
    return total
