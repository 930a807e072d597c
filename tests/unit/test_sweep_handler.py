"""
Unit tests for sweep_handler module.

Tests the expired session sweep including:
- Scheduled Lambda invocation
- Failure reporting
- The long-running sweep loop and its stop signal
"""
import json
import pytest
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add lambda directory to path
lambda_dir = Path(__file__).parent.parent.parent / 'lambda'
sys.path.insert(0, str(lambda_dir))

import dynamodb_operations as store
from errors import PersistenceError
from models import Platform
from sweep_handler import lambda_handler, run_periodic_sweep


SCHEDULED_EVENT = {'source': 'aws.events', 'detail-type': 'Scheduled Event'}


@pytest.mark.unit
class TestSweepLambdaHandler:
    """Tests for the scheduled sweep entry point."""

    def test_deletes_expired_sessions(self, mock_dynamodb_tables, lambda_context):
        now = datetime.now(timezone.utc)
        store.save_session(pytest.make_session(started_at=now - timedelta(minutes=20)))
        store.save_session(pytest.make_session(platform=Platform.CODECHEF, problem_id='TEST'))

        response = lambda_handler(SCHEDULED_EVENT, lambda_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body']) == {'deleted': 1}
        assert [s.platform for s in store.list_sessions('789012', '123456')] == [Platform.CODECHEF]

    def test_nothing_expired(self, mock_dynamodb_tables, lambda_context):
        response = lambda_handler(SCHEDULED_EVENT, lambda_context)

        assert json.loads(response['body']) == {'deleted': 0}

    def test_storage_failure(self, lambda_context):
        service = MagicMock()
        service.sweep_expired.side_effect = PersistenceError('down')

        with patch('sweep_handler.get_verification_service', return_value=service):
            response = lambda_handler(SCHEDULED_EVENT, lambda_context)

        assert response['statusCode'] == 500


@pytest.mark.unit
class TestRunPeriodicSweep:
    """Tests for run_periodic_sweep()."""

    def test_runs_until_stopped(self):
        stop = threading.Event()
        service = MagicMock()
        counts = iter([2, 0, 1])

        def sweep():
            try:
                return next(counts)
            except StopIteration:
                stop.set()
                return 0

        service.sweep_expired.side_effect = sweep

        total = run_periodic_sweep(service, stop, interval_seconds=0)

        assert total == 3
        assert service.sweep_expired.call_count == 4

    def test_failure_does_not_stop_loop(self):
        stop = threading.Event()
        service = MagicMock()
        outcomes = [PersistenceError('down'), 5]

        def sweep():
            outcome = outcomes.pop(0)
            if not outcomes:
                stop.set()
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        service.sweep_expired.side_effect = sweep

        assert run_periodic_sweep(service, stop, interval_seconds=0) == 5

    def test_stop_interrupts_wait(self):
        stop = threading.Event()
        service = MagicMock()
        service.sweep_expired.return_value = 0

        worker = threading.Thread(target=run_periodic_sweep, args=(service, stop, 3600))
        worker.start()
        stop.set()
        worker.join(timeout=5)

        assert not worker.is_alive()

    def test_interval_from_settings(self, monkeypatch):
        monkeypatch.setenv('SWEEP_INTERVAL_MINUTES', '7')
        stop = MagicMock()
        stop.is_set.side_effect = [False, True]
        service = MagicMock()
        service.sweep_expired.return_value = 0

        run_periodic_sweep(service, stop)

        stop.wait.assert_called_once_with(420)
