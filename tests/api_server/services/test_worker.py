# tests/api_server/services/test_worker.py
"""Test the background funnel worker."""
import threading
from unittest.mock import MagicMock, patch

import pytest

from api_server.services import worker
from funnels.models import PassReport


@pytest.fixture
def mock_engine():
    engine = MagicMock()
    engine.process_executions.return_value = PassReport(due=1, completed=1)
    with patch("api_server.services.worker.get_funnel_engine", return_value=engine):
        yield engine
        worker.stop_worker()


def test_process_due_executions(mock_engine):
    worker._process_due_executions()
    mock_engine.process_executions.assert_called_once_with()


def test_start_and_stop(mock_engine):
    called = threading.Event()
    mock_engine.process_executions.side_effect = lambda: called.set() or PassReport()

    worker.start_worker(poll_interval_s=1)
    assert worker.is_worker_running()
    assert called.wait(timeout=5)

    worker.stop_worker()
    assert not worker.is_worker_running()


def test_start_twice_keeps_one_thread(mock_engine):
    worker.start_worker(poll_interval_s=1)
    first = worker._worker_thread
    worker.start_worker(poll_interval_s=1)
    assert worker._worker_thread is first


def test_pass_errors_do_not_kill_worker(mock_engine):
    calls = []
    done = threading.Event()

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("db locked")
        done.set()
        return PassReport()

    mock_engine.process_executions.side_effect = flaky

    worker.start_worker(poll_interval_s=1)

    assert done.wait(timeout=5)
    assert worker.is_worker_running()
