import threading
from unittest.mock import MagicMock, call, patch

from infrastructure.operations import OperationResult, OperationStatus
from jobs import scheduled_tasks
from modules.bot_engine.engine import UnconfiguredTransport


@patch("jobs.scheduled_tasks.schedule")
def test_init(schedule_mock):
    """init schedules the queue drain, the five-minute jobs and the daily purge."""
    engine = MagicMock()

    scheduled_tasks.init(engine, poll_interval_seconds=2)

    schedule_mock.every.assert_has_calls(
        calls=[call(2).seconds, call(5).minutes], any_order=True
    )
    schedule_mock.every().day.at.assert_called_once_with("00:00")

    do_calls = [c for c in schedule_mock.mock_calls if ".do(" in str(c)]
    assert len(do_calls) == 4

    minutes_do_calls = [c for c in do_calls if ".minutes.do(" in str(c)]
    assert len(minutes_do_calls) == 2

    engine_params = [c for c in do_calls if "engine=" in str(c)]
    assert len(engine_params) == 3


def test_drain_delivery_queue():
    engine = MagicMock()

    scheduled_tasks.drain_delivery_queue(engine)

    engine.worker.process_batch.assert_called_once_with()


def test_purge_expired_events():
    engine = MagicMock()

    scheduled_tasks.purge_expired_events(engine)

    engine.event_log.purge_old.assert_called_once_with()


@patch("jobs.scheduled_tasks.logger")
def test_safe_run(mock_logger):
    """safe_run logs exceptions instead of letting them kill the scheduler."""

    def failing_job():
        raise ValueError("Test error")

    scheduled_tasks.safe_run(failing_job)()

    mock_logger.error.assert_called_once_with(
        "scheduled_job_failed", job="failing_job", error="Test error"
    )


def test_safe_run_passes_arguments():
    job = MagicMock(__name__="job")

    scheduled_tasks.safe_run(job)(1, engine="e")

    job.assert_called_once_with(1, engine="e")


@patch("jobs.scheduled_tasks.schedule")
@patch("jobs.scheduled_tasks.time.sleep")
def test_run_continuously(sleep_mock, schedule_mock):
    """The scheduler thread runs pending jobs until the event is set."""
    ran = threading.Event()
    schedule_mock.run_pending.side_effect = ran.set

    cease = scheduled_tasks.run_continuously(interval=1)
    assert ran.wait(timeout=5)
    cease.set()

    for thread in threading.enumerate():
        if thread.name == "bot-engine-scheduler":
            thread.join(timeout=5)
            assert not thread.is_alive()
    sleep_mock.assert_called_with(1)


@patch("jobs.scheduled_tasks.logger")
def test_integration_healthchecks_healthy(mock_logger):
    engine = MagicMock()
    engine.transport.health_check.return_value = OperationResult.success()

    scheduled_tasks.integration_healthchecks(engine)

    mock_logger.info.assert_called_once_with(
        "integration_healthy", integration="telegram"
    )


@patch("jobs.scheduled_tasks.logger")
def test_integration_healthchecks_unhealthy(mock_logger):
    engine = MagicMock()
    engine.transport.health_check.return_value = OperationResult.error(
        OperationStatus.UNAUTHORIZED, "Unauthorized", error_code="UNAUTHORIZED"
    )

    scheduled_tasks.integration_healthchecks(engine)

    mock_logger.error.assert_called_once_with(
        "integration_unhealthy",
        integration="telegram",
        error="Unauthorized",
        error_code="UNAUTHORIZED",
    )


@patch("jobs.scheduled_tasks.logger")
def test_integration_healthchecks_without_client(mock_logger):
    engine = MagicMock()
    engine.transport = UnconfiguredTransport()

    scheduled_tasks.integration_healthchecks(engine)

    mock_logger.warning.assert_called_once_with(
        "integration_unhealthy", integration="telegram", reason="not_configured"
    )
