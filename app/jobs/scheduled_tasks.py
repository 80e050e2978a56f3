import threading
import time
from typing import TYPE_CHECKING

import schedule

from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from modules.bot_engine.engine import BotEngine

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "scheduled_job_failed",
                job=getattr(job, "__name__", repr(job)),
                error=str(e),
            )

    return wrapper


def init(engine: "BotEngine", poll_interval_seconds: int):
    logger.info("scheduled_tasks_initialized", poll_interval=poll_interval_seconds)

    schedule.every(poll_interval_seconds).seconds.do(
        safe_run(drain_delivery_queue), engine=engine
    )
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat))
    schedule.every(5).minutes.do(safe_run(integration_healthchecks), engine=engine)
    schedule.every().day.at("00:00").do(safe_run(purge_expired_events), engine=engine)


def scheduler_heartbeat():
    logger.info("scheduler_heartbeat", at=time.ctime())


def integration_healthchecks(engine: "BotEngine"):
    health_check = getattr(engine.transport, "health_check", None)
    if health_check is None:
        logger.warning(
            "integration_unhealthy", integration="telegram", reason="not_configured"
        )
        return

    result = health_check()
    if result.is_success:
        logger.info("integration_healthy", integration="telegram")
    else:
        logger.error(
            "integration_unhealthy",
            integration="telegram",
            error=result.message,
            error_code=result.error_code,
        )


def drain_delivery_queue(engine: "BotEngine"):
    engine.worker.process_batch()


def purge_expired_events(engine: "BotEngine"):
    engine.event_log.purge_old()


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Missed jobs are not run
    again; a job due several times during one long interval
    runs only once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True, name="bot-engine-scheduler")
    continuous_thread.start()
    return cease_continuous_run
