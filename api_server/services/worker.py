# api_server/services/worker.py
import logging
import threading
import time

from funnels import conf
from funnels.engine import get_funnel_engine

logger = logging.getLogger(__name__)

# Global worker thread
_worker_thread: threading.Thread | None = None
_worker_running = False
_worker_lock = threading.Lock()


def _process_due_executions() -> None:
    """Run one processing pass over due funnel executions."""
    report = get_funnel_engine().process_executions()
    if report.due:
        logger.debug("Worker pass: %s", report.model_dump())


def _worker_thread_func(poll_interval_s: int) -> None:
    """Background worker that polls for due executions."""
    logger.info("Funnel worker started (poll every %ss)", poll_interval_s)
    while _worker_running:
        try:
            _process_due_executions()
        except Exception as e:
            logger.error("Error in funnel worker: %s", e, exc_info=True)

        for _ in range(poll_interval_s):
            if not _worker_running:
                break
            time.sleep(1)

    logger.info("Funnel worker stopped")


def start_worker(poll_interval_s: int | None = None) -> None:
    """Start the background worker thread."""
    global _worker_thread, _worker_running

    with _worker_lock:
        if _worker_running:
            logger.warning("Funnel worker already running")
            return

        _worker_running = True
        _worker_thread = threading.Thread(
            target=_worker_thread_func,
            args=(poll_interval_s or conf.POLL_INTERVAL_S,),
            daemon=True,
        )
        _worker_thread.start()


def stop_worker() -> None:
    """Stop the background worker thread."""
    global _worker_running

    with _worker_lock:
        if not _worker_running:
            return

        _worker_running = False
        if _worker_thread:
            _worker_thread.join(timeout=5.0)


def is_worker_running() -> bool:
    return _worker_running
