"""
Background Job Scheduler - Runs periodic maintenance tasks.

This service manages background jobs that:
- Check for stale service calls and raise alerts
- Clean up old read notifications
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Callable

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None


class BackgroundScheduler:
    """Simple background scheduler for running periodic tasks."""

    def __init__(self, poll_interval: int = 10):
        self.jobs: Dict[str, Dict] = {}
        self.running = False
        self.poll_interval = poll_interval
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def add_job(self, job_id: str, func: Callable, interval_seconds: int,
                run_immediately: bool = False, kwargs: Dict = None):
        """
        Add a job to the scheduler.

        Args:
            job_id: Unique identifier for the job
            func: Function to call
            interval_seconds: How often to run (in seconds)
            run_immediately: Whether the first run happens on the next tick
            kwargs: Keyword arguments to pass to the function
        """
        now = datetime.utcnow()
        with self._lock:
            self.jobs[job_id] = {
                'func': func,
                'interval': interval_seconds,
                'kwargs': kwargs or {},
                'last_run': None,
                'next_run': now if run_immediately else now + timedelta(seconds=interval_seconds),
                'run_count': 0,
                'last_result': None,
                'last_error': None,
                'enabled': True
            }
        logger.info(f"Added job '{job_id}' with interval {interval_seconds}s")

    def remove_job(self, job_id: str):
        with self._lock:
            if self.jobs.pop(job_id, None) is not None:
                logger.info(f"Removed job '{job_id}'")

    def set_job_enabled(self, job_id: str, enabled: bool) -> bool:
        """Pause or resume a job without removing it."""
        with self._lock:
            if job_id not in self.jobs:
                return False
            self.jobs[job_id]['enabled'] = enabled
            return True

    def get_job_status(self) -> Dict[str, Any]:
        """Get status of all jobs."""
        with self._lock:
            return {
                job_id: {
                    'interval': job['interval'],
                    'lastRun': job['last_run'].isoformat() if job['last_run'] else None,
                    'nextRun': job['next_run'].isoformat() if job['next_run'] else None,
                    'runCount': job['run_count'],
                    'lastResult': job['last_result'],
                    'lastError': job['last_error'],
                    'enabled': job['enabled']
                }
                for job_id, job in self.jobs.items()
            }

    def start(self):
        """Start the scheduler in a background thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info("Background scheduler started")

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Background scheduler stopped")

    def _execute(self, job_id: str, job: Dict, started: datetime) -> bool:
        """Run one job and record the outcome. Job errors are logged, never raised."""
        try:
            logger.debug(f"Running job '{job_id}'")
            result = job['func'](**job['kwargs'])
        except Exception as e:
            logger.error(f"Job '{job_id}' failed: {e}")
            with self._lock:
                job['last_error'] = str(e)
                job['next_run'] = started + timedelta(seconds=job['interval'])
            return False

        with self._lock:
            job['last_run'] = started
            job['next_run'] = started + timedelta(seconds=job['interval'])
            job['run_count'] += 1
            job['last_result'] = result
            job['last_error'] = None
        return True

    def run_pending(self, now: Optional[datetime] = None) -> int:
        """Run every enabled job that is due. Returns how many ran."""
        now = now or datetime.utcnow()
        with self._lock:
            due = [
                (job_id, job) for job_id, job in self.jobs.items()
                if job['enabled'] and job['next_run'] and now >= job['next_run']
            ]

        for job_id, job in due:
            self._execute(job_id, job, now)
        return len(due)

    def _run_loop(self):
        while self.running and not self._stop_event.is_set():
            self.run_pending()
            self._stop_event.wait(timeout=self.poll_interval)

    def run_job_now(self, job_id: str) -> bool:
        """Manually trigger a job to run immediately."""
        with self._lock:
            job = self.jobs.get(job_id)
        if job is None:
            return False
        return self._execute(job_id, job, datetime.utcnow())


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


# =============================================================================
# SCHEDULED JOBS
# =============================================================================

def stale_call_check_job(config: Dict = None, automation_client=None, sms_service=None) -> int:
    """Job to find stale service calls and raise notifications. Returns how many were found."""
    from database.connection import get_db_session, is_db_configured
    from services.workflow_service import WorkflowService

    if not is_db_configured():
        return 0

    with get_db_session() as session:
        service = WorkflowService(session, automation_client, sms_service, config)
        stale_calls = service.check_stale_calls()

    if stale_calls:
        logger.info(f"Stale call check flagged {len(stale_calls)} call(s)")
    return len(stale_calls)


def cleanup_old_notifications_job(days: int = 30) -> int:
    """Job to clean up old read notifications."""
    from database.connection import get_db_session, is_db_configured
    from services.notification_service import NotificationService

    if not is_db_configured():
        return 0

    with get_db_session() as session:
        deleted = NotificationService(session).cleanup_old_notifications(days=days)

    if deleted > 0:
        logger.info(f"Cleaned up {deleted} old notifications")
    return deleted


def init_scheduler(config: Dict, automation_client=None, sms_service=None, start: bool = True):
    """Initialize the scheduler with default jobs."""
    scheduler = get_scheduler()

    # Stale calls: once at startup, then hourly
    scheduler.add_job(
        'stale_call_check',
        stale_call_check_job,
        interval_seconds=config.get('STALE_CHECK_INTERVAL', 60 * 60),
        run_immediately=True,
        kwargs={
            'config': config,
            'automation_client': automation_client,
            'sms_service': sms_service,
        }
    )

    # Cleanup old notifications daily (every 24 hours)
    scheduler.add_job(
        'cleanup_notifications',
        cleanup_old_notifications_job,
        interval_seconds=24 * 60 * 60,
        run_immediately=False,
        kwargs={'days': config.get('NOTIFICATION_RETENTION_DAYS', 30)}
    )

    if start:
        scheduler.start()
    logger.info("Scheduler initialized with default jobs")

    return scheduler


def shutdown_scheduler():
    """Stop and forget the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.stop()
        _scheduler = None
