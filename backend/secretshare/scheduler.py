"""Background scheduler for the periodic expiry sweep."""

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from secretshare.services.secret_store import CleanupStats, FileSecretStore, StorageError

logger = structlog.get_logger()

SWEEP_JOB_ID = "sweep_expired_secrets"


class CleanupScheduler:
    def __init__(self, store: FileSecretStore, interval_seconds: int) -> None:
        self._store = store
        self._interval_seconds = interval_seconds
        self._scheduler = BackgroundScheduler()

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def sweep(self, phase: str = "periodic") -> CleanupStats | None:
        """Run one sweep, logging its outcome. Failures never escape the job."""
        try:
            stats = self._store.sweep_expired()
        except StorageError as e:
            logger.error("sweep_failed", phase=phase, error=str(e))
            return None

        if stats.secrets_cleaned or stats.errors or phase != "periodic":
            logger.info(
                "sweep_completed",
                phase=phase,
                secrets_cleaned=stats.secrets_cleaned,
                errors=stats.errors,
                last_run=stats.last_run.isoformat() if stats.last_run else None,
            )
        return stats

    def start(self) -> None:
        """Sweep once, then schedule the periodic sweep."""
        self.sweep(phase="startup")
        self._scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        logger.info("scheduler_started", interval_seconds=self._interval_seconds)

    def shutdown(self) -> None:
        """Stop the timer, let an in-flight sweep finish, then sweep one last time."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=True)
            logger.info("scheduler_stopped")
        self.sweep(phase="final")
