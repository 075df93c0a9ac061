"""Tests for the cleanup scheduler."""

from datetime import timedelta

from secretshare.models.secret import Secret
from secretshare.scheduler import SWEEP_JOB_ID, CleanupScheduler
from secretshare.services.secret_store import StorageError
from tests.test_utils import utcnow


def expired_secret() -> Secret:
    return Secret(encrypted_payload=b"x.y.z", expires_at=utcnow() - timedelta(minutes=1))


def test_start_sweeps_and_schedules(store):
    secret = expired_secret()
    store.create(secret)
    scheduler = CleanupScheduler(store, interval_seconds=3600)

    scheduler.start()
    try:
        assert scheduler.running
        assert store.get_by_id(secret.id) is None
        job = scheduler._scheduler.get_job(SWEEP_JOB_ID)
        assert job.trigger.interval == timedelta(seconds=3600)
    finally:
        scheduler.shutdown()

    assert not scheduler.running


def test_shutdown_runs_final_sweep(store):
    scheduler = CleanupScheduler(store, interval_seconds=3600)
    scheduler.start()

    secret = expired_secret()
    store.create(secret)
    scheduler.shutdown()

    assert store.get_by_id(secret.id) is None
    assert store.cleanup_stats().secrets_cleaned == 1


def test_shutdown_without_start(store):
    secret = expired_secret()
    store.create(secret)

    CleanupScheduler(store, interval_seconds=60).shutdown()

    assert store.get_by_id(secret.id) is None


def test_sweep_failure_does_not_escape(store, monkeypatch):
    def broken():
        raise StorageError("failed to read storage directory")

    monkeypatch.setattr(store, "sweep_expired", broken)

    assert CleanupScheduler(store, interval_seconds=60).sweep() is None
