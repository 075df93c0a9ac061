"""Explicitly constructed component graph shared by the request handlers."""

from dataclasses import dataclass

import structlog

from secretshare.config import Settings
from secretshare.scheduler import CleanupScheduler
from secretshare.services.captcha import CaptchaVerifier, TurnstileClient
from secretshare.services.envelope import Envelope
from secretshare.services.rate_limiter import RateLimiter
from secretshare.services.secret_service import SecretService
from secretshare.services.secret_store import FileSecretStore

logger = structlog.get_logger()


@dataclass
class AppContext:
    settings: Settings
    store: FileSecretStore
    service: SecretService
    scheduler: CleanupScheduler
    envelope: Envelope | None = None
    captcha: CaptchaVerifier | None = None
    rate_limiter: RateLimiter | None = None

    def start(self) -> None:
        self.scheduler.start()

    def close(self) -> None:
        """Stop the sweep timer, run the final sweep, then release clients."""
        self.scheduler.shutdown()
        close = getattr(self.captcha, "close", None)
        if close is not None:
            close()
        if self.rate_limiter is not None:
            self.rate_limiter.close()
        logger.info("shutdown_complete")


def build_context(
    settings: Settings,
    *,
    captcha: CaptchaVerifier | None = None,
    rate_limiter: RateLimiter | None = None,
) -> AppContext:
    """Build every component from settings. Tests may pass their own collaborators."""
    store = FileSecretStore(settings.storage_path)

    envelope = None
    if settings.server_encryption_enabled:
        if not settings.server_encryption_key:
            logger.warning("server_encryption_key_not_configured")
        envelope = Envelope(settings.server_encryption_key)

    if settings.captcha_enabled and captcha is None:
        captcha = TurnstileClient(
            settings.captcha_secret_key,
            verify_url=settings.captcha_verify_url,
            timeout=settings.captcha_timeout_seconds,
        )

    if settings.rate_limit_enabled and rate_limiter is None:
        rate_limiter = RateLimiter.from_uri(settings.rate_limit_storage_uri)
        if not rate_limiter.healthy():
            logger.warning("rate_limit_backend_unavailable", fail_open=True)

    service = SecretService(settings, store, envelope=envelope, captcha=captcha)
    scheduler = CleanupScheduler(store, settings.cleanup_interval_seconds)

    logger.info(
        "context_built",
        env=settings.env,
        server_side_encryption=settings.server_encryption_enabled,
        captcha=settings.captcha_enabled,
        rate_limiting=rate_limiter is not None,
    )

    return AppContext(
        settings=settings,
        store=store,
        service=service,
        scheduler=scheduler,
        envelope=envelope,
        captcha=captcha,
        rate_limiter=rate_limiter,
    )
