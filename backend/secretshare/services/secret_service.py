from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog

from secretshare.config import Settings
from secretshare.errors import (
    CaptchaFailedError,
    InternalFailureError,
    InvalidInputError,
    NameConflictError,
    NotFoundError,
    SecretExpiredError,
)
from secretshare.models.secret import Secret, is_valid_custom_name, is_valid_secret_id, utcnow
from secretshare.services.captcha import CaptchaVerificationError, CaptchaVerifier
from secretshare.services.envelope import DecryptionError, Envelope
from secretshare.services.secret_store import FileSecretStore, NameTakenError, StorageError

logger = structlog.get_logger()

# Separates the three client-side parts inside the stored payload
PAYLOAD_DELIMITER = "."

CUSTOM_NAME_CHARSET_MESSAGE = "custom name can only contain letters and numbers (A-Z, a-z, 0-9)"
SECRET_NAME_CHARSET_MESSAGE = "Secret name can only contain letters and numbers (A-Z, a-z, 0-9)"


@dataclass(frozen=True, slots=True)
class EncryptedContent:
    """The browser's ciphertext, key-derivation salt and IV, each base64 text."""

    encrypted: str
    salt: str
    iv: str


@dataclass(frozen=True, slots=True)
class SecretContent:
    encrypted_content: EncryptedContent
    expires_at: datetime | None
    is_burn_after_reading: bool


def describe_duration(minutes: int) -> str:
    """Human readable form of an allowed expiry duration."""
    if minutes % (24 * 60) == 0:
        days = minutes // (24 * 60)
        return "1 day" if days == 1 else f"{days} days"
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


class SecretService:
    """
    Creates and reads secrets.

    The server never sees plaintext: it stores the client's ciphertext, wrapped in
    a server-side envelope when server encryption is enabled, and hands the
    ciphertext back on read.
    """

    def __init__(
        self,
        settings: Settings,
        store: FileSecretStore,
        envelope: Envelope | None = None,
        captcha: CaptchaVerifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if settings.server_encryption_enabled and envelope is None:
            raise ValueError("an envelope is required when server-side encryption is enabled")
        if settings.captcha_enabled and captcha is None:
            raise ValueError("a captcha verifier is required when captcha is enabled")
        self._settings = settings
        self._store = store
        self._envelope = envelope
        self._captcha = captcha
        self._clock = clock

    # -- validation -------------------------------------------------------

    def _validate_custom_name(self, name: str) -> None:
        if len(name) > self._settings.max_custom_name_length:
            raise InvalidInputError(
                f"custom name cannot exceed {self._settings.max_custom_name_length} characters"
            )
        if not is_valid_custom_name(name):
            raise InvalidInputError(CUSTOM_NAME_CHARSET_MESSAGE)

    def _build_payload(self, content: EncryptedContent) -> str:
        parts = (content.encrypted, content.salt, content.iv)
        if any(not part or PAYLOAD_DELIMITER in part for part in parts):
            raise InvalidInputError("Invalid encrypted content")
        payload = PAYLOAD_DELIMITER.join(parts)
        if len(payload.encode("utf-8")) > self._settings.max_secret_size_bytes:
            raise InvalidInputError(
                f"Secret exceeds {self._settings.max_secret_size_bytes} bytes"
            )
        return payload

    def _verify_captcha(self, token: str | None, client_ip: str | None) -> None:
        if not self._settings.captcha_enabled:
            return
        if not token:
            raise CaptchaFailedError()
        try:
            result = self._captcha.verify(token, client_ip)
        except CaptchaVerificationError:
            raise InternalFailureError("Failed to verify captcha") from None
        if not result.success:
            logger.info("captcha_verification_failed", error_codes=result.error_codes)
            raise CaptchaFailedError()

    def normalize_expiry(self, requested: datetime | None, now: datetime) -> datetime:
        """
        Snap a requested expiry time to one of the allowed durations from now.

        A request within the tolerance of an allowed duration becomes exactly
        now + that duration. No request means the default duration.
        """
        if requested is None:
            return now + timedelta(minutes=self._settings.default_expiry_minutes)

        if requested.tzinfo is None:
            requested = requested.replace(tzinfo=UTC)
        requested_duration = requested - now
        tolerance = timedelta(seconds=self._settings.expiry_tolerance_seconds)

        for minutes in self._settings.allowed_expiry_minutes:
            allowed = timedelta(minutes=minutes)
            if allowed - tolerance <= requested_duration <= allowed + tolerance:
                return now + allowed

        raise InvalidInputError(self._expiry_error_message())

    def _expiry_error_message(self) -> str:
        options = [describe_duration(m) for m in self._settings.allowed_expiry_minutes]
        if len(options) > 1:
            listed = ", ".join(options[:-1]) + f", or {options[-1]}"
        else:
            listed = options[0]
        return f"Invalid expiry time. Allowed values are: {listed}"

    # -- payload ------------------------------------------------------------

    def _seal(self, payload: str) -> bytes:
        data = payload.encode("utf-8")
        if not self._settings.server_encryption_enabled:
            return data
        return self._envelope.seal(data)

    def _open(self, secret: Secret) -> SecretContent:
        data = secret.encrypted_payload
        if self._settings.server_encryption_enabled:
            try:
                data = self._envelope.open(data)
            except DecryptionError:
                logger.error("secret_decryption_failed", secret_id=secret.id)
                raise InternalFailureError("Failed to decrypt secret") from None

        try:
            parts = data.decode("utf-8").split(PAYLOAD_DELIMITER)
        except UnicodeDecodeError:
            parts = []
        if len(parts) != 3:
            logger.error("secret_payload_malformed", secret_id=secret.id)
            raise InternalFailureError("Failed to read secret")

        encrypted, salt, iv = parts
        return SecretContent(
            encrypted_content=EncryptedContent(encrypted=encrypted, salt=salt, iv=iv),
            expires_at=secret.expires_at,
            is_burn_after_reading=secret.is_burn_after_reading,
        )

    # -- operations ---------------------------------------------------------

    def create_secret(
        self,
        content: EncryptedContent,
        *,
        captcha_token: str | None,
        custom_name: str | None = None,
        expires_at: datetime | None = None,
        max_views: int | None = None,
        client_ip: str | None = None,
    ) -> str:
        """
        Store a new secret and return its id.

        A max_views of 1 makes the secret burn-after-reading, which has no time
        expiry. Any other max_views value is rejected.
        """
        custom_name = custom_name or None
        if custom_name is not None:
            self._validate_custom_name(custom_name)

        self._verify_captcha(captcha_token, client_ip)

        if max_views is not None and max_views != 1:
            raise InvalidInputError("maxViews must be 1 when set")
        is_burn_after_reading = max_views == 1

        now = self._clock()
        if is_burn_after_reading:
            normalized_expiry = None
        else:
            normalized_expiry = self.normalize_expiry(expires_at, now)

        payload = self._build_payload(content)
        try:
            sealed = self._seal(payload)
        except Exception:
            logger.exception("secret_encryption_failed")
            raise InternalFailureError("Failed to encrypt data") from None

        secret = Secret(
            custom_name=custom_name,
            created_at=now,
            expires_at=normalized_expiry,
            is_burn_after_reading=is_burn_after_reading,
            encrypted_payload=sealed,
        )

        try:
            self._store.create(secret)
        except NameTakenError as e:
            raise NameConflictError(f"custom name {e.name!r} is already taken") from None
        except StorageError as e:
            logger.error("secret_store_failed", error=str(e))
            raise InternalFailureError("Failed to store secret") from None

        logger.info(
            "secret_created",
            secret_id=secret.id,
            burn_after_reading=is_burn_after_reading,
            has_custom_name=custom_name is not None,
        )
        return secret.id

    def get_secret(
        self, secret_id: str, *, captcha_token: str | None, client_ip: str | None = None
    ) -> SecretContent:
        """Read a secret by id."""
        secret_id = secret_id.lower()
        if not is_valid_secret_id(secret_id):
            raise InvalidInputError("Invalid secret ID format")

        self._verify_captcha(captcha_token, client_ip)

        try:
            secret = self._store.get_by_id(secret_id)
        except StorageError as e:
            logger.error("secret_lookup_failed", secret_id=secret_id, error=str(e))
            raise InternalFailureError("Failed to get secret") from None
        return self._retrieve(secret)

    def get_secret_by_name(
        self, name: str, *, captcha_token: str | None, client_ip: str | None = None
    ) -> SecretContent:
        """Read a secret by its custom name."""
        if (
            not name
            or len(name) > self._settings.max_custom_name_length
            or not is_valid_custom_name(name)
        ):
            raise InvalidInputError(SECRET_NAME_CHARSET_MESSAGE)

        self._verify_captcha(captcha_token, client_ip)

        try:
            secret = self._store.get_by_custom_name(name)
        except StorageError as e:
            logger.error("secret_lookup_failed", error=str(e))
            raise InternalFailureError("Failed to get secret") from None
        return self._retrieve(secret)

    def _retrieve(self, secret: Secret | None) -> SecretContent:
        if secret is None:
            raise NotFoundError()

        if secret.is_expired(self._clock()):
            try:
                self._store.delete(secret.id)
                logger.info("expired_secret_deleted", secret_id=secret.id)
            except StorageError as e:
                logger.error("expired_secret_delete_failed", secret_id=secret.id, error=str(e))
            raise SecretExpiredError()

        if secret.is_burn_after_reading:
            # Claim the record before decrypting so only one reader ever gets it
            try:
                claimed = self._store.take(secret.id)
            except StorageError as e:
                logger.error("burn_claim_failed", secret_id=secret.id, error=str(e))
                raise InternalFailureError("Failed to get secret") from None
            if claimed is None:
                raise NotFoundError()
            logger.info("secret_burned", secret_id=claimed.id)
            return self._open(claimed)

        return self._open(secret)
