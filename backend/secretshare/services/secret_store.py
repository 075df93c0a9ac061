"""File-backed secret storage.

One JSON file per secret, named ``<id>.json``. A single store-wide reader/writer
lock guards all file I/O: lookups share it, writes and the expiry sweep hold it
exclusively. The lock is per process; running several store instances against
the same directory gives no uniqueness guarantee for custom names.
"""

from __future__ import annotations

import os
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import ValidationError

from secretshare.models.secret import Secret, is_valid_secret_id, utcnow

logger = structlog.get_logger()

SECRET_FILE_SUFFIX = ".json"


class StorageError(Exception):
    """Raised when the backing filesystem cannot be read or written."""


class NameTakenError(Exception):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"custom name {name!r} is already taken")


@dataclass(frozen=True, slots=True)
class CleanupStats:
    last_run: datetime | None = None
    secrets_cleaned: int = 0
    errors: int = 0


class ReadWriteLock:
    """Many concurrent readers or one writer. Writers are not starved by readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class FileSecretStore:
    def __init__(self, base_path: str | Path, clock: Callable[[], datetime] = utcnow) -> None:
        self._base_path = Path(base_path)
        self._clock = clock
        self._lock = ReadWriteLock()
        self._stats = CleanupStats()
        try:
            self._base_path.mkdir(mode=0o750, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create storage directory: {e}") from e

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _path_for(self, secret_id: str) -> Path:
        # Ids become file names, so anything that is not a UUID is rejected here
        if not is_valid_secret_id(secret_id):
            raise ValueError(f"invalid secret id: {secret_id!r}")
        return self._base_path / f"{secret_id}{SECRET_FILE_SUFFIX}"

    def _secret_files(self) -> list[Path]:
        try:
            return sorted(
                entry
                for entry in self._base_path.iterdir()
                if entry.is_file() and entry.suffix == SECRET_FILE_SUFFIX
            )
        except OSError as e:
            raise StorageError(f"failed to read storage directory: {e}") from e

    @staticmethod
    def _read(path: Path) -> Secret:
        return Secret.model_validate_json(path.read_bytes())

    def _read_optional(self, path: Path) -> Secret | None:
        try:
            return self._read(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"failed to read secret file: {e}") from e
        except ValidationError as e:
            raise StorageError(f"failed to parse secret file {path.name}: {e}") from e

    def _scan(self) -> Iterator[Secret]:
        """Yield every readable secret; unreadable files are skipped."""
        for path in self._secret_files():
            try:
                yield self._read(path)
            except (OSError, ValidationError):
                continue

    def _find_by_name(self, name: str) -> Secret | None:
        # Prefer an active holder of the name over a stale expired one
        now = self._clock()
        stale = None
        for secret in self._scan():
            if secret.custom_name != name:
                continue
            if not secret.is_expired(now):
                return secret
            if stale is None:
                stale = secret
        return stale

    def _write(self, secret: Secret) -> None:
        path = self._path_for(secret.id)
        data = secret.model_dump_json().encode("utf-8")
        fd, tmp_name = tempfile.mkstemp(dir=self._base_path, prefix=".tmp-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StorageError(f"failed to write secret file: {e}") from e

    def _remove(self, secret_id: str) -> bool:
        try:
            self._path_for(secret_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"failed to delete secret file: {e}") from e
        return True

    def create(self, secret: Secret) -> None:
        """
        Persist a new secret.

        Raises NameTakenError if its custom name is held by a different active
        secret. An expired holder of the name is purged instead.
        """
        with self._lock.write():
            if secret.custom_name:
                holder = self._find_by_name(secret.custom_name)
                if holder is not None and holder.id != secret.id:
                    if not holder.is_expired(self._clock()):
                        raise NameTakenError(secret.custom_name)
                    self._remove(holder.id)
                    logger.info("stale_name_holder_deleted", secret_id=holder.id)
            self._write(secret)

    def get_by_id(self, secret_id: str) -> Secret | None:
        """Return the secret with this id, or None. Never deletes anything."""
        path = self._path_for(secret_id)
        with self._lock.read():
            return self._read_optional(path)

    def get_by_custom_name(self, name: str) -> Secret | None:
        """Return the secret holding this custom name, or None.

        This is a linear scan over every stored secret.
        """
        if not name:
            return None
        with self._lock.read():
            return self._find_by_name(name)

    def delete(self, secret_id: str) -> None:
        """Delete a secret. Deleting a missing secret is not an error."""
        with self._lock.write():
            self._remove(secret_id)

    def take(self, secret_id: str) -> Secret | None:
        """Atomically read and delete a secret.

        Of several concurrent callers for the same id, exactly one gets the
        secret; the others get None.
        """
        path = self._path_for(secret_id)
        with self._lock.write():
            secret = self._read_optional(path)
            if secret is not None:
                self._remove(secret_id)
            return secret

    def sweep_expired(self) -> CleanupStats:
        """
        Delete every secret whose expiry time has passed.

        Unreadable files and failed deletions are logged and skipped; both count
        as errors. Returns the statistics of this run.
        """
        deleted = 0
        errors = 0
        with self._lock.write():
            now = self._clock()
            for path in self._secret_files():
                try:
                    secret = self._read(path)
                except FileNotFoundError:
                    continue
                except (OSError, ValidationError) as e:
                    logger.error("sweep_read_failed", file=path.name, error=str(e))
                    errors += 1
                    continue

                if not secret.is_expired(now):
                    continue

                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.error("sweep_delete_failed", file=path.name, error=str(e))
                    errors += 1
                    continue
                deleted += 1

            self._stats = CleanupStats(last_run=now, secrets_cleaned=deleted, errors=errors)

        logger.debug("expired_secrets_swept", deleted_count=deleted, errors=errors)
        return self._stats

    def cleanup_stats(self) -> CleanupStats:
        with self._lock.read():
            return self._stats
