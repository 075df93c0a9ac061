import re
import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from secretshare.services.envelope import decode_string, encode_to_string

# Custom names are alphanumeric only
CUSTOM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")

# Secret ids are lowercase UUID v4 strings
SECRET_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def is_valid_custom_name(name: str) -> bool:
    return bool(CUSTOM_NAME_PATTERN.match(name))


def is_valid_secret_id(secret_id: str) -> bool:
    return bool(SECRET_ID_PATTERN.match(secret_id))


class Secret(BaseModel):
    """A stored secret. Secrets are write-once: they are created and deleted, never updated."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    custom_name: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime | None = None
    is_burn_after_reading: bool = False
    # Server envelope around the client's "encrypted.salt.iv" string
    encrypted_payload: bytes

    @field_validator("encrypted_payload", mode="before")
    @classmethod
    def decode_payload(cls, v):
        if isinstance(v, str):
            return decode_string(v)
        return v

    @field_serializer("encrypted_payload")
    def encode_payload(self, v: bytes) -> str:
        return encode_to_string(v)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) > self.expires_at
