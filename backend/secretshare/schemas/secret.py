import base64
import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from secretshare.services.secret_service import EncryptedContent, SecretContent

BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


def strict_base64_decode(value: str, field_name: str) -> bytes:
    """
    Strictly validate and decode base64 string.

    Rejects strings with invalid characters, incorrect padding, or whitespace.
    """
    if not BASE64_PATTERN.match(value):
        raise ValueError(f"{field_name}: Invalid base64 characters")
    if len(value) % 4 != 0:
        raise ValueError(f"{field_name}: Invalid base64 length (must be multiple of 4)")
    try:
        return base64.b64decode(value, validate=True)
    except ValueError:
        raise ValueError(f"{field_name}: Invalid base64 encoding")


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EncryptedContentSchema(WireModel):
    encrypted: str = Field(..., min_length=1, description="Base64 encoded ciphertext")
    salt: str = Field(..., min_length=1, description="Base64 encoded key-derivation salt")
    iv: str = Field(..., min_length=1, description="Base64 encoded AES-GCM IV")

    @field_validator("encrypted", "salt", "iv")
    @classmethod
    def validate_base64(cls, v: str, info) -> str:
        strict_base64_decode(v, info.field_name)
        return v

    def to_content(self) -> EncryptedContent:
        return EncryptedContent(encrypted=self.encrypted, salt=self.salt, iv=self.iv)

    @classmethod
    def from_content(cls, content: EncryptedContent) -> "EncryptedContentSchema":
        return cls.model_construct(encrypted=content.encrypted, salt=content.salt, iv=content.iv)


class SecretCreate(WireModel):
    encrypted_content: EncryptedContentSchema = Field(..., alias="encryptedContent")
    custom_name: str | None = Field(None, alias="customName")
    expires_at: datetime | None = Field(None, alias="expiresAt")
    max_views: int | None = Field(None, alias="maxViews")
    captcha_token: str = Field(..., alias="captchaToken")


class SecretCreateResponse(WireModel):
    id: str


class SecretView(WireModel):
    captcha_token: str = Field(..., alias="captchaToken")


class SecretContentResponse(WireModel):
    encrypted_content: EncryptedContentSchema = Field(..., alias="encryptedContent")
    expires_at: datetime | None = Field(None, alias="expiresAt")
    is_burn_after_reading: bool = Field(..., alias="isBurnAfterReading")

    @classmethod
    def from_content(cls, content: SecretContent) -> "SecretContentResponse":
        return cls(
            encrypted_content=EncryptedContentSchema.from_content(content.encrypted_content),
            expires_at=content.expires_at,
            is_burn_after_reading=content.is_burn_after_reading,
        )
