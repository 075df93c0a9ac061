from secretshare.schemas.secret import (
    EncryptedContentSchema,
    SecretContentResponse,
    SecretCreate,
    SecretCreateResponse,
    SecretView,
)

__all__ = [
    "EncryptedContentSchema",
    "SecretContentResponse",
    "SecretCreate",
    "SecretCreateResponse",
    "SecretView",
]
