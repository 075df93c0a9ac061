"""
Password-based authenticated encryption envelope.

Format: [salt 16B][nonce 12B][ciphertext + GCM tag 16B]

The key is PBKDF2-HMAC-SHA256(password || server_key, salt). With an empty
password the key depends only on the server key, which is how the server wraps
already client-encrypted payloads in its own layer.

Never log plaintexts, passwords, derived keys or the server key.
"""

import base64
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
PBKDF2_ITERATIONS = 10_000


class DecryptionError(Exception):
    """Raised when an envelope cannot be opened.

    Wrong password, wrong server key and corrupted data all produce the same
    error so the caller cannot tell which factor was wrong.
    """


class Envelope:
    def __init__(self, server_key: str | bytes, iterations: int = PBKDF2_ITERATIONS) -> None:
        if isinstance(server_key, str):
            server_key = server_key.encode("utf-8")
        self._server_key = server_key
        self._iterations = iterations

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=self._iterations,
        )
        return kdf.derive(password.encode("utf-8") + self._server_key)

    def seal(self, plaintext: bytes, password: str = "") -> bytes:
        """Encrypt plaintext under a key derived from password and the server key."""
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        key = self._derive_key(password, salt)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
        return salt + nonce + ciphertext

    def open(self, envelope: bytes, password: str = "") -> bytes:
        """Decrypt an envelope produced by seal().

        Raises:
            DecryptionError: if the envelope is truncated or fails authentication
        """
        if len(envelope) < SALT_SIZE + NONCE_SIZE:
            raise DecryptionError("encrypted data is too short")

        salt = envelope[:SALT_SIZE]
        nonce = envelope[SALT_SIZE : SALT_SIZE + NONCE_SIZE]
        ciphertext = envelope[SALT_SIZE + NONCE_SIZE :]

        key = self._derive_key(password, salt)
        try:
            return AESGCM(key).decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise DecryptionError("failed to decrypt") from None


def encode_to_string(data: bytes) -> str:
    """Encode envelope bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def decode_string(value: str) -> bytes:
    """Decode standard base64 text back to envelope bytes."""
    return base64.b64decode(value, validate=True)
