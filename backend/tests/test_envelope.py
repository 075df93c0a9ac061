"""Tests for the password-based encryption envelope."""

import pytest

from secretshare.services.envelope import (
    NONCE_SIZE,
    SALT_SIZE,
    DecryptionError,
    Envelope,
    decode_string,
    encode_to_string,
)


@pytest.fixture
def envelope():
    return Envelope("server-key")


class TestSealOpen:
    @pytest.mark.parametrize(
        ("plaintext", "password"),
        [
            (b"Hello, World!", "password123"),
            (b"", "password123"),
            (b"\x00\xff" * 512, "p"),
            ("unicode ☃ text".encode(), "pässwörd"),
            (b"server side layer", ""),
        ],
    )
    def test_round_trip(self, envelope, plaintext, password):
        sealed = envelope.seal(plaintext, password)
        assert envelope.open(sealed, password) == plaintext

    def test_layout(self, envelope):
        """Output is salt, nonce, then ciphertext with a 16 byte tag."""
        sealed = envelope.seal(b"abc", "pw")
        assert len(sealed) == SALT_SIZE + NONCE_SIZE + 3 + 16

    def test_sealing_twice_differs(self, envelope):
        first = envelope.seal(b"same message", "pw")
        second = envelope.seal(b"same message", "pw")

        assert first != second
        assert first[:SALT_SIZE] != second[:SALT_SIZE]
        assert envelope.open(first, "pw") == envelope.open(second, "pw") == b"same message"

    def test_wrong_password_rejected(self, envelope):
        sealed = envelope.seal(b"secret", "right")
        with pytest.raises(DecryptionError):
            envelope.open(sealed, "wrong")

    def test_empty_password_differs_from_non_empty(self, envelope):
        sealed = envelope.seal(b"secret", "")
        with pytest.raises(DecryptionError):
            envelope.open(sealed, "x")

    def test_wrong_server_key_rejected(self, envelope):
        sealed = envelope.seal(b"secret", "")
        with pytest.raises(DecryptionError):
            Envelope("other-server-key").open(sealed, "")

    def test_wrong_password_and_wrong_key_look_the_same(self, envelope):
        sealed = envelope.seal(b"secret", "pw")

        with pytest.raises(DecryptionError) as wrong_password:
            envelope.open(sealed, "nope")
        with pytest.raises(DecryptionError) as wrong_key:
            Envelope("other").open(sealed, "pw")

        assert str(wrong_password.value) == str(wrong_key.value)

    def test_tampered_ciphertext_rejected(self, envelope):
        sealed = bytearray(envelope.seal(b"secret payload", "pw"))
        sealed[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            envelope.open(bytes(sealed), "pw")

    @pytest.mark.parametrize("length", [0, 1, SALT_SIZE, SALT_SIZE + NONCE_SIZE - 1])
    def test_too_short_rejected(self, envelope, length):
        with pytest.raises(DecryptionError, match="too short"):
            envelope.open(b"\x00" * length, "pw")

    def test_missing_tag_rejected(self, envelope):
        with pytest.raises(DecryptionError):
            envelope.open(b"\x00" * (SALT_SIZE + NONCE_SIZE + 4), "pw")

    def test_bytes_server_key(self):
        sealed = Envelope(b"server-key").seal(b"data")
        assert Envelope("server-key").open(sealed) == b"data"


def test_base64_helpers():
    data = bytes(range(256))
    assert decode_string(encode_to_string(data)) == data


def test_decode_string_rejects_garbage():
    with pytest.raises(ValueError):
        decode_string("not base64!!")
