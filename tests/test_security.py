"""Tests for password hashing, refresh-token encryption and JWTs."""

import base64
import time

import pytest
from cryptography.exceptions import InvalidTag
from jose import jwt

from vortexstream.auth.security import (
    decrypt_refresh_token,
    encrypt_refresh_token,
    hash_password,
    tokens_match,
    validate_encryption_key,
    verify_password,
)
from vortexstream.auth.tokens import (
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from vortexstream.db.models import User


def test_encrypt_decrypt_refresh_token():
    """Test AES-GCM encryption and decryption of refresh tokens."""
    key = b"0" * 32
    plaintext = "test_refresh_token_abc123"

    encrypted = encrypt_refresh_token(key, plaintext)

    assert plaintext.encode() not in encrypted
    # 12-byte nonce + ciphertext + 16-byte tag
    assert len(encrypted) == 12 + len(plaintext) + 16
    assert decrypt_refresh_token(key, encrypted) == plaintext


def test_encryption_uses_fresh_nonce():
    key = b"0" * 32
    assert encrypt_refresh_token(key, "same") != encrypt_refresh_token(key, "same")


def test_decrypt_with_wrong_key_fails():
    blob = encrypt_refresh_token(b"0" * 32, "token")
    with pytest.raises(InvalidTag):
        decrypt_refresh_token(b"1" * 32, blob)


def test_decrypt_tampered_blob_fails():
    blob = bytearray(encrypt_refresh_token(b"0" * 32, "token"))
    blob[-1] ^= 0x01
    with pytest.raises(InvalidTag):
        decrypt_refresh_token(b"0" * 32, bytes(blob))


def test_decrypt_short_blob_fails():
    with pytest.raises(ValueError, match="too short"):
        decrypt_refresh_token(b"0" * 32, b"x" * 12)


def test_encrypt_with_invalid_key_length():
    with pytest.raises(ValueError, match="exactly 32 bytes"):
        encrypt_refresh_token(b"short_key", "token")


def test_validate_encryption_key_accepts_base64():
    key = base64.b64encode(b"k" * 32).decode()
    assert validate_encryption_key(key) == b"k" * 32


@pytest.mark.parametrize(
    "value, message",
    [
        ("not base64!!", "base64"),
        (base64.b64encode(b"k" * 16).decode(), "exactly 32 bytes"),
    ],
)
def test_validate_encryption_key_rejects_bad_keys(value, message):
    with pytest.raises(ValueError, match=message):
        validate_encryption_key(value)


def test_password_hash_roundtrip():
    stored = hash_password("hunter22")

    assert stored.startswith("scrypt$")
    assert "hunter22" not in stored
    assert verify_password("hunter22", stored)
    assert not verify_password("hunter23", stored)


def test_password_hash_is_salted():
    assert hash_password("hunter22") != hash_password("hunter22")


@pytest.mark.parametrize("stored", ["", "plaintext", "bcrypt$abc$def", "scrypt$!!$!!"])
def test_verify_password_rejects_malformed_hashes(stored):
    assert verify_password("anything", stored) is False


def test_tokens_match():
    assert tokens_match("abc", "abc")
    assert not tokens_match("abc", "abd")


def _user() -> User:
    return User(
        id="7b0c3b2e-8f52-4a0e-9d1c-2a55b8e5a001",
        username="alice",
        email="alice@example.com",
        full_name="Alice",
    )


def test_access_token_claims(mock_settings):
    token = create_access_token(mock_settings, _user())
    claims = jwt.decode(token, mock_settings.access_token_secret, algorithms=["HS256"])

    assert claims["sub"] == _user().id
    assert claims["email"] == "alice@example.com"
    assert claims["username"] == "alice"
    assert claims["full_name"] == "Alice"
    assert claims["exp"] - claims["iat"] == mock_settings.access_token_ttl_seconds
    assert verify_access_token(mock_settings, token) == _user().id


def test_refresh_tokens_are_unique_and_signed_separately(mock_settings):
    first = create_refresh_token(mock_settings, _user())
    second = create_refresh_token(mock_settings, _user())

    assert first != second
    assert verify_refresh_token(mock_settings, first) == _user().id
    # A refresh token is not an access token and vice versa
    assert verify_access_token(mock_settings, first) is None
    assert verify_refresh_token(mock_settings, create_access_token(mock_settings, _user())) is None


def test_expired_access_token_is_rejected(mock_settings):
    now = int(time.time())
    token = jwt.encode(
        {"sub": "someone", "iat": now - 120, "exp": now - 60},
        mock_settings.access_token_secret,
        algorithm="HS256",
    )
    assert verify_access_token(mock_settings, token) is None


def test_garbage_token_is_rejected(mock_settings):
    assert verify_access_token(mock_settings, "not-a-jwt") is None
