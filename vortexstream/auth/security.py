"""Password hashing and encryption of the stored refresh token."""

import base64
import hmac
import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

NONCE_SIZE = 12
KEY_SIZE = 32

# scrypt cost parameters (n=2**14, r=8, p=1)
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1
SALT_SIZE = 16

MIN_PASSWORD_LENGTH = 6


def validate_encryption_key(enc_key: str | bytes) -> bytes:
    """Decode the configured token encryption key.

    String keys must be base64 and decode to exactly 32 bytes (AES-256).

    Raises:
        ValueError: If the key is not base64 or has the wrong length
    """
    if isinstance(enc_key, str):
        try:
            key = base64.b64decode(enc_key, validate=True)
        except ValueError as e:
            raise ValueError("Token encryption key must be base64-encoded") from e
    else:
        key = enc_key

    if len(key) != KEY_SIZE:
        raise ValueError(
            f"Token encryption key must be exactly {KEY_SIZE} bytes, got {len(key)}"
        )
    return key


def encrypt_refresh_token(key: bytes, plaintext: str) -> bytes:
    """Encrypt a refresh token with AES-GCM.

    Returns:
        12-byte nonce followed by the ciphertext
    """
    nonce = os.urandom(NONCE_SIZE)
    return nonce + AESGCM(validate_encryption_key(key)).encrypt(
        nonce, plaintext.encode("utf-8"), None
    )


def decrypt_refresh_token(key: bytes, blob: bytes) -> str:
    """Decrypt a blob produced by ``encrypt_refresh_token``.

    Raises:
        ValueError: If the blob is too short to hold a nonce
        cryptography.exceptions.InvalidTag: Wrong key or tampered data
    """
    if len(blob) <= NONCE_SIZE:
        raise ValueError("Encrypted blob too short")
    aes = AESGCM(validate_encryption_key(key))
    return aes.decrypt(blob[:NONCE_SIZE], blob[NONCE_SIZE:], None).decode("utf-8")


def tokens_match(presented: str, stored: str) -> bool:
    """Constant-time comparison of two tokens."""
    return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))


def _scrypt(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=32, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)


def hash_password(password: str) -> str:
    """Hash a password as ``scrypt$<salt_b64>$<hash_b64>``."""
    salt = os.urandom(SALT_SIZE)
    digest = _scrypt(salt).derive(password.encode("utf-8"))
    return "scrypt${}${}".format(
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, salt_b64, hash_b64 = stored.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except ValueError:
        return False
    if scheme != "scrypt":
        return False
    try:
        _scrypt(salt).verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True
