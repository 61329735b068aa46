"""
GitHub token encryption at rest.

AES-256-GCM with a key supplied as base64 in GITHUB_TOKEN_ENCRYPTION_KEY
(generate with: openssl rand -base64 32). Encrypted tokens are stored as

    <hex iv>:<hex ciphertext>:<hex auth tag>

Plaintext tokens and key material are never logged.
"""

import base64
import binascii
import hashlib
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from src.config import get_settings
from src.errors import DecryptionError, EncryptionError
from src.logging_config import get_logger

logger = get_logger(__name__)

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
TAG_LENGTH = 16

# Development-only key. Reachable only when environment == "development".
_DEV_KEY = hashlib.sha256(b"dev-encryption-key-please-change-in-production").digest()


def load_key(raw_key: Optional[str], environment: str = "development") -> bytes:
    """
    Decode the configured key.

    Raises:
        EncryptionError: key missing outside development, not base64, or not 32 bytes
    """
    if not raw_key:
        if environment != "development":
            raise EncryptionError("GITHUB_TOKEN_ENCRYPTION_KEY is not configured")
        logger.warning(
            "Using the development encryption key. "
            "Set GITHUB_TOKEN_ENCRYPTION_KEY before deploying!"
        )
        return _DEV_KEY

    try:
        key = base64.b64decode(raw_key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncryptionError("GITHUB_TOKEN_ENCRYPTION_KEY is not valid base64") from exc

    if len(key) != KEY_LENGTH:
        raise EncryptionError(
            f"GITHUB_TOKEN_ENCRYPTION_KEY must decode to {KEY_LENGTH} bytes"
        )
    return key


class TokenCipher:
    """
    Authenticated symmetric encryption for bearer credentials.

    Pure computation, safe to share between requests.
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_LENGTH:
            raise EncryptionError(f"Encryption key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_settings(cls) -> "TokenCipher":
        settings = get_settings()
        return cls(load_key(settings.github_token_encryption_key, settings.environment))

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a token.

        Returns:
            "iv:ciphertext:tag", all hex encoded
        """
        iv = os.urandom(IV_LENGTH)
        try:
            sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        except (ValueError, OverflowError) as exc:
            raise EncryptionError("Failed to encrypt token") from exc

        # cryptography appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{iv.hex()}:{ciphertext.hex()}:{tag.hex()}"

    def decrypt(self, bundle: str) -> str:
        """
        Decrypt a token produced by encrypt().

        Raises:
            DecryptionError: malformed bundle or failed authentication
        """
        parts = bundle.split(":")
        if len(parts) != 3:
            raise DecryptionError("Invalid encrypted token format")

        try:
            iv, ciphertext, tag = (bytes.fromhex(p) for p in parts)
        except ValueError as exc:
            raise DecryptionError("Invalid encrypted token format") from exc

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise DecryptionError("Invalid encrypted token format")

        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as exc:
            raise DecryptionError("Token authentication failed") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted token is not valid UTF-8") from exc

    def self_test(self) -> bool:
        """Round-trip a canned value. Used by health checks."""
        sample = "test_token_12345"
        try:
            return self.decrypt(self.encrypt(sample)) == sample
        except (EncryptionError, DecryptionError) as exc:
            logger.error("Token cipher self-test failed: %s", exc.message)
            return False


# Default cipher instance
_cipher: Optional[TokenCipher] = None


def get_cipher() -> TokenCipher:
    """Get or create the default cipher from settings."""
    global _cipher
    if _cipher is None:
        _cipher = TokenCipher.from_settings()
    return _cipher


def reset_cipher() -> None:
    """Drop the cached cipher (after settings change)."""
    global _cipher
    _cipher = None


# Convenience functions
def encrypt_token(token: str) -> str:
    """Encrypt a GitHub token with the configured key."""
    return get_cipher().encrypt(token)


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored GitHub token with the configured key."""
    try:
        cipher = get_cipher()
    except EncryptionError as exc:
        raise DecryptionError(exc.message) from exc
    return cipher.decrypt(encrypted_token)


def validate_encryption() -> bool:
    """Check the configured key can round-trip a value."""
    try:
        return get_cipher().self_test()
    except EncryptionError as exc:
        logger.error("Token cipher unavailable: %s", exc.message)
        return False
