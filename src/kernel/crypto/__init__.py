"""
Credential encryption at rest.
"""

from src.kernel.crypto.token_cipher import (
    TokenCipher,
    decrypt_token,
    encrypt_token,
    get_cipher,
    validate_encryption,
)

__all__ = [
    "TokenCipher",
    "encrypt_token",
    "decrypt_token",
    "get_cipher",
    "validate_encryption",
]
