"""
AES-256-GCM encryption for values handed to clients.

Used to wrap the provider token into an opaque authorization code when code
wrapping is enabled. The key is the configured secret itself, right-padded
with ``"0"`` and cut to 32 bytes, so no salt or KDF state needs to be stored.
"""

import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from services.common.http_errors import StateInvalidError
from services.common.logging_config import get_logger
from services.octodon.security.state import b64decode_text, b64encode_text

logger = get_logger(__name__)

# Constants
KEY_LENGTH = 32  # 256 bits for AES-256
NONCE_LENGTH = 12  # 96 bits for GCM
TAG_LENGTH = 16  # 128 bits for GCM authentication tag


def derive_key(secret: str) -> bytes:
    """Fixed-length AES key from a secret string."""
    return secret.encode("utf-8").ljust(KEY_LENGTH, b"0")[:KEY_LENGTH]


class TokenEncryption:
    """
    Encrypts and decrypts short strings with a single service key.

    Output is URL-safe base64 of ``nonce(12) + ciphertext+tag``.
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption secret cannot be empty")
        self._aesgcm = AESGCM(derive_key(secret))

    def encrypt(self, data: str) -> str:
        """
        Encrypt a string.

        Args:
            data: Plaintext to encrypt

        Returns:
            URL-safe base64 ciphertext with the nonce prepended
        """
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = self._aesgcm.encrypt(nonce, data.encode("utf-8"), None)
        return b64encode_text(nonce + ciphertext)

    def decrypt(self, encrypted: str) -> str:
        """
        Decrypt a value produced by encrypt().

        Raises:
            StateInvalidError: Bad encoding, wrong key or tampered ciphertext
        """
        try:
            raw = b64decode_text(encrypted)
        except (binascii.Error, UnicodeError, ValueError):
            raise StateInvalidError("Malformed encrypted value")

        # nonce(12) + tag(16) at minimum
        if len(raw) < NONCE_LENGTH + TAG_LENGTH:
            raise StateInvalidError("Malformed encrypted value")

        nonce, ciphertext = raw[:NONCE_LENGTH], raw[NONCE_LENGTH:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError):
            logger.warning("Decryption failed", length=len(raw))
            raise StateInvalidError("Decryption failed")


def encrypt(data: str, secret: str) -> str:
    """Encrypt ``data`` with a key derived from ``secret``."""
    return TokenEncryption(secret).encrypt(data)


def decrypt(encrypted: str, secret: str) -> str:
    """Inverse of encrypt(); raises StateInvalidError on any failure."""
    return TokenEncryption(secret).decrypt(encrypted)
