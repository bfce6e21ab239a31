"""
Encryption of per-user API keys.

Per-user keys are stored in the user database as Fernet tokens. The resolver
never depends on this module directly: it receives a decrypt callable, and
ApiKeyCipher.decrypt is the one used in production.

Managing the Fernet key itself (generation policy, storage, rotation) is the
caller's responsibility.
"""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken


class KeyDecryptionError(Exception):
    """Raised when an encrypted API key cannot be decrypted."""

    pass


class ApiKeyCipher:
    """
    Symmetric encryption for API keys stored in user records.

    Usage:
        cipher = ApiKeyCipher(ApiKeyCipher.generate_key())
        token = cipher.encrypt("sk-ant-api03-...")
        plaintext = cipher.decrypt(token)
    """

    def __init__(self, key: bytes | str) -> None:
        """
        Args:
            key: URL-safe base64-encoded 32-byte Fernet key.

        Raises:
            ValueError: If the key is not a valid Fernet key.
        """
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> bytes:
        """Generate a new random Fernet key."""
        return Fernet.generate_key()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt an API key, returning a text token safe to store in JSON."""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str) -> str:
        """
        Decrypt a stored API key token.

        Raises:
            KeyDecryptionError: If the token is malformed or was encrypted
                with a different key.
        """
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except (InvalidToken, ValueError, AttributeError) as e:
            raise KeyDecryptionError("Cannot decrypt API key token") from e
