"""
Fernet encryption for contact data stored at rest.

Sender and receiver phone numbers are encrypted before they reach the
database and decrypted only for the owning agent's views.
"""

from cryptography.fernet import Fernet, InvalidToken

from hawala.config import settings

# ---------------------------------------------------------------------------
# Fernet cipher — lazily initialised from settings
# ---------------------------------------------------------------------------

_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    global _fernet
    if _fernet is None:
        _fernet = Fernet(settings.FERNET_KEY.encode())
    return _fernet


def configure_fernet(key: str | bytes) -> None:
    """Override the Fernet key at runtime (used in tests)."""
    global _fernet
    if isinstance(key, str):
        key = key.encode()
    _fernet = Fernet(key)


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string value using Fernet. Returns base64-encoded ciphertext."""
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    """Decrypt a Fernet-encrypted value. Raises ValueError on failure."""
    try:
        return _get_fernet().decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        raise ValueError("Failed to decrypt value — invalid key or corrupted data")
