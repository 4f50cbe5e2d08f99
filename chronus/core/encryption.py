"""Encryption utilities for integration credentials."""

import json

from cryptography.fernet import Fernet, InvalidToken

from chronus.core.config import settings


_fernet: Fernet | None = None
_ENCRYPTED_PREFIX = "enc:"


def get_fernet() -> Fernet | None:
    """Get or create Fernet instance (None when INTEGRATION_ENCRYPTION_KEY is unset)."""
    global _fernet
    if not settings.INTEGRATION_ENCRYPTION_KEY:
        return None
    if _fernet is None:
        _fernet = Fernet(settings.INTEGRATION_ENCRYPTION_KEY.encode())
    return _fernet


def encrypt_credentials(credentials: dict) -> str:
    """Serialize credentials to JSON, encrypting when a key is configured."""
    raw = json.dumps(credentials or {})
    fernet = get_fernet()
    if fernet is None:
        return raw
    return _ENCRYPTED_PREFIX + fernet.encrypt(raw.encode()).decode()


def decrypt_credentials(stored: str | None) -> dict:
    """Inverse of encrypt_credentials. Plain JSON rows are read as-is."""
    if not stored:
        return {}
    if stored.startswith(_ENCRYPTED_PREFIX):
        fernet = get_fernet()
        if fernet is None:
            raise ValueError("INTEGRATION_ENCRYPTION_KEY not configured")
        try:
            stored = fernet.decrypt(stored[len(_ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken:
            raise ValueError("Invalid or corrupted encrypted credentials")
    return json.loads(stored)
