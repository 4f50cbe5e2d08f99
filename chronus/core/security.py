"""Security utilities: password hashing, JWT session tokens, API keys."""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from chronus.core.config import settings


BCRYPT_ROUNDS = 10
API_KEY_PREFIX = "sk_live_"
API_KEY_DISPLAY_PREFIX_LENGTH = 10


# =============================================================================
# Passwords (bcrypt)
# =============================================================================

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash (False when no hash is set)."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# =============================================================================
# Session Token (JWT, Bearer)
# =============================================================================

def create_session_token(
    user_id: UUID,
    org_id: UUID | None,
    role: str,
    token_version: int,
    email: str | None = None,
    name: str | None = None,
) -> tuple[str, str, datetime]:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET). email/name are carried so
    the companion product can provision the user on first sight.

    Returns:
        (token, jti, expires_at)
    """
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(hours=settings.JWT_EXPIRES_HOURS)
    jti = secrets.token_hex(16)
    payload = {
        "sub": str(user_id),
        "org_id": str(org_id) if org_id else None,
        "role": role,
        "email": email,
        "name": name,
        "token_version": token_version,
        "jti": jti,
        "iat": now,
        "exp": expires_at,
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")
    return token, jti, expires_at


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# API Keys
# =============================================================================

def generate_api_key() -> str:
    """Generate a raw API key: sk_live_ + 24 random bytes as hex."""
    return API_KEY_PREFIX + secrets.token_bytes(24).hex()


def hash_api_key(raw_key: str) -> str:
    """sha256 hex digest of a raw API key (the only form stored)."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def api_key_display_prefix(raw_key: str) -> str:
    return raw_key[:API_KEY_DISPLAY_PREFIX_LENGTH]


def constant_time_equals(a: str | None, b: str | None) -> bool:
    """Compare shared secrets without leaking timing."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
