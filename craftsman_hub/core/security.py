"""
Security Primitives

Password verification, JWT signing/validation and reset-token hashing.
"""

from datetime import datetime, timezone
import hashlib
import hmac
import secrets

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from .config import Settings
from .errors import Unauthenticated


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: str, settings: Settings) -> str:
    """
    Create JWT access token

    The payload carries only the user id ("sub") and the issue/expiry times.
    """
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + settings.jwt_expires_in).timestamp()),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode and validate JWT token (signature and expiry)

    Raises:
        Unauthenticated: If the token is expired or invalid
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        raise Unauthenticated("Your token has expired! Please log in again.")
    except JWTError:
        raise Unauthenticated("Invalid token. Please log in again!")


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str, settings: Settings) -> str:
    """One-way keyed hash of a raw reset token; deterministic so it can be looked up."""
    return hmac.new(settings.secret_key.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).hexdigest()
