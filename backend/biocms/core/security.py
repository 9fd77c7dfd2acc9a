from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from jose import JWTError, ExpiredSignatureError, jwt
import bcrypt
import hashlib
import secrets

from biocms.core.config import settings
from biocms.core.exceptions import InvalidTokenError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def create_access_token(
    subject: str,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None
) -> str:
    """
    Create JWT access token.

    ``iat`` keeps sub-second precision so a token issued right after a
    password change still post-dates ``credentials_changed_at``.
    """
    now = issued_at or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode: Dict[str, Any] = {
        "sub": str(subject),
        "type": "access",
        "iat": now.timestamp(),
        "exp": expire,
    }
    if role:
        to_encode["role"] = role

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token, raising InvalidTokenError on any failure"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidTokenError("Your token has expired. Please log in again.")
    except JWTError:
        raise InvalidTokenError()


def peek_subject(token: Optional[str]) -> Optional[str]:
    """Subject of a valid token, or None. Used for keying, never for access decisions."""
    if not token:
        return None
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        return None
    return payload.get("sub")


def hash_token(raw_token: str) -> str:
    """SHA-256 digest stored in place of one-time tokens"""
    return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()


def generate_one_time_token() -> Tuple[str, str]:
    """Random token for email links, returned as (raw, hashed)"""
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)
