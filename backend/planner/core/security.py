"""
Security utilities for access codes and signed session tokens.
"""
from datetime import timedelta
from typing import Optional
import hashlib
import hmac
import uuid
import bcrypt
from jose import JWTError, jwt
from planner.core.config import settings
from planner.core.utils import utcnow

ACCESS_SCOPE = "access"
GROUP_SCOPE = "group"


def _pre_hash_code(code: str) -> bytes:
    """
    Pre-hash an access code with SHA256 to support codes longer than 72 bytes.
    bcrypt only looks at the first 72 bytes of its input.
    """
    return hashlib.sha256(code.encode('utf-8')).digest()


def hash_access_code(code: str) -> str:
    """Hash a group access code for storage."""
    hashed = bcrypt.hashpw(_pre_hash_code(code), bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_access_code(plain_code: str, hashed_code: str) -> bool:
    """Verify a group access code against its stored hash."""
    return bcrypt.checkpw(_pre_hash_code(plain_code), hashed_code.encode('utf-8'))


def verify_site_access_code(code: str) -> bool:
    """Compare a submitted code with the global ACCESS_CODE in constant time."""
    if not settings.ACCESS_CODE or code is None:
        return False
    return hmac.compare_digest(code.encode('utf-8'), settings.ACCESS_CODE.encode('utf-8'))


def create_session_token(
    scope: str,
    group_id: Optional[int] = None,
    traveler_name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed session token for the session cookie."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.SESSION_COOKIE_MAX_AGE_DAYS)
    to_encode = {
        "scope": scope,
        "sid": uuid.uuid4().hex,
        "exp": utcnow() + expires_delta,
    }
    if group_id is not None:
        to_encode["group_id"] = group_id
    if traveler_name is not None:
        to_encode["traveler_name"] = traveler_name
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    """Decode and verify a session token. Returns None when invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
