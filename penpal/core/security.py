# Implements security-related functionality:
# JWT access token generation and verification
# Hashing of short-lived secrets (sign-in codes, refresh tokens) using bcrypt
# Provides core security functions used by the authentication module

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
import secrets
import string
import logging

from jose import jwt, JWTError
from passlib.context import CryptContext

from penpal.core.config import settings

logger = logging.getLogger(__name__)

# Secret hashing context
secret_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def create_access_token(subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_access_token(token: str) -> Optional[str]:
    """Return the subject of a valid token, None otherwise."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification error: {e}")
        return None

    user_id = payload.get("sub")
    if user_id is None:
        logger.warning("Token payload missing 'sub' field")
        return None
    return user_id

def hash_secret(secret: str) -> str:
    return secret_context.hash(secret)

def verify_secret(plain_secret: str, hashed_secret: str) -> bool:
    return secret_context.verify(plain_secret, hashed_secret)

def generate_sign_in_code(length: int = 8) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))

def generate_refresh_token() -> str:
    return secrets.token_urlsafe(32)
