from passlib.context import CryptContext
from datetime import datetime, timedelta
from typing import Optional
import logging
import secrets
import jwt

from .config import settings

logger = logging.getLogger(__name__)

# New hashes use pbkdf2_sha256 to avoid external bcrypt backend issues in some
# environments; bcrypt (10 rounds) hashes from older accounts still verify and
# are flagged for rehashing.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "bcrypt"],
    deprecated="auto",
    bcrypt__rounds=10,
)

# Random token sizes in bytes (hex output is twice as long)
PASSWORD_IDENTIFIER_BYTES = 5
VERIFY_TOKEN_BYTES = 3
SESSION_TOKEN_BYTES = 3
RESET_TOKEN_BYTES = 6

ACCESS_TOKEN_TYPE = "jwt"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning("Password hash could not be verified: %s", e)
        return False


def password_needs_rehash(hashed_password: str) -> bool:
    """True for hashes made with a deprecated scheme or outdated settings."""
    try:
        return pwd_context.needs_update(hashed_password)
    except (ValueError, TypeError):
        return False


def generate_token(byte_length: int) -> str:
    """Hex-encoded random token from the OS CSPRNG."""
    return secrets.token_hex(byte_length)


def create_access_token(user_id: str, role: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": user_id, "role": role, "type": ACCESS_TOKEN_TYPE, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str, session: str, password_identifier: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    expire = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload = {
        "sub": user_id,
        "session": session,
        "pwId": password_identifier,
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str) -> dict:
    """
    Decode and verify a signed token.

    Args:
        token: Encoded JWT
        expected_type: "jwt" for access tokens, "refresh" for refresh tokens

    Returns:
        The token claims

    Raises:
        jwt.InvalidTokenError: If the signature, expiry or type is invalid
    """
    claims = jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp", "type"]},
    )
    if claims.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a '{expected_type}' token")
    return claims
