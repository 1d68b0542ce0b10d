"""
Security utility functions for password hashing and JWT token management.
"""
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from travel_api.config import Settings

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Salted, algorithm-tagged hash string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a stored hash.

    A stored hash passlib cannot identify raises ValueError; that is
    corrupted data, not a failed login, so it is left to propagate.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hash produced by hash_password

    Returns:
        True if password matches
    """
    return pwd_context.verify(plain_password, hashed_password)


class TokenIssuer:
    """
    Issues and validates access tokens, issues opaque refresh tokens.

    Access tokens are HS256 JWTs carrying the user id (``sub``) and email,
    bound to the configured issuer and audience. Refresh tokens are random
    strings with no embedded claims; their expiry is stored on the user.
    """

    REFRESH_TOKEN_BYTES = 64

    def __init__(self, settings: Settings):
        self.secret_key = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.issuer = settings.jwt_issuer
        self.audience = settings.jwt_audience
        self.access_token_lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    def issue_access_token(
        self,
        user_id: int,
        email: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed access token.

        Args:
            user_id: Subject id
            email: Subject email
            expires_delta: Override for the configured lifetime

        Returns:
            Encoded JWT string
        """
        now = datetime.utcnow()
        expire = now + (expires_delta if expires_delta is not None else self.access_token_lifetime)

        to_encode = {
            "sub": str(user_id),  # JWT subject must be a string
            "email": email,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": expire,
        }

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def issue_refresh_token(self) -> str:
        """Cryptographically random, URL-safe refresh token."""
        return secrets.token_urlsafe(self.REFRESH_TOKEN_BYTES)

    def validate_access_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Verify signature, issuer, audience and expiry.

        Returns:
            Decoded claims, or None for any kind of invalid token
        """
        if not token:
            return None
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except JWTError:
            return None
