"""
Authentication service: registration, login, refresh-token rotation and
access-token validation.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travel_api.config import Settings
from travel_api.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from travel_api.models.user import User
from travel_api.schemas.user import LoginRequest, RegisterRequest
from travel_api.utils.logger import log_info, log_warning
from travel_api.utils.prometheus_metrics import (
    jwt_token_validation_total,
    login_duration_seconds,
    token_refresh_total,
    user_login_total,
    user_registration_total,
)
from travel_api.utils.security import TokenIssuer, hash_password, verify_password

# A refresh always extends the slot by this many days, whatever the login lifetime is
REFRESH_ROTATION_DAYS = 7


@dataclass
class AuthSession:
    """Tokens issued for a user; the router turns this into body + cookie."""

    user: User
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


class AuthService:
    """
    Service for handling user authentication.
    Provides methods for registration, login, refresh and token validation.
    """

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings
        self.tokens = TokenIssuer(settings)

    async def register(self, data: RegisterRequest) -> AuthSession:
        """
        Register a new user and sign them in.

        Args:
            data: Registration payload

        Returns:
            AuthSession for the new user

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.get_user_by_email(data.email):
            user_registration_total.labels(result="failure").inc()
            log_warning("Registration failed", event="auth", email=data.email, reason="email_exists")
            raise ConflictError("User with this email already exists")

        user = User(
            email=data.email,
            username=data.username,
            hashed_password=hash_password(data.password),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            user_registration_total.labels(result="failure").inc()
            log_warning("Registration failed", event="auth", reason="email_exists_concurrent")
            raise ConflictError("User with this email already exists")

        session = self._start_session(user, timedelta(days=self.settings.refresh_token_expire_days))
        await self.db.commit()

        user_registration_total.labels(result="success").inc()
        log_info("Registration", event="auth", user_id=user.id, email=user.email)
        return session

    async def login(self, data: LoginRequest) -> AuthSession:
        """
        Verify credentials and issue a fresh token pair.

        Raises:
            NotFoundError: Unknown email
            ConflictError: Wrong password
        """
        started = time.perf_counter()
        user = await self.get_user_by_email(data.email)
        if user is None:
            user_login_total.labels(result="not_found").inc()
            login_duration_seconds.labels(result="failure").observe(time.perf_counter() - started)
            log_warning("Login failed", event="auth", email=data.email, reason="user_not_found")
            raise NotFoundError("User not found")

        if not verify_password(data.password, user.hashed_password):
            user_login_total.labels(result="bad_password").inc()
            login_duration_seconds.labels(result="failure").observe(time.perf_counter() - started)
            log_warning("Login failed", event="auth", email=data.email, reason="invalid_password")
            raise ConflictError("Invalid password")

        session = self._start_session(user, timedelta(days=self.settings.refresh_token_expire_days))
        await self.db.commit()

        user_login_total.labels(result="success").inc()
        login_duration_seconds.labels(result="success").observe(time.perf_counter() - started)
        log_info("Login", event="auth", user_id=user.id, email=user.email)
        return session

    async def refresh(self, refresh_token: Optional[str]) -> AuthSession:
        """
        Rotate the refresh token presented in the cookie.

        Raises:
            BadRequestError: No cookie was sent
            UnauthorizedError: Token is unknown or expired
        """
        if not refresh_token:
            token_refresh_total.labels(result="missing").inc()
            raise BadRequestError("Refresh token is missing")

        result = await self.db.execute(select(User).where(User.refresh_token == refresh_token))
        user = result.scalar_one_or_none()
        if user is None:
            token_refresh_total.labels(result="unknown").inc()
            log_warning("Refresh rejected", event="auth", reason="unknown_token")
            raise UnauthorizedError("Invalid refresh token")

        if user.refresh_token_expires_at is None or user.refresh_token_expires_at <= datetime.utcnow():
            token_refresh_total.labels(result="expired").inc()
            log_warning("Refresh rejected", event="auth", user_id=user.id, reason="expired_token")
            raise UnauthorizedError("Refresh token expired")

        session = self._start_session(user, timedelta(days=REFRESH_ROTATION_DAYS))
        await self.db.commit()

        token_refresh_total.labels(result="success").inc()
        log_info("Token refreshed", event="auth", user_id=user.id)
        return session

    async def validate_access_token(self, token: Optional[str]) -> User:
        """
        Resolve the user an access token was issued to.

        Raises:
            UnauthorizedError: Missing/invalid token, bad subject, or user gone
        """
        payload = self.tokens.validate_access_token(token or "")
        if payload is None:
            jwt_token_validation_total.labels(result="failure").inc()
            log_warning("Auth failed", event="auth", reason="invalid_or_expired_token")
            raise UnauthorizedError("Invalid token")

        subject = payload.get("sub")
        if subject is None or not str(subject).isdigit():
            jwt_token_validation_total.labels(result="failure").inc()
            log_warning("Auth failed", event="auth", reason="bad_subject")
            raise UnauthorizedError("Invalid token")

        user = await self.get_user_by_id(int(subject))
        if user is None:
            jwt_token_validation_total.labels(result="failure").inc()
            log_warning("Auth failed", event="auth", reason="user_not_found", user_id=subject)
            raise UnauthorizedError("User not found")

        jwt_token_validation_total.labels(result="success").inc()
        return user

    async def list_users(self) -> List[User]:
        """All users ordered by id."""
        result = await self.db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User if found, None otherwise
        """
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    def _start_session(self, user: User, refresh_lifetime: timedelta) -> AuthSession:
        refresh_token = self.tokens.issue_refresh_token()
        expires_at = datetime.utcnow() + refresh_lifetime
        user.set_refresh_token(refresh_token, expires_at)
        return AuthSession(
            user=user,
            access_token=self.tokens.issue_access_token(user.id, user.email),
            refresh_token=refresh_token,
            refresh_expires_at=expires_at,
        )
