"""
Authentication router: registration, login, token refresh and validation.
"""
from typing import List

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from travel_api.config import Settings, get_settings
from travel_api.dependencies.auth import get_auth_service, get_current_user
from travel_api.middlewares.rate_limit_middleware import get_rate_limit_decorator
from travel_api.models.user import User
from travel_api.schemas.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
    ValidateTokenResponse,
)
from travel_api.services.auth import AuthService, AuthSession

router = APIRouter(tags=["Authentication"])

_auth_rate_limit = get_rate_limit_decorator(get_settings().auth_rate_limit)


def _session_response(session: AuthSession, settings: Settings) -> JSONResponse:
    """Body with the access token, refresh token in an HttpOnly cookie."""
    body = AuthResponse(
        id=session.user.id,
        access_token=session.access_token,
        email=session.user.email,
        username=session.user.username,
    )
    response = JSONResponse(content=body.model_dump())
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=session.refresh_token,
        expires=session.refresh_expires_at.strftime("%a, %d %b %Y %H:%M:%S GMT"),
        path="/",
        httponly=True,
        secure=True,
        samesite="none",
    )
    return response


@router.post(
    "/register",
    response_model=AuthResponse,
    summary="Register a new user",
)
@_auth_rate_limit
async def register(
    request: Request,
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Create an account and sign it in.

    - 409 when the email is already registered
    - sets the refresh token cookie
    """
    session = await auth_service.register(data)
    return _session_response(session, settings)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login with email and password",
)
@_auth_rate_limit
async def login(
    request: Request,
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Authenticate and issue a new token pair.

    - 404 for an unknown email, 409 for a wrong password
    """
    session = await auth_service.login(data)
    return _session_response(session, settings)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Rotate the refresh token",
)
@_auth_rate_limit
async def refresh(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    Exchange the refresh token cookie for a new access token and cookie.

    - 400 without a cookie, 401 for an unknown or expired token
    """
    token = request.cookies.get(settings.refresh_cookie_name)
    session = await auth_service.refresh(token)
    return _session_response(session, settings)


@router.post(
    "/validate-token",
    response_model=ValidateTokenResponse,
    summary="Validate the bearer access token",
)
async def validate_token(current_user: User = Depends(get_current_user)) -> User:
    """Return the owner of the bearer token, 401 when it is not valid."""
    return current_user


@router.get(
    "/users",
    response_model=List[UserResponse],
    summary="List users",
)
async def list_users(auth_service: AuthService = Depends(get_auth_service)) -> List[User]:
    """All users without password hashes or tokens."""
    return await auth_service.list_users()
