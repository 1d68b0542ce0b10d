"""
User and authentication schemas for request/response validation.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, ConfigDict


class RegisterRequest(BaseModel):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    username: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Public user fields (no hash, no tokens)."""

    id: int
    email: str
    username: str

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Body returned by register, login and refresh."""

    id: int
    access_token: str
    email: str
    username: str


class ValidateTokenResponse(BaseModel):
    """Body returned by validate-token."""

    id: int
    refresh_token: Optional[str] = None
    email: str
    username: str

    model_config = ConfigDict(from_attributes=True)
