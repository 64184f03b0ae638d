"""Pydantic schemas for authentication endpoints."""
from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from .users import USERNAME_PATTERN, UserResponse


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    username: str = Field(..., min_length=1, max_length=30, pattern=USERNAME_PATTERN)
    name: str = Field(..., min_length=1, max_length=150)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    success: bool = True
    user: UserResponse


class SuccessResponse(BaseModel):
    success: bool = True


__all__ = ["AuthResponse", "LoginRequest", "RegisterRequest", "SuccessResponse"]
