"""Sign-up, sign-in and session routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import AuthResponse, LoginRequest, RegisterRequest, SuccessResponse, UserResponse
from ..services import (
    authenticate_user,
    clear_session_cookie,
    create_session_token,
    get_current_user,
    register_user,
    set_session_cookie,
)
from ..services.auth_service import INVALID_CREDENTIALS_DETAIL

router = APIRouter(prefix="/auth", tags=["auth"])


def _start_session(response: Response, user: User) -> AuthResponse:
    set_session_cookie(response, create_session_token(user.id))
    return AuthResponse(user=UserResponse.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    payload: RegisterRequest,
    response: Response,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user = register_user(db, payload)
    return _start_session(response, user)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_session),
) -> AuthResponse:
    user = authenticate_user(db, str(payload.email), payload.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS_DETAIL)
    return _start_session(response, user)


@router.post("/logout", response_model=SuccessResponse)
async def logout_endpoint(response: Response) -> SuccessResponse:
    clear_session_cookie(response)
    return SuccessResponse()


@router.get("/me", response_model=AuthResponse)
async def me_endpoint(current_user: User = Depends(get_current_user)) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(current_user))


@router.post("/session", response_model=AuthResponse)
async def session_endpoint(current_user: User = Depends(get_current_user)) -> AuthResponse:
    """Session check used by clients before rendering signed-in pages."""

    return AuthResponse(user=UserResponse.model_validate(current_user))
