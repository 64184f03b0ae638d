"""Credential hashing, signed session tokens and current-user resolution."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_session
from ..models import User
from ..schemas import RegisterRequest

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

UNAUTHORIZED_DETAIL = "Unauthorized"
INVALID_CREDENTIALS_DETAIL = "Invalid email or password"


@lru_cache(maxsize=1)
def _get_pwd_context() -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=get_settings().bcrypt_rounds)


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""

    return _get_pwd_context().hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    """Verify that ``password`` matches ``hashed_password``."""

    if not hashed_password:
        return False
    try:
        return _get_pwd_context().verify(password, hashed_password)
    except Exception:  # pragma: no cover - passlib internal errors are rare
        logger.exception("Password verification failed due to an unexpected error")
        return False


def create_session_token(user_id: UUID, *, expires_in: Optional[timedelta] = None) -> str:
    """Create a signed JWT whose subject is ``user_id``."""

    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire_delta = expires_in or timedelta(days=settings.session_max_age_days)
    payload = {"sub": str(user_id), "iat": now, "exp": now + expire_delta}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> UUID:
    """Decode and validate a session JWT, returning the embedded user id."""

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from exc


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=get_settings().session_cookie_name, path="/")


def register_user(db: Session, payload: RegisterRequest) -> User:
    """Persist a new account. The caller is responsible for starting a session."""

    email = str(payload.email)
    existing = db.scalars(
        select(User).where(or_(User.email == email, User.username == payload.username)).limit(2)
    ).all()
    if any(user.email == email for user in existing):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")

    user = User(
        email=email,
        username=payload.username,
        name=payload.name.strip(),
        hashed_password=hash_password(payload.password),
    )

    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already in use") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to register user")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to register user") from exc

    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials.

    Unknown emails and wrong passwords are indistinguishable to the caller.
    """

    user = db.scalar(select(User).where(User.email == email))
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


def resolve_session_user(db: Session, token: str | None) -> User | None:
    """Return the user behind ``token``, or ``None`` when it cannot be verified."""

    if not token:
        return None
    try:
        user_id = decode_session_token(token)
    except HTTPException:
        return None
    return db.get(User, user_id)


def require_actor(actor: User | None) -> User:
    """Fail with 401 unless a signed-in actor was resolved for the request."""

    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_DETAIL)
    return actor


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    db: Session = Depends(get_session),
) -> User | None:
    """Resolve the viewer from the session cookie, falling back to a bearer token."""

    token = request.cookies.get(get_settings().session_cookie_name)
    if not token and credentials and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    return resolve_session_user(db, token)


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    return require_actor(user)


__all__ = [
    "INVALID_CREDENTIALS_DETAIL",
    "UNAUTHORIZED_DETAIL",
    "authenticate_user",
    "clear_session_cookie",
    "create_session_token",
    "decode_session_token",
    "get_current_user",
    "get_optional_user",
    "hash_password",
    "register_user",
    "require_actor",
    "resolve_session_user",
    "set_session_cookie",
    "verify_password",
]
