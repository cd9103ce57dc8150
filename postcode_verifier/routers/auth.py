"""
Authentication endpoints: register, login, logout, current user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from postcode_verifier.auth import (
    Token, User, LoginRequest, RegisterRequest, UsernameTakenError,
    authenticate_user, create_access_token, create_user,
    get_current_user, get_user_by_username, normalize_username
)
from postcode_verifier.config import settings
from postcode_verifier.database import Database, get_db
from postcode_verifier.models import LogoutResponse, MeResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["authentication"])


def _issue_session(response: Response, username: str) -> Token:
    """Sign a token for ``username`` and set it as the session cookie."""
    max_age = settings.jwt_expire_minutes * 60
    access_token = create_access_token(username)

    response.set_cookie(
        key=settings.auth_cookie_name,
        value=access_token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )

    return Token(access_token=access_token, token_type="bearer", expires_in=max_age)


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_request: RegisterRequest,
    db: Database = Depends(get_db)
):
    """
    Create a new account.

    **Request Body:**
    - `username`: Email address (stored lowercase)
    - `password`: At least 8 characters
    """
    existing = await get_user_by_username(db, register_request.username)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )

    try:
        await create_user(db, register_request.username, register_request.password)
    except UsernameTakenError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )

    return MessageResponse(message="User created successfully")


@router.post("/login", response_model=Token)
async def login(
    login_request: LoginRequest,
    response: Response,
    db: Database = Depends(get_db)
):
    """
    Authenticate and start a session.

    Sets the `auth_token` cookie (7 days) and also returns the token so
    non-browser clients can send it as `Authorization: Bearer <token>`.
    """
    user = await authenticate_user(db, login_request.username, login_request.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info(f"User logged in: {user.username}")

    return _issue_session(response, user.username)


@router.post("/login/form", response_model=Token)
async def login_form(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Database = Depends(get_db)
):
    """
    OAuth2 compatible login endpoint (form-based).

    Used by Swagger UI and OAuth2 clients.
    """
    user = await authenticate_user(
        db,
        normalize_username(form_data.username),
        form_data.password.strip()
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _issue_session(response, user.username)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response):
    """End the session by clearing the cookie. Always succeeds."""
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return LogoutResponse()


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the username behind the current session."""
    return MeResponse(username=current_user.username)
